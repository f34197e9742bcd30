"""OpenRouter Provider 适配器。

本模块负责：

1. 接收已经组装好的消息列表（见 domain.composer）。
2. 转换为 OpenAI 兼容的 HTTP 请求（chat/completions、images/generations）。
3. 调用 HTTP 接口并把网络/API 异常包装为统一的业务异常。
4. 把响应 JSON 解析为 ChatResult，或把流式响应解码为文本片段序列。

客户端本身不持有可变状态：每次调用都新建 httpx.AsyncClient，
因此多个调用可以在同一个事件循环里并发执行。核心层不做重试。
"""

import time
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from gateway_core.config.settings import GatewaySettings
from gateway_core.domain.exceptions import (
    BusinessError,
    ConfigurationError,
    MalformedResponseError,
    NetworkError,
    ProviderRequestError,
    RateLimitError,
)
from gateway_core.domain.models import CallEvent, ChatResult, ChatUsage, ImageReference
from gateway_core.infrastructure.events import EventSink, default_event_sink
from gateway_core.infrastructure.logging.logger import get_logger
from gateway_core.providers.registry import OPENROUTER_CONFIG
from gateway_core.providers.sse import SseStreamDecoder

logger = get_logger("providers.openrouter")


class OpenRouterClient:
    """OpenRouter 客户端实现。

    - name: Provider 名称（供日志/事件使用）。
    - chat / chat_stream / create_image: 对外统一调用入口。
    """

    name = "openrouter"

    def __init__(self, settings: GatewaySettings, event_sink: Optional[EventSink] = None):
        # Settings 里包含 base_url、api_key、模型、超时等配置
        self._settings = settings
        self._events = event_sink or default_event_sink(settings)
        if not settings.openrouter_api_key:
            # 只提示，不阻止构造；真正发起调用时才报错
            logger.warning("OpenRouter API key not configured")

    # ---- 非流式 ----

    async def chat(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> ChatResult:
        """执行一次非流式对话调用。

        步骤：
        1. 校验配置并构造请求 payload。
        2. 发送请求，网络错误/非 2xx 统一包装为 ProviderRequestError。
        3. 取 choices[0].message.content、实际使用的 model 和 usage。
        """

        started = time.time()
        requested_model = model or self._settings.openrouter_model
        try:
            payload = self._build_chat_payload(messages, requested_model, stream=False)
            try:
                async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                    resp = await client.post(
                        self._url(OPENROUTER_CONFIG.chat_path),
                        json=payload,
                        headers=self._headers(),
                    )
            except httpx.RequestError as e:
                raise NetworkError(code="NETWORK_ERROR", message=str(e))
            if not _is_success(resp.status_code):
                raise _status_error(resp.status_code, _error_message(resp))
            result = self._parse_chat_response(_json_body(resp), requested_model)
        except BusinessError as e:
            self._emit_failure("chat", requested_model, e, started)
            raise
        self._events.emit(
            CallEvent(
                operation="chat",
                model=result.model,
                usage=result.usage,
                duration_ms=_elapsed_ms(started),
                extra={"message_count": len(messages)},
            )
        )
        return result

    # ---- 流式 ----

    async def chat_stream(
        self, messages: List[Dict[str, str]], model: Optional[str] = None
    ) -> AsyncIterator[str]:
        """执行一次流式对话调用，逐步 yield 增量文本。

        收到 `[DONE]` 或连接正常关闭时结束。调用方提前停止迭代时应当
        aclose() 本生成器（或 task 被取消），此时会关闭底层 HTTP 连接。
        """

        started = time.time()
        requested_model = model or self._settings.openrouter_model
        decoder = SseStreamDecoder()
        fragments = 0
        try:
            payload = self._build_chat_payload(messages, requested_model, stream=True)
            try:
                async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                    async with client.stream(
                        "POST",
                        self._url(OPENROUTER_CONFIG.chat_path),
                        json=payload,
                        headers=self._headers(),
                    ) as resp:
                        if not _is_success(resp.status_code):
                            await resp.aread()
                            raise _status_error(resp.status_code, _error_message(resp))
                        async for text in resp.aiter_text():
                            for fragment in decoder.feed(text):
                                fragments += 1
                                yield fragment
                            if decoder.done:
                                break
            except httpx.RequestError as e:
                raise NetworkError(code="NETWORK_ERROR", message=str(e), fragments=fragments)
        except BusinessError as e:
            self._emit_failure("chat_stream", requested_model, e, started, fragments=fragments)
            raise
        self._events.emit(
            CallEvent(
                operation="chat_stream",
                model=requested_model,
                duration_ms=_elapsed_ms(started),
                extra={"fragments": fragments, "terminated_by_marker": decoder.done},
            )
        )

    # ---- 图片 ----

    async def create_image(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        n: int = OPENROUTER_CONFIG.image_defaults.n,
        size: str = OPENROUTER_CONFIG.image_defaults.size,
    ) -> ImageReference:
        """调用图片生成端点，返回 data[0].url。"""

        started = time.time()
        image_model = model or self._settings.openrouter_image_model
        try:
            self._require_config(image_model)
            payload = {"model": image_model, "prompt": prompt, "n": n, "size": size}
            try:
                async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                    resp = await client.post(
                        self._url(OPENROUTER_CONFIG.image_path),
                        json=payload,
                        headers=self._headers(),
                    )
            except httpx.RequestError as e:
                raise NetworkError(code="NETWORK_ERROR", message=str(e))
            if not _is_success(resp.status_code):
                raise _status_error(resp.status_code, _error_message(resp))
            url = self._parse_image_response(_json_body(resp))
        except BusinessError as e:
            self._emit_failure("generate_image", image_model, e, started)
            raise
        self._events.emit(
            CallEvent(
                operation="generate_image",
                model=image_model,
                duration_ms=_elapsed_ms(started),
                extra={"url": url},
            )
        )
        return url

    # ---- 辅助方法 ----

    def _require_config(self, model: Optional[str]) -> None:
        if not self._settings.openrouter_api_key:
            raise ConfigurationError(code="MISSING_API_KEY", message="OPENROUTER_API_KEY not set")
        if not self._settings.openrouter_base_url:
            raise ConfigurationError(code="MISSING_CONFIG", message="OPENROUTER_BASE_URL not set")
        if not model:
            raise ConfigurationError(code="MISSING_CONFIG", message="model identifier not set")

    def _build_chat_payload(
        self, messages: List[Dict[str, str]], model: str, stream: bool
    ) -> Dict[str, Any]:
        self._require_config(model)
        payload: Dict[str, Any] = {"model": model, "messages": list(messages)}
        if stream:
            payload["stream"] = True
        return payload

    def _url(self, path: str) -> str:
        return f"{self._settings.openrouter_base_url}{path}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.openrouter_api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _parse_chat_response(data: Any, requested_model: str) -> ChatResult:
        """取 choices[0].message.content；choices 为空或缺字段都视为结构错误。"""

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise MalformedResponseError(
                code="MALFORMED_RESPONSE",
                message="response is missing choices[0].message.content",
            )
        if not isinstance(content, str):
            raise MalformedResponseError(
                code="MALFORMED_RESPONSE",
                message="choices[0].message.content is not a string",
            )
        usage_raw = data.get("usage")
        usage = ChatUsage.from_payload(usage_raw) if isinstance(usage_raw, dict) else None
        return ChatResult(content=content, model=data.get("model") or requested_model, usage=usage)

    @staticmethod
    def _parse_image_response(data: Any) -> ImageReference:
        try:
            url = data["data"][0]["url"]
        except (KeyError, IndexError, TypeError):
            raise MalformedResponseError(
                code="MALFORMED_RESPONSE",
                message="response is missing data[0].url",
            )
        if not isinstance(url, str) or not url:
            raise MalformedResponseError(code="MALFORMED_RESPONSE", message="data[0].url is empty")
        return url

    def _emit_failure(
        self,
        operation: str,
        model: Optional[str],
        error: BusinessError,
        started: float,
        **extra: Any,
    ) -> None:
        self._events.emit(
            CallEvent(
                operation=operation,
                model=model,
                error=error.message,
                status=error.http_status,
                duration_ms=_elapsed_ms(started),
                extra={"code": error.code, **extra},
            )
        )


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def _status_error(status_code: int, message: str) -> ProviderRequestError:
    if status_code == 429:
        return RateLimitError(code="RATE_LIMIT", message=message, http_status=status_code)
    return ProviderRequestError(code="API_ERROR", message=message, http_status=status_code)


def _error_message(resp: Any) -> str:
    """优先使用 Provider 返回的 error.message，否则退回原始响应文本。"""

    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str) and err:
            return err
    text = getattr(resp, "text", "") or ""
    return text or f"HTTP {resp.status_code}"


def _json_body(resp: Any) -> Any:
    try:
        return resp.json()
    except ValueError:
        raise MalformedResponseError(code="MALFORMED_RESPONSE", message="response body is not valid JSON")


def _elapsed_ms(started: float) -> int:
    return int((time.time() - started) * 1000)
