"""对外 API 服务模块。

提供与桌面端 IPC 处理器一一对应的函数接口：
对话、流式对话、图表生成、图片生成、会话历史查询与清空。
每个接口都返回 `{"success": bool, ...}` 信封，业务异常会被转换为
`{"success": False, "error": message}`，其余异常照常抛出。
"""

import inspect
import logging
from contextlib import aclosing
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from gateway_core.config.settings import GatewaySettings, load_settings
from gateway_core.domain.composer import compose_messages
from gateway_core.domain.conversation import InMemorySessionStore, SessionStore
from gateway_core.domain.exceptions import BusinessError
from gateway_core.domain.models import Turn
from gateway_core.generators import DiagramGenerator, ImageGenerator
from gateway_core.infrastructure.events import EventSink, default_event_sink
from gateway_core.infrastructure.logging.logger import get_logger
from gateway_core.providers import ProviderClient, create_provider

logger = get_logger("api.service")

ChunkCallback = Callable[[str], Union[None, Awaitable[None]]]
CompleteCallback = Callable[[], Union[None, Awaitable[None]]]


async def _call(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    if callback is None:
        return
    outcome = callback(*args)
    if inspect.isawaitable(outcome):
        await outcome


class GatewayService:
    """网关服务入口：持有配置、会话与 Provider 客户端，不依赖任何全局单例。

    日志 handler 由调用方通过 setup_logger() 挂载，服务本身不修改全局 logging 配置。
    """

    def __init__(
        self,
        settings: Optional[GatewaySettings] = None,
        session: Optional[SessionStore] = None,
        client: Optional[ProviderClient] = None,
        event_sink: Optional[EventSink] = None,
    ):
        self._settings = settings or load_settings()
        self._events = event_sink or default_event_sink(self._settings)
        self._client = client or create_provider(self._settings, event_sink=self._events)
        self._session = session or InMemorySessionStore(self._settings.max_context_turns)
        self._diagrams = DiagramGenerator(self._client, event_sink=self._events)
        self._images = ImageGenerator(self._client)

    @property
    def session(self) -> SessionStore:
        return self._session

    async def send_chat_message(self, text: str) -> Dict[str, Any]:
        """同步对话：先取历史快照，再记录用户输入，成功后记录回答。"""

        history = self._session.recent_turns()
        self._session.add_turn(Turn(role="user", content=text))
        try:
            result = await self._client.chat(compose_messages(history, text))
        except BusinessError as e:
            self._log_failure("Chat message failed", e)
            return {"success": False, "error": e.message}
        self._session.add_turn(
            Turn(
                role="assistant",
                content=result.content,
                meta={
                    "model": result.model,
                    "usage": result.usage.to_dict() if result.usage else None,
                },
            )
        )
        return {
            "success": True,
            "response": result.content,
            "model": result.model,
            "usage": result.usage.to_dict() if result.usage else None,
        }

    async def send_chat_stream(
        self,
        text: str,
        on_chunk: ChunkCallback,
        on_complete: Optional[CompleteCallback] = None,
    ) -> Dict[str, Any]:
        """流式对话：每个片段转发给 on_chunk，正常结束后调用 on_complete。

        出错时不会调用 on_complete，已经转发的片段也不会重放。
        """

        history = self._session.recent_turns()
        self._session.add_turn(Turn(role="user", content=text))
        pieces: List[str] = []
        try:
            async with aclosing(self._client.chat_stream(compose_messages(history, text))) as stream:
                async for fragment in stream:
                    pieces.append(fragment)
                    await _call(on_chunk, fragment)
        except BusinessError as e:
            self._log_failure("Chat stream failed", e, fragments=len(pieces))
            return {"success": False, "error": e.message}
        await _call(on_complete)
        self._session.add_turn(
            Turn(role="assistant", content="".join(pieces), meta={"streamed": True, "fragments": len(pieces)})
        )
        return {"success": True}

    async def generate_diagram(self, prompt: str) -> Dict[str, Any]:
        try:
            diagram = await self._diagrams.generate(prompt)
        except BusinessError as e:
            self._log_failure("Diagram generation failed", e)
            return {"success": False, "error": e.message}
        return {"success": True, "diagram": diagram}

    async def generate_image(self, prompt: str) -> Dict[str, Any]:
        try:
            image_url = await self._images.generate(prompt)
        except BusinessError as e:
            self._log_failure("Image generation failed", e)
            return {"success": False, "error": e.message}
        return {"success": True, "image_url": image_url}

    def get_session_history(self) -> List[Dict[str, str]]:
        return [t.to_payload() for t in self._session.recent_turns()]

    def clear_session(self) -> None:
        self._session.clear()
        logger.info("Session cleared")

    @staticmethod
    def _log_failure(message: str, error: BusinessError, **fields: Any) -> None:
        payload = {"code": error.code, "error": error.message, "status": error.http_status}
        payload.update(fields)
        logger.log(logging.ERROR, message, extra={"extra": payload})
