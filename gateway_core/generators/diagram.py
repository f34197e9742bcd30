"""Mermaid 图表生成。

在普通对话调用之上加一层策略：
1. 用固定模板包装用户描述，要求模型只返回 mermaid 源码；
2. 以空上下文调用 Provider（不带历史）；
3. 去掉首尾空白以及所有代码块围栏。
"""

import logging
import re
import time
from typing import Optional

from gateway_core.domain.composer import compose_messages
from gateway_core.domain.exceptions import BusinessError
from gateway_core.domain.models import CallEvent, DiagramSource
from gateway_core.infrastructure.events import EventSink, LoggingEventSink
from gateway_core.infrastructure.logging.logger import get_logger
from gateway_core.prompts import render_prompt
from gateway_core.providers.base import ProviderClient

logger = get_logger("generators.diagram")

_MERMAID_FENCE = re.compile(r"```mermaid\n?")
_PLAIN_FENCE = re.compile(r"```\n?")


def clean_diagram_source(text: str) -> DiagramSource:
    """去掉代码块围栏与首尾空白。

    重复处理直到结果不再变化，保证对结果再调用一次不会有任何改动。
    """

    cleaned = text.strip()
    while True:
        stripped = _PLAIN_FENCE.sub("", _MERMAID_FENCE.sub("", cleaned)).strip()
        if stripped == cleaned:
            return cleaned
        cleaned = stripped


class DiagramGenerator:
    """根据自然语言描述生成 mermaid 源码。"""

    operation = "generate_diagram"

    def __init__(
        self,
        client: ProviderClient,
        event_sink: Optional[EventSink] = None,
        locale: str = "en",
    ):
        self._client = client
        self._events = event_sink or LoggingEventSink()
        self._locale = locale

    def build_prompt(self, prompt: str) -> str:
        return render_prompt("diagram", self._locale, prompt=prompt)

    async def generate(self, prompt: str, model: Optional[str] = None) -> DiagramSource:
        started = time.time()
        messages = compose_messages([], self.build_prompt(prompt))
        try:
            result = await self._client.chat(messages, model=model)
        except BusinessError as e:
            self._events.emit(
                CallEvent(
                    operation=self.operation,
                    model=model,
                    error=e.message,
                    status=e.http_status,
                    duration_ms=int((time.time() - started) * 1000),
                    extra={"code": e.code},
                )
            )
            raise
        source = clean_diagram_source(result.content)
        logger.log(logging.DEBUG, "Diagram cleaned", extra={"extra": {"raw_length": len(result.content)}})
        self._events.emit(
            CallEvent(
                operation=self.operation,
                model=result.model,
                usage=result.usage,
                duration_ms=int((time.time() - started) * 1000),
                extra={"length": len(source)},
            )
        )
        return source
