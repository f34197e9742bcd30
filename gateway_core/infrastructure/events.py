"""调用事件记录器。

每次 chat / chat_stream / generate_diagram / generate_image 完成或失败时，
客户端都会构造一条 CallEvent 交给 EventSink。默认只写日志；配置了
event_log_file 时再额外追加到 JSON Lines 文件，便于审计。
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Protocol

from gateway_core.config.settings import GatewaySettings
from gateway_core.domain.models import CallEvent
from gateway_core.infrastructure.logging.logger import get_logger

logger = get_logger("events")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class EventSink(Protocol):
    def emit(self, event: CallEvent) -> None:
        ...


class LoggingEventSink:
    """成功记 INFO，失败记 ERROR。"""

    def __init__(self, log: Optional[logging.Logger] = None):
        self._log = log or logger

    def emit(self, event: CallEvent) -> None:
        level = logging.INFO if event.ok else logging.ERROR
        message = f"{event.operation} completed" if event.ok else f"{event.operation} failed"
        self._log.log(level, message, extra={"extra": event.to_dict()})


class JsonFileEventSink:
    """把事件逐行追加到 JSON 文件。"""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, event: CallEvent) -> None:
        entry = {"timestamp": _utcnow(), **event.to_dict()}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")


class CompositeEventSink:
    def __init__(self, sinks: Iterable[EventSink]):
        self._sinks: List[EventSink] = list(sinks)

    def emit(self, event: CallEvent) -> None:
        for sink in self._sinks:
            sink.emit(event)


def default_event_sink(settings: GatewaySettings) -> EventSink:
    """根据配置构造事件输出：总是写日志，可选再写 JSON 文件。"""

    if settings.event_log_file:
        return CompositeEventSink([LoggingEventSink(), JsonFileEventSink(settings.event_log_file)])
    return LoggingEventSink()
