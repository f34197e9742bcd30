import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from gateway_core.config.settings import GatewaySettings, load_settings

ROOT_LOGGER_NAME = "gateway_core"


class JsonFormatter(logging.Formatter):
    def __init__(self, redact_content: bool = False):
        super().__init__()
        self._redact_content = redact_content

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self._redact_content:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logger(settings: Optional[GatewaySettings] = None) -> logging.Logger:
    """为 gateway_core 挂载 JSON 文件日志。

    handler 挂在进程级 logger 上：第一次调用的 log_dir 生效，之后再调用只会
    更新日志级别，不会重复添加 handler。
    """

    cfg = settings or load_settings()
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(cfg.log_level.upper())
    for handler in logger.handlers:
        if getattr(handler, "_gateway_handler", False):
            return logger
    log_dir = Path(cfg.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    fh = logging.FileHandler(log_dir / "gateway.log", encoding="utf-8")
    fh.setLevel(cfg.log_level.upper())
    fh.setFormatter(JsonFormatter(redact_content=cfg.log_redact_content))
    fh._gateway_handler = True  # type: ignore[attr-defined]
    logger.addHandler(fh)
    return logger


def get_logger(name: str) -> logging.Logger:
    """返回 gateway_core 下的子 logger（handler 由 setup_logger 统一挂载）。"""

    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
