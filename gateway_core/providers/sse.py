"""流式响应（server-sent events）解码。

网络分块的边界与行边界并不对齐，因此：

1. SseLineBuffer 负责把分块拼接起来，只有看到换行符后才吐出完整的行，
   末尾不完整的部分留到下一个分块。
2. SseStreamDecoder 逐行处理：只有以 `data: ` 开头的行携带数据；
   `[DONE]` 表示结束，其余内容按 JSON 解析，取 choices[0].delta.content。

JSON 解析失败的行（keep-alive、半截帧等）直接跳过，解码继续。
"""

import json
from typing import Any, Iterator, List, Optional

from gateway_core.infrastructure.logging.logger import get_logger

logger = get_logger("providers.sse")

DATA_PREFIX = "data: "
DONE_MARKER = "[DONE]"


class SseLineBuffer:
    """按换行符切分分块文本，保留末尾残缺行。"""

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, chunk: str) -> List[str]:
        self._pending += chunk
        parts = self._pending.split("\n")
        self._pending = parts.pop()
        return [p[:-1] if p.endswith("\r") else p for p in parts]

    def reset(self) -> None:
        self._pending = ""


def data_payload(line: str) -> Optional[str]:
    """返回 `data: ` 之后的内容；其他行（含空行、注释行）返回 None。"""

    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):]


def extract_fragment(payload: str) -> Optional[str]:
    """从单条 JSON 数据里取出增量文本，没有内容或无法解析时返回 None。"""

    try:
        parsed: Any = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug("Skipping malformed stream line", extra={"extra": {"line": payload[:200]}})
        return None
    if not isinstance(parsed, dict):
        return None
    choices = parsed.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str) and content:
        return content
    return None


class SseStreamDecoder:
    """把分块文本解码成文本片段序列。

    feed() 是生成器：每解出一个片段就立即产出，保持 Provider 的原始顺序。
    遇到 `[DONE]` 后 done 置为 True，之后再 feed 的内容一律忽略。
    """

    def __init__(self) -> None:
        self._lines = SseLineBuffer()
        self.done = False

    def feed(self, chunk: str) -> Iterator[str]:
        if self.done:
            return
        for line in self._lines.feed(chunk):
            payload = data_payload(line)
            if payload is None:
                continue
            if payload.rstrip() == DONE_MARKER:
                self.done = True
                self._lines.reset()
                return
            fragment = extract_fragment(payload)
            if fragment:
                yield fragment


def decode_chunks(chunks) -> Iterator[str]:
    """同步辅助函数：对一组已知分块做完整解码。"""

    decoder = SseStreamDecoder()
    for chunk in chunks:
        yield from decoder.feed(chunk)
        if decoder.done:
            return
