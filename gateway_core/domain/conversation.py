from collections import deque
from typing import Deque, Protocol, Tuple

from gateway_core.domain.models import ConversationContext, Turn


class SessionStore(Protocol):
    def recent_turns(self) -> ConversationContext:
        ...

    def add_turn(self, turn: Turn) -> None:
        ...

    def clear(self) -> None:
        ...


class InMemorySessionStore:
    """只保存在内存里的会话，超过 max_turns 时丢弃最早的消息。"""

    def __init__(self, max_turns: int = 20):
        if max_turns < 1:
            raise ValueError("max_turns must be >= 1")
        self._turns: Deque[Turn] = deque(maxlen=max_turns)

    @property
    def max_turns(self) -> int:
        return self._turns.maxlen or 0

    def recent_turns(self) -> Tuple[Turn, ...]:
        # 返回快照，调用期间 store 的变化不会影响已经发出的请求
        return tuple(self._turns)

    def add_turn(self, turn: Turn) -> None:
        self._turns.append(turn)

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)
