"""统一的对话与结果数据模型。

本模块定义了网关各组件共享的标准数据结构：

- Turn: 一条对话消息（system/user/assistant），创建后不可变。
- ChatUsage: Provider 返回的 token 统计。
- ChatResult: 一次同步对话调用的结果。
- CallEvent: 每次调用完成或失败时发出的观测记录。

流式片段（StreamFragment）、图表源码（DiagramSource）和图片地址
（ImageReference）都只是 str，这里只提供类型别名。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Mapping, Optional, Sequence


# 消息角色（与 OpenAI / OpenRouter 的 role 字段对应）
Role = Literal["system", "user", "assistant"]

StreamFragment = str
DiagramSource = str
ImageReference = str


@dataclass(frozen=True)
class Turn:
    """一条对话消息。

    - role: 消息角色。
    - content: 纯文本内容，核心层不做任何校验或改写。
    - meta: 附加元数据（模型、token 统计等），不发给 Provider，
      也不参与相等比较。
    """

    role: Role
    content: str
    meta: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


# 会话上下文：按时间顺序（最早在前）排列的历史消息，调用期间只读
ConversationContext = Sequence[Turn]


@dataclass(frozen=True)
class ChatUsage:
    """Provider 返回的 token 统计信息，字段缺失时为 None。"""

    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ChatUsage":
        return cls(
            prompt_tokens=data.get("prompt_tokens"),
            completion_tokens=data.get("completion_tokens"),
            total_tokens=data.get("total_tokens"),
        )

    def to_dict(self) -> Dict[str, int]:
        """只返回 Provider 实际给出的字段。"""

        out: Dict[str, int] = {}
        if self.prompt_tokens is not None:
            out["prompt_tokens"] = self.prompt_tokens
        if self.completion_tokens is not None:
            out["completion_tokens"] = self.completion_tokens
        if self.total_tokens is not None:
            out["total_tokens"] = self.total_tokens
        return out


@dataclass(frozen=True)
class ChatResult:
    """一次同步对话调用的最终结果。

    - content: 第一个候选回答的文本。
    - model: Provider 实际使用的模型（可能与请求的不同，例如发生了回退）。
    - usage: 可选的 token 使用统计。
    """

    content: str
    model: str
    usage: Optional[ChatUsage] = None


@dataclass
class CallEvent:
    """一次调用的观测记录，交给 EventSink 处理。"""

    operation: str
    model: Optional[str] = None
    usage: Optional[ChatUsage] = None
    error: Optional[str] = None
    status: Optional[int] = None
    duration_ms: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "operation": self.operation,
            "ok": self.ok,
            "model": self.model,
            "usage": self.usage.to_dict() if self.usage else None,
            "duration_ms": self.duration_ms,
        }
        if not self.ok:
            payload["error"] = self.error
            payload["status"] = self.status
        payload.update(self.extra)
        return payload
