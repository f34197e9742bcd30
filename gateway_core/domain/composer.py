"""请求组装：历史上下文 + 新的用户输入 -> 发给 Provider 的消息列表。

结果总是 `[...context 原顺序, 新的 user 消息]`，不丢弃、不去重、不重排，
也不校验内容（空字符串、超长等交给 Provider 拒绝）。
"""

from typing import Dict, List

from gateway_core.domain.models import ConversationContext, Turn


def compose_turns(context: ConversationContext, user_input: str) -> List[Turn]:
    turns = list(context)
    turns.append(Turn(role="user", content=user_input))
    return turns


def compose_messages(context: ConversationContext, user_input: str) -> List[Dict[str, str]]:
    """返回可直接放进请求体 `messages` 字段的 dict 列表。"""

    return [t.to_payload() for t in compose_turns(context, user_input)]
