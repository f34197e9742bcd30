"""领域层模型与协议。

包含：
- models: Turn / ChatUsage / ChatResult / CallEvent 等共享数据结构。
- composer: 把历史上下文与新输入组装成请求消息列表。
- conversation: SessionStore 协议及内存实现。
- exceptions: 业务异常类型定义。
"""
