"""Gateway Core 顶层包。

该包提供访问 OpenRouter（OpenAI 兼容接口）的异步网关，
包括配置加载、领域模型、请求组装、同步与流式对话、
mermaid 图表生成、图片生成以及调用事件记录等能力。
"""

from gateway_core.api.service import GatewayService
from gateway_core.config.settings import GatewaySettings, load_settings
from gateway_core.domain.composer import compose_messages
from gateway_core.domain.models import ChatResult, ChatUsage, Turn
from gateway_core.providers.openrouter_client import OpenRouterClient

__all__ = [
    "ChatResult",
    "ChatUsage",
    "GatewayService",
    "GatewaySettings",
    "OpenRouterClient",
    "Turn",
    "compose_messages",
    "load_settings",
]
