"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 端点与默认模型 (registry)。
- 流式响应解码 (sse)。
- OpenRouter 的具体实现 (openrouter_client)。
"""

from typing import Optional

from gateway_core.config.settings import GatewaySettings
from gateway_core.infrastructure.events import EventSink
from gateway_core.providers.base import ProviderClient
from gateway_core.providers.openrouter_client import OpenRouterClient


def create_provider(settings: GatewaySettings, event_sink: Optional[EventSink] = None) -> ProviderClient:
    """根据配置创建 Provider 实例。"""

    return OpenRouterClient(settings, event_sink=event_sink)


__all__ = ["ProviderClient", "OpenRouterClient", "create_provider"]
