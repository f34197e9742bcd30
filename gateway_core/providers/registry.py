"""Provider 端点配置。

这里只维护请求路径和图片生成的固定参数；base URL 与模型 ID
全部来自 GatewaySettings。"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ImageDefaults:
    """图片生成的固定参数。"""

    n: int = 1
    size: str = "1024x1024"


@dataclass(frozen=True)
class ProviderConfig:
    """相对于 base URL 的端点路径。"""

    chat_path: str = "/chat/completions"
    image_path: str = "/images/generations"
    image_defaults: ImageDefaults = ImageDefaults()


OPENROUTER_CONFIG = ProviderConfig()
