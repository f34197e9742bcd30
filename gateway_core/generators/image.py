"""图片生成：直接走 Provider 的 images/generations 端点，每次调用相互独立。"""

from typing import Optional

from gateway_core.domain.models import ImageReference
from gateway_core.providers.base import ProviderClient
from gateway_core.providers.registry import OPENROUTER_CONFIG, ImageDefaults


class ImageGenerator:
    def __init__(self, client: ProviderClient, defaults: ImageDefaults = OPENROUTER_CONFIG.image_defaults):
        self._client = client
        self._defaults = defaults

    async def generate(self, prompt: str, model: Optional[str] = None) -> ImageReference:
        return await self._client.create_image(
            prompt,
            model=model,
            n=self._defaults.n,
            size=self._defaults.size,
        )
