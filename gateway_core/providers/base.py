"""Provider 抽象接口。

服务层与派生生成器（图表、图片）不直接依赖具体的 HTTP 实现，而是依赖此协议：

- chat(messages): 一次非流式调用，返回 ChatResult。
- chat_stream(messages): 流式调用，逐个产出文本片段。
- create_image(prompt): 调用图片生成端点，返回图片 URL。

测试里可以用任何实现了这些方法的假对象替换真实客户端。
"""

from typing import AsyncIterator, Dict, List, Optional, Protocol

from gateway_core.domain.models import ChatResult, ImageReference


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。"""

    name: str

    async def chat(self, messages: List[Dict[str, str]], model: Optional[str] = None) -> ChatResult:
        ...

    def chat_stream(
        self, messages: List[Dict[str, str]], model: Optional[str] = None
    ) -> AsyncIterator[str]:
        """返回一个异步迭代器，逐步产出增量文本；提前停止迭代时需要 aclose()。"""

        ...

    async def create_image(
        self,
        prompt: str,
        *,
        model: Optional[str] = None,
        n: int = 1,
        size: str = "1024x1024",
    ) -> ImageReference:
        ...
