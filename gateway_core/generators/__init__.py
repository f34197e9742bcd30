"""派生生成器：在对话 / 图片端点之上加模板与后处理。"""

from gateway_core.generators.diagram import DiagramGenerator, clean_diagram_source
from gateway_core.generators.image import ImageGenerator

__all__ = ["DiagramGenerator", "ImageGenerator", "clean_diagram_source"]
