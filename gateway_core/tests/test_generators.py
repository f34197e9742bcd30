import asyncio

import pytest

from gateway_core.domain.exceptions import ProviderRequestError
from gateway_core.domain.models import ChatResult
from gateway_core.generators import DiagramGenerator, ImageGenerator, clean_diagram_source
from gateway_core.providers.registry import OPENROUTER_CONFIG, ImageDefaults


class FakeProvider:
    name = "fake"

    def __init__(self, content="graph TD;A-->B", error=None):
        self.content = content
        self.error = error
        self.chat_calls = []
        self.image_calls = []

    async def chat(self, messages, model=None):
        self.chat_calls.append({"messages": messages, "model": model})
        if self.error:
            raise self.error
        return ChatResult(content=self.content, model="m1")

    async def create_image(self, prompt, *, model=None, n=1, size="1024x1024"):
        self.image_calls.append({"prompt": prompt, "model": model, "n": n, "size": size})
        if self.error:
            raise self.error
        return "https://img.test/x.png"


def test_clean_diagram_source_strips_fences():
    cleaned = clean_diagram_source("```mermaid\ngraph TD;A-->B\n```")
    assert cleaned == "graph TD;A-->B"
    assert clean_diagram_source(cleaned) == cleaned


@pytest.mark.parametrize(
    "raw",
    [
        "  \n```\nsequenceDiagram\n  A->>B: hi\n```\n ",
        "graph LR\n  A --> B",
        "``````mermaid\ngraph TD\n```",
        "text ```mermaid\n``` more",
        "`` ```` ``",
    ],
)
def test_clean_diagram_source_is_idempotent(raw):
    once = clean_diagram_source(raw)
    assert clean_diagram_source(once) == once
    assert "```" not in once


def test_clean_diagram_source_keeps_inner_content():
    raw = "```mermaid\ngraph TD\n  A[Start] --> B{Ok?}\n  B -->|yes| C\n```"
    assert clean_diagram_source(raw) == "graph TD\n  A[Start] --> B{Ok?}\n  B -->|yes| C"


def test_diagram_generator_uses_template_and_empty_context():
    provider = FakeProvider(content="\n```mermaid\ngraph TD;A-->B\n```\n")
    events = []

    class Sink:
        def emit(self, event):
            events.append(event)

    gen = DiagramGenerator(provider, event_sink=Sink())
    out = asyncio.run(gen.generate("login flow"))

    assert out == "graph TD;A-->B"
    messages = provider.chat_calls[0]["messages"]
    assert len(messages) == 1
    assert messages[0]["role"] == "user"
    assert messages[0]["content"].startswith("Generate a mermaid diagram for: login flow\n\n")
    assert "Return ONLY the mermaid code" in messages[0]["content"]
    assert events[-1].operation == "generate_diagram"
    assert events[-1].extra["length"] == len(out)


def test_diagram_generator_propagates_provider_error():
    err = ProviderRequestError(code="API_ERROR", message="bad", http_status=500)
    gen = DiagramGenerator(FakeProvider(error=err), event_sink=type("S", (), {"emit": lambda self, e: None})())
    with pytest.raises(ProviderRequestError) as exc_info:
        asyncio.run(gen.generate("x"))
    assert exc_info.value is err


def test_image_generator_uses_fixed_defaults():
    provider = FakeProvider()
    url = asyncio.run(ImageGenerator(provider).generate("a red fox"))
    assert url == "https://img.test/x.png"
    assert provider.image_calls == [
        {"prompt": "a red fox", "model": None, "n": 1, "size": "1024x1024"}
    ]


def test_image_generator_custom_defaults():
    provider = FakeProvider()
    asyncio.run(ImageGenerator(provider, defaults=ImageDefaults(n=2, size="512x512")).generate("a fox"))
    assert provider.image_calls[0]["n"] == 2
    assert provider.image_calls[0]["size"] == "512x512"


def test_endpoint_paths():
    assert OPENROUTER_CONFIG.chat_path == "/chat/completions"
    assert OPENROUTER_CONFIG.image_path == "/images/generations"
    assert OPENROUTER_CONFIG.image_defaults == ImageDefaults(n=1, size="1024x1024")
