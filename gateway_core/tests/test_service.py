import asyncio

import pytest

from gateway_core.api.service import GatewayService
from gateway_core.config.settings import load_settings
from gateway_core.domain.conversation import InMemorySessionStore
from gateway_core.domain.exceptions import NetworkError, ProviderRequestError
from gateway_core.domain.models import ChatResult, ChatUsage, Turn


class FakeProvider:
    name = "fake"

    def __init__(self):
        self.chat_messages = []
        self.stream_messages = []
        self.fragments = ["Hel", "lo"]
        self.stream_error = None
        self.chat_error = None
        self.stream_closed = False

    async def chat(self, messages, model=None):
        self.chat_messages.append(messages)
        if self.chat_error:
            raise self.chat_error
        return ChatResult(content="Fine", model="m1", usage=ChatUsage(total_tokens=12))

    async def chat_stream(self, messages, model=None):
        self.stream_messages.append(messages)
        try:
            for fragment in self.fragments:
                yield fragment
            if self.stream_error:
                raise self.stream_error
        finally:
            self.stream_closed = True

    async def create_image(self, prompt, *, model=None, n=1, size="1024x1024"):
        return "https://img.test/x.png"


@pytest.fixture
def service(tmp_path, sink):
    settings = load_settings(openrouter_api_key="k", log_dir=str(tmp_path / "logs"))
    provider = FakeProvider()
    svc = GatewayService(settings, session=InMemorySessionStore(10), client=provider, event_sink=sink)
    return svc, provider


def test_send_chat_message_records_turns(service):
    svc, provider = service
    svc.session.add_turn(Turn(role="user", content="hello"))

    res = asyncio.run(svc.send_chat_message("how are you"))

    assert res == {"success": True, "response": "Fine", "model": "m1", "usage": {"total_tokens": 12}}
    assert provider.chat_messages[0] == [
        {"role": "user", "content": "hello"},
        {"role": "user", "content": "how are you"},
    ]
    assert svc.get_session_history() == [
        {"role": "user", "content": "hello"},
        {"role": "user", "content": "how are you"},
        {"role": "assistant", "content": "Fine"},
    ]


def test_send_chat_message_error_envelope(service):
    svc, provider = service
    provider.chat_error = ProviderRequestError(code="API_ERROR", message="Insufficient credits", http_status=402)
    res = asyncio.run(svc.send_chat_message("hi"))
    assert res == {"success": False, "error": "Insufficient credits"}
    assert svc.get_session_history() == [{"role": "user", "content": "hi"}]


def test_send_chat_stream_relays_fragments(service):
    svc, provider = service
    chunks = []
    completed = []

    async def on_complete():
        completed.append(True)

    res = asyncio.run(svc.send_chat_stream("hi", chunks.append, on_complete))

    assert res == {"success": True}
    assert chunks == ["Hel", "lo"]
    assert completed == [True]
    assert provider.stream_closed
    assert svc.get_session_history()[-1] == {"role": "assistant", "content": "Hello"}


def test_send_chat_stream_failure_skips_complete(service):
    svc, provider = service
    provider.stream_error = NetworkError(code="NETWORK_ERROR", message="connection reset")
    chunks = []
    completed = []

    res = asyncio.run(svc.send_chat_stream("hi", chunks.append, lambda: completed.append(True)))

    assert res == {"success": False, "error": "connection reset"}
    assert chunks == ["Hel", "lo"]
    assert completed == []
    assert provider.stream_closed


def test_send_chat_stream_closes_stream_when_callback_raises(service):
    svc, provider = service

    def on_chunk(fragment):
        raise RuntimeError("renderer gone")

    with pytest.raises(RuntimeError):
        asyncio.run(svc.send_chat_stream("hi", on_chunk))
    assert provider.stream_closed


def test_generate_diagram_and_image(service):
    svc, provider = service
    provider_result = asyncio.run(svc.generate_diagram("a flow"))
    assert provider_result == {"success": True, "diagram": "Fine"}
    assert asyncio.run(svc.generate_image("a cat")) == {
        "success": True,
        "image_url": "https://img.test/x.png",
    }
    # 图表调用不带历史，也不写入会话
    assert len(provider.chat_messages[0]) == 1
    assert svc.get_session_history() == []


def test_clear_session(service):
    svc, _ = service
    asyncio.run(svc.send_chat_message("hi"))
    svc.clear_session()
    assert svc.get_session_history() == []


def test_service_does_not_touch_logging_setup(tmp_path, sink):
    log_dir = tmp_path / "service-logs"
    settings = load_settings(openrouter_api_key="k", log_dir=str(log_dir))
    GatewayService(settings, client=FakeProvider(), event_sink=sink)
    assert not log_dir.exists()


def test_assistant_turn_keeps_model_and_usage(service):
    svc, _ = service
    asyncio.run(svc.send_chat_message("hi"))
    assistant = svc.session.recent_turns()[-1]
    assert assistant.meta == {"model": "m1", "usage": {"total_tokens": 12}}
    # meta 只留在会话里，不进入发给 Provider 的消息
    assert assistant.to_payload() == {"role": "assistant", "content": "Fine"}
    assert assistant == Turn(role="assistant", content="Fine")


def test_streamed_assistant_turn_meta(service):
    svc, _ = service
    asyncio.run(svc.send_chat_stream("hi", lambda fragment: None))
    assert svc.session.recent_turns()[-1].meta == {"streamed": True, "fragments": 2}
