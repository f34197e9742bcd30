from typing import Any, Dict, List, Optional

import pytest


class SettingsStub:
    openrouter_api_key = "k"
    openrouter_base_url = "https://openrouter.test/api/v1"
    openrouter_model = "test/chat"
    openrouter_image_model = "test/image"
    http_timeout = None
    event_log_file = None
    max_context_turns = 20
    log_dir = "logs"
    log_level = "INFO"
    log_redact_content = False


class RecordingSink:
    def __init__(self):
        self.events = []

    def emit(self, event):
        self.events.append(event)


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        chunks: Optional[List[Any]] = None,
        text: str = "",
    ):
        self.status_code = status_code
        self._body = body
        self._chunks = list(chunks or [])
        self.text = text
        self.closed = False
        self.read_called = False

    def json(self):
        if self._body is None:
            raise ValueError("no json body")
        return self._body

    async def aread(self):
        self.read_called = True
        return self.text.encode("utf-8")

    async def aiter_text(self):
        for chunk in self._chunks:
            # 允许在分块序列里放异常，用来模拟连接中途断开
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk


class FakeHttp:
    """记录请求并返回预设响应的假 httpx.AsyncClient。"""

    def __init__(self):
        self.response: FakeResponse = FakeResponse(body={})
        self.error: Optional[Exception] = None
        self.requests: List[Dict[str, Any]] = []
        self.client_kwargs: Dict[str, Any] = {}

    def install(self, monkeypatch):
        fake = self

        class StreamContext:
            def __init__(self, response):
                self._response = response

            async def __aenter__(self):
                if fake.error is not None:
                    raise fake.error
                return self._response

            async def __aexit__(self, *args):
                self._response.closed = True
                return False

        class Client:
            def __init__(self, *a, **kw):
                fake.client_kwargs = kw

            async def __aenter__(self):
                return self

            async def __aexit__(self, *a):
                return False

            async def post(self, url, json=None, headers=None, **_):
                fake.requests.append({"url": url, "json": json, "headers": headers})
                if fake.error is not None:
                    raise fake.error
                return fake.response

            def stream(self, method, url, json=None, headers=None, **_):
                fake.requests.append({"method": method, "url": url, "json": json, "headers": headers})
                return StreamContext(fake.response)

        monkeypatch.setattr("httpx.AsyncClient", Client)
        return self


@pytest.fixture
def settings_stub():
    return SettingsStub()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def fake_http(monkeypatch):
    return FakeHttp().install(monkeypatch)


@pytest.fixture
def make_response():
    return FakeResponse
