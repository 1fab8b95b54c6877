import asyncio

import pytest

from storage.memory_store import InMemoryStore
from taskagent.errors import RemoteCallFailed


class FakeProvider:
    def __init__(self, response_text: str):
        self._response_text = response_text
        self.calls = []

    def generate(self, *, system: str, user: str, **kwargs) -> str:
        self.calls.append({"system": system, "user": user, **kwargs})
        return self._response_text


class ScriptedProvider:
    """Answers with the first response whose marker appears in the system prompt."""

    def __init__(self, responses: dict, default: str = ""):
        self.responses = responses
        self.default = default
        self.calls = []

    def generate(self, *, system: str, user: str, **kwargs) -> str:
        self.calls.append({"system": system, "user": user, **kwargs})
        for marker, text in self.responses.items():
            if marker in system:
                return text
        return self.default


class FakeDelivery:
    """Records sends; addresses in `failing` raise, as a rejecting provider would."""

    def __init__(self, failing=(), delay_s: float = 0.0):
        self.failing = set(failing)
        self.delay_s = delay_s
        self.sent = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def send(self, *, to, subject, html, track_opens=True, track_clicks=True):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay_s)
            if to in self.failing:
                raise RuntimeError(f"Failed to send email to {to}")
            self.sent.append(
                {"to": to, "subject": subject, "html": html,
                 "track_opens": track_opens, "track_clicks": track_clicks}
            )
        finally:
            self.in_flight -= 1

    async def aclose(self):
        return None


class FakeRenderer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.rendered = []

    async def render(self, html, path):
        if self.fail:
            raise RemoteCallFailed("PDF rendering failed", "browser crashed")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"%PDF-1.4 fake")
        self.rendered.append((html, path))


@pytest.fixture
def fake_provider_factory():
    def _make(response_text: str):
        return FakeProvider(response_text)
    return _make


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def fake_delivery():
    return FakeDelivery()


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def scripted_provider_factory():
    def _make(responses: dict, default: str = ""):
        return ScriptedProvider(responses, default)
    return _make


@pytest.fixture
def delivery_factory():
    def _make(failing=(), delay_s: float = 0.0):
        return FakeDelivery(failing=failing, delay_s=delay_s)
    return _make


@pytest.fixture
def renderer_factory():
    def _make(fail: bool = False):
        return FakeRenderer(fail=fail)
    return _make


@pytest.fixture
def api_factory(store, tmp_path):
    """TestClient with process state swapped for fakes. Startup hooks are not run."""
    from fastapi.testclient import TestClient

    from api import dependencies
    from api.main import app
    from llm.llm_client import LLMClient
    from presentation.presentation_service import PresentationService

    def _make(provider, delivery=None, renderer=None):
        delivery = delivery or FakeDelivery()
        renderer = renderer or FakeRenderer()
        llm = LLMClient(provider=provider)

        app.dependency_overrides[dependencies.get_store] = lambda: store
        app.dependency_overrides[dependencies.get_llm_client] = lambda: llm
        app.dependency_overrides[dependencies.get_delivery] = lambda: delivery
        app.dependency_overrides[dependencies.get_pdf_renderer] = lambda: renderer
        app.dependency_overrides[dependencies.get_presentation_service] = (
            lambda: PresentationService(
                store, renderer, llm_client=llm, uploads_dir=str(tmp_path), url_prefix="/uploads"
            )
        )
        return TestClient(app)

    yield _make

    from api.main import app

    app.dependency_overrides.clear()
