# tests/conftest.py
"""
Shared fixtures: in-process fake providers and an app wired around them.

The fakes implement the provider interface without any network access and
record every call, so tests can assert exactly how often each upstream was hit.
"""

from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.llm.entity.completion import ChatMessage, CompletionResult, GenerationParams, Usage
from app.llm.service.model_catalog import ModelCatalog
from app.llm.service.provider.base_provider import BaseProvider
from app.llm.service.router_service import ProviderRouter
from main import create_app
from pkg.rate_limit.store import FixedWindowCounterStore


class FakeProvider(BaseProvider):
    def __init__(
        self,
        name: str,
        reply: str = "Hello from fake",
        fragments: Optional[List[str]] = None,
        fail: Optional[Exception] = None,
        probe_error: Optional[Exception] = None,
        mid_stream_error: Optional[Exception] = None,
        enabled: bool = True,
    ):
        self.name = name
        self.reply = reply
        self.fragments = fragments if fragments is not None else ["Hel", "lo"]
        self.fail = fail
        self.probe_error = probe_error
        self.mid_stream_error = mid_stream_error
        self.enabled = enabled
        self.probe_calls = 0
        self.complete_calls = []
        self.stream_calls = []
        self.closed = False

    def is_enabled(self) -> bool:
        return self.enabled

    async def probe(self) -> None:
        self.probe_calls += 1
        if self.probe_error:
            raise self.probe_error

    async def complete(self, messages: List[ChatMessage], model: str, params: GenerationParams) -> CompletionResult:
        self.complete_calls.append((messages, model, params))
        if self.fail:
            raise self.fail
        return CompletionResult(
            message=ChatMessage(role="assistant", content=self.reply),
            usage=Usage(prompt_tokens=3, completion_tokens=5, total_tokens=8),
            model=model,
            provider=self.name,
        )

    async def open_stream(self, messages: List[ChatMessage], model: str, params: GenerationParams):
        self.stream_calls.append((messages, model, params))
        if self.fail:
            raise self.fail
        return self._fragments()

    async def _fragments(self):
        for fragment in self.fragments:
            yield fragment
        if self.mid_stream_error:
            raise self.mid_stream_error

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        OPENAI_API_KEY="sk-test-openai",
        DEEPSEEK_API_KEY="sk-test-deepseek",
        VIRTUAL_MODEL="gpt-5",
        PRIMARY_MODEL="gpt-4o",
        SECONDARY_MODEL="deepseek-chat",
        CLIENT_URL="http://localhost:5173",
        MAX_UPLOAD_BYTES=1024,
    )


@pytest.fixture
def primary():
    return FakeProvider("openai", reply="primary answer")


@pytest.fixture
def secondary():
    return FakeProvider("deepseek", reply="secondary answer")


@pytest.fixture
def catalog(settings):
    return ModelCatalog.from_settings(settings)


@pytest.fixture
def provider_router(primary, secondary, catalog):
    return ProviderRouter(primary, secondary, catalog, probe_timeout_ms=1000)


@pytest.fixture
def rate_limit_store():
    return FixedWindowCounterStore(max_requests=100, window_seconds=900)


@pytest.fixture
def app(settings, primary, secondary, rate_limit_store):
    return create_app(settings, primary=primary, secondary=secondary, rate_limit_store=rate_limit_store)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def chat_body():
    return {
        "messages": [{"role": "user", "content": "Hi there"}],
        "model": "gpt-5",
    }
