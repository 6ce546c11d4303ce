# tests/test_router_service.py
"""
Routing decisions and the single-retry fallback, exercised with fake providers.
"""

import asyncio

import pytest

from app.core.errors import BothProvidersFailedError, UpstreamError, ValidationError
from app.llm.entity.completion import ChatMessage, RouteContext
from app.llm.service.params import normalize_params

MESSAGES = [ChatMessage(role="user", content="hello")]


class TestSelection:
    @pytest.mark.asyncio
    async def test_internal_uses_primary_when_probe_succeeds(self, provider_router, primary):
        route = await provider_router.select("gpt-5", RouteContext.INTERNAL)
        assert route.provider is primary
        assert route.model == "gpt-4o"
        assert primary.probe_calls == 1

    @pytest.mark.asyncio
    async def test_internal_uses_secondary_when_probe_fails(self, provider_router, primary, secondary):
        primary.probe_error = RuntimeError("connection refused")
        route = await provider_router.select("gpt-5", RouteContext.INTERNAL)
        assert route.provider is secondary
        assert route.model == "deepseek-chat"

    @pytest.mark.asyncio
    async def test_slow_probe_counts_as_unavailable(self, provider_router, primary, secondary):
        async def hang():
            await asyncio.sleep(5)

        primary.probe = hang
        provider_router.probe_timeout_ms = 10
        route = await provider_router.select("gpt-5", RouteContext.INTERNAL)
        assert route.provider is secondary

    @pytest.mark.asyncio
    async def test_disabled_primary_is_not_probed(self, provider_router, primary, secondary):
        primary.enabled = False
        route = await provider_router.select("gpt-5", RouteContext.INTERNAL)
        assert route.provider is secondary
        assert primary.probe_calls == 0

    @pytest.mark.asyncio
    async def test_public_always_secondary_without_probe(self, provider_router, primary, secondary):
        route = await provider_router.select("gpt-5", RouteContext.PUBLIC)
        assert route.provider is secondary
        assert primary.probe_calls == 0

    @pytest.mark.asyncio
    async def test_unknown_virtual_model_is_rejected(self, provider_router, primary):
        with pytest.raises(ValidationError):
            await provider_router.complete(MESSAGES, "gpt-2", normalize_params())
        assert primary.complete_calls == []


class TestFallback:
    @pytest.mark.asyncio
    async def test_primary_success_echoes_virtual_model(self, provider_router, primary, secondary):
        result = await provider_router.complete(MESSAGES, "gpt-5", normalize_params())
        assert result.provider == "openai"
        assert result.model == "gpt-5"
        assert result.message.content == "primary answer"
        assert secondary.complete_calls == []

    @pytest.mark.asyncio
    async def test_missing_model_uses_default_virtual_model(self, provider_router):
        result = await provider_router.complete(MESSAGES, None, normalize_params())
        assert result.model == "gpt-5"

    @pytest.mark.asyncio
    async def test_primary_failure_falls_back_once_with_same_params(self, provider_router, primary, secondary):
        primary.fail = UpstreamError("Failed to generate response", details="boom", provider="openai")
        params = normalize_params(temperature=9, max_tokens=50)

        result = await provider_router.complete(MESSAGES, "gpt-5", params)

        assert result.provider == "deepseek"
        assert result.model == "gpt-5"
        assert len(primary.complete_calls) == 1
        assert len(secondary.complete_calls) == 1
        _, secondary_model, secondary_params = secondary.complete_calls[0]
        assert secondary_model == "deepseek-chat"
        assert secondary_params == params

    @pytest.mark.asyncio
    async def test_both_failing_raises_single_combined_error(self, provider_router, primary, secondary):
        primary.fail = UpstreamError("Failed to generate response", details="primary down", provider="openai")
        secondary.fail = UpstreamError("Failed to generate response", details="secondary down", provider="deepseek")

        with pytest.raises(BothProvidersFailedError) as excinfo:
            await provider_router.complete(MESSAGES, "gpt-5", normalize_params())

        assert excinfo.value.details == "primary down"
        assert len(primary.complete_calls) == 1
        assert len(secondary.complete_calls) == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped_and_falls_back(self, provider_router, primary, secondary):
        primary.fail = KeyError("choices")
        result = await provider_router.complete(MESSAGES, "gpt-5", normalize_params())
        assert result.provider == "deepseek"

    @pytest.mark.asyncio
    async def test_no_fallback_when_secondary_was_selected(self, provider_router, primary, secondary):
        primary.probe_error = RuntimeError("down")
        secondary.fail = UpstreamError("Failed to generate response", details="quota", provider="deepseek")

        with pytest.raises(UpstreamError) as excinfo:
            await provider_router.complete(MESSAGES, "gpt-5", normalize_params())

        assert excinfo.value.details == "quota"
        assert primary.complete_calls == []
        assert len(secondary.complete_calls) == 1

    @pytest.mark.asyncio
    async def test_public_failure_is_terminal(self, provider_router, primary, secondary):
        secondary.fail = UpstreamError("Failed to generate response", details="quota", provider="deepseek")
        with pytest.raises(UpstreamError):
            await provider_router.complete(MESSAGES, "gpt-5", normalize_params(), RouteContext.PUBLIC)
        assert primary.complete_calls == []
        assert len(secondary.complete_calls) == 1


class TestStreamRouting:
    @pytest.mark.asyncio
    async def test_stream_open_failure_falls_back(self, provider_router, primary, secondary):
        primary.fail = UpstreamError("Failed to generate response", details="boom", provider="openai")
        secondary.fragments = ["fall", "back"]

        provider, fragments = await provider_router.open_stream(MESSAGES, "gpt-5", normalize_params())

        assert provider == "deepseek"
        assert [f async for f in fragments] == ["fall", "back"]
        assert len(secondary.stream_calls) == 1

    @pytest.mark.asyncio
    async def test_stream_uses_primary_when_healthy(self, provider_router, primary, secondary):
        provider, fragments = await provider_router.open_stream(MESSAGES, "gpt-5", normalize_params())
        assert provider == "openai"
        assert [f async for f in fragments] == ["Hel", "lo"]
        assert secondary.stream_calls == []

    @pytest.mark.asyncio
    async def test_aclose_releases_both_providers(self, provider_router, primary, secondary):
        await provider_router.aclose()
        assert primary.closed and secondary.closed
