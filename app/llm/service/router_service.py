# app/llm/service/router_service.py
import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Tuple

from app.core.errors import BothProvidersFailedError, ProxyError, UpstreamError
from app.core.logger import get_logger
from app.llm.entity.completion import ChatMessage, CompletionResult, GenerationParams, RouteContext
from app.llm.service.model_catalog import ModelCatalog
from app.llm.service.provider.base_provider import BaseProvider

logger = get_logger("ProviderRouter")


@dataclass
class Route:
    provider: BaseProvider
    model: str


@dataclass
class Attempt:
    """Tagged outcome of one provider call: either ``result`` or ``error`` is set."""
    provider: str
    result: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ProviderRouter:
    """
    Chooses the upstream for a virtual model and coordinates the single fallback.

    Internal requests probe the primary and use it when reachable; if the
    primary call then fails, the secondary is tried exactly once. Public
    requests always go to the secondary and never fall back.
    """

    def __init__(
        self,
        primary: BaseProvider,
        secondary: BaseProvider,
        catalog: ModelCatalog,
        probe_timeout_ms: int = 5000,
    ):
        self.primary = primary
        self.secondary = secondary
        self.catalog = catalog
        self.probe_timeout_ms = probe_timeout_ms

    @property
    def providers(self) -> List[BaseProvider]:
        return [self.primary, self.secondary]

    async def primary_available(self) -> bool:
        if not self.primary.is_enabled():
            logger.info(f"Primary provider {self.primary.name} disabled; routing to {self.secondary.name}")
            return False
        try:
            await asyncio.wait_for(self.primary.probe(), self.probe_timeout_ms / 1000)
            return True
        except Exception as e:
            logger.warning(f"Primary provider probe failed: {type(e).__name__}: {e}")
            return False

    def _route_for(self, provider: BaseProvider, virtual_id: str) -> Route:
        return Route(provider=provider, model=self.catalog.resolve(virtual_id, provider.name))

    async def select(self, virtual_id: str, context: RouteContext) -> Route:
        if context == RouteContext.PUBLIC:
            return self._route_for(self.secondary, virtual_id)
        if await self.primary_available():
            return self._route_for(self.primary, virtual_id)
        return self._route_for(self.secondary, virtual_id)

    async def _attempt(self, route: Route, call: Callable[[Route], Awaitable[Any]]) -> Attempt:
        try:
            return Attempt(provider=route.provider.name, result=await call(route))
        except Exception as e:
            if not isinstance(e, ProxyError):
                e = UpstreamError("Failed to generate response", details=str(e), provider=route.provider.name)
            logger.error(f"Provider {route.provider.name} ({route.model}) failed: {e.message} | {e.details}")
            return Attempt(provider=route.provider.name, error=e)

    async def _run(self, virtual_id: str, context: RouteContext, call: Callable[[Route], Awaitable[Any]]) -> Attempt:
        route = await self.select(virtual_id, context)
        first = await self._attempt(route, call)
        if first.ok:
            return first
        if route.provider is not self.primary:
            raise first.error

        logger.warning(f"Falling back from {self.primary.name} to {self.secondary.name} for model={virtual_id}")
        second = await self._attempt(self._route_for(self.secondary, virtual_id), call)
        if second.ok:
            return second
        raise BothProvidersFailedError(first.error, second.error)

    async def complete(
        self,
        messages: List[ChatMessage],
        virtual_id: Optional[str],
        params: GenerationParams,
        context: RouteContext = RouteContext.INTERNAL,
    ) -> CompletionResult:
        model = self.catalog.get(virtual_id)
        attempt = await self._run(
            model.id,
            context,
            lambda route: route.provider.complete(messages, route.model, params),
        )
        return attempt.result.model_copy(update={"model": model.id})

    async def open_stream(
        self,
        messages: List[ChatMessage],
        virtual_id: Optional[str],
        params: GenerationParams,
        context: RouteContext = RouteContext.INTERNAL,
    ) -> Tuple[str, AsyncIterator[str]]:
        """Fallback covers opening the stream only; later failures truncate it."""
        model = self.catalog.get(virtual_id)
        attempt = await self._run(
            model.id,
            context,
            lambda route: route.provider.open_stream(messages, route.model, params),
        )
        return attempt.provider, attempt.result

    async def aclose(self) -> None:
        for provider in self.providers:
            await provider.aclose()

    def __repr__(self):
        return f"<ProviderRouter primary={self.primary.name} secondary={self.secondary.name}>"
