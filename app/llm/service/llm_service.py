from typing import AsyncIterator, List, Tuple

from app.core.errors import ValidationError
from app.core.logger import get_logger
from app.llm.api.dto import ChatRequest, PublicChatRequest
from app.llm.entity.completion import ChatMessage, CompletionResult, RouteContext
from app.llm.service.params import build_messages, normalize_params
from app.llm.service.router_service import ProviderRouter

logger = get_logger(__name__)


class LLMService:
    """Handles high-level LLM generation for the internal and public endpoints."""

    def __init__(self, router: ProviderRouter):
        self.router = router

    @staticmethod
    def _internal_inputs(body: ChatRequest):
        if body.messages is None:
            raise ValidationError("Messages array is required")
        params = normalize_params(
            temperature=body.temperature,
            max_tokens=body.max_tokens,
            top_p=body.top_p,
            frequency_penalty=body.frequency_penalty,
            presence_penalty=body.presence_penalty,
        )
        return build_messages(body.messages, body.system_message), params

    async def chat(self, body: ChatRequest) -> CompletionResult:
        messages, params = self._internal_inputs(body)
        logger.debug(f"chat start | model={body.model} temp={params.temperature} max_tokens={params.max_tokens}")
        return await self.router.complete(messages, body.model, params, RouteContext.INTERNAL)

    async def chat_stream(self, body: ChatRequest) -> Tuple[str, AsyncIterator[str]]:
        """Returns the serving provider and its text fragments."""
        messages, params = self._internal_inputs(body)
        logger.debug(f"chat_stream start | model={body.model} temp={params.temperature} max_tokens={params.max_tokens}")
        return await self.router.open_stream(messages, body.model, params, RouteContext.INTERNAL)

    async def public_chat(self, body: PublicChatRequest) -> CompletionResult:
        if not body.message:
            raise ValidationError("Message is required")
        params = normalize_params(temperature=body.temperature, max_tokens=body.max_tokens)
        messages: List[ChatMessage] = build_messages(
            [ChatMessage(role="user", content=body.message)],
            body.system_prompt,
        )
        return await self.router.complete(messages, body.model, params, RouteContext.PUBLIC)

    def models(self) -> List[dict]:
        return self.router.catalog.list_models()
