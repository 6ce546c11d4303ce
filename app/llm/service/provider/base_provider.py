# app/llm/service/provider/base_provider.py
from abc import ABC, abstractmethod
from typing import AsyncIterator, List

from app.core.errors import EmptyResponseError
from app.llm.entity.completion import ChatMessage, CompletionResult, GenerationParams, Usage


class BaseProvider(ABC):
    """Abstract base provider for the upstream completion services."""

    name: str = "base"

    @abstractmethod
    async def probe(self) -> None:
        """Cheap capability call; raises when the provider is unreachable."""

    @abstractmethod
    async def complete(self, messages: List[ChatMessage], model: str, params: GenerationParams) -> CompletionResult:
        """Single non-streaming completion against the real ``model`` id."""

    @abstractmethod
    async def open_stream(self, messages: List[ChatMessage], model: str, params: GenerationParams) -> AsyncIterator[str]:
        """Open the upstream stream and return its text fragments lazily."""

    def is_enabled(self) -> bool:
        """Whether this provider is enabled/usable (e.g., API key present)."""
        return True

    async def aclose(self) -> None:
        return None

    @staticmethod
    def _payload_messages(messages: List[ChatMessage]) -> List[dict]:
        return [{"role": m.role, "content": m.content} for m in messages]

    def _to_result(self, data: dict, model: str) -> CompletionResult:
        """Map an OpenAI-shaped response dict; ``model`` is what the caller sees."""
        choices = data.get("choices") or []
        if not choices:
            raise EmptyResponseError(
                "Failed to generate response",
                details=f"{self.name} returned no choices",
                provider=self.name,
            )
        message = choices[0].get("message") or {}
        usage = data.get("usage")
        return CompletionResult(
            message=ChatMessage(role=message.get("role") or "assistant", content=message.get("content") or ""),
            usage=Usage(**{k: usage.get(k) or 0 for k in ("prompt_tokens", "completion_tokens", "total_tokens")})
            if usage else None,
            model=model,
            provider=self.name,
        )
