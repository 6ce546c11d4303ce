# app/llm/service/provider/openai_provider.py
from typing import Any, AsyncIterator, List, Optional

from openai import AsyncOpenAI

from app.core.config import Settings, settings as default_settings
from app.core.errors import UpstreamError
from app.llm.entity.completion import ChatMessage, CompletionResult, GenerationParams
from app.llm.service.streaming import iter_sdk_content
from .base_provider import BaseProvider


class OpenAIProvider(BaseProvider):
    """Primary provider, reached through the official async SDK."""

    name = "openai"

    def __init__(self, settings: Optional[Settings] = None, client: Optional[AsyncOpenAI] = None):
        settings = settings or default_settings
        self.api_key = settings.OPENAI_API_KEY
        self._enabled = bool(self.api_key) or client is not None
        # SDK retries are disabled; the router owns the single fallback.
        self.client = client or (
            AsyncOpenAI(
                api_key=self.api_key,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.REQUEST_TIMEOUT_MS / 1000,
                max_retries=0,
            )
            if self.api_key
            else None
        )

    def is_enabled(self) -> bool:
        return self._enabled

    def _require_client(self) -> AsyncOpenAI:
        if self.client is None:
            raise UpstreamError("OpenAI disabled", details="missing OPENAI_API_KEY", provider=self.name)
        return self.client

    async def probe(self) -> None:
        await self._require_client().models.list()

    def _request_kwargs(self, messages: List[ChatMessage], model: str, params: GenerationParams) -> dict:
        return {
            "model": model,
            "messages": self._payload_messages(messages),
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "top_p": params.top_p,
            "frequency_penalty": params.frequency_penalty,
            "presence_penalty": params.presence_penalty,
        }

    async def complete(self, messages: List[ChatMessage], model: str, params: GenerationParams) -> CompletionResult:
        client = self._require_client()
        try:
            resp = await client.chat.completions.create(**self._request_kwargs(messages, model, params))
        except Exception as e:
            raise UpstreamError("Failed to generate response", details=str(e), provider=self.name) from e
        return self._to_result(resp.model_dump(), model)

    async def open_stream(self, messages: List[ChatMessage], model: str, params: GenerationParams) -> AsyncIterator[str]:
        client = self._require_client()
        try:
            stream = await client.chat.completions.create(
                **self._request_kwargs(messages, model, params),
                stream=True,
            )
        except Exception as e:
            raise UpstreamError("Failed to generate response", details=str(e), provider=self.name) from e
        return self._relay(stream)

    async def _relay(self, stream: Any) -> AsyncIterator[str]:
        try:
            async for fragment in iter_sdk_content(stream):
                yield fragment
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                await close()

    # Fine-tuning passthroughs

    async def upload_file(self, filename: str, content: bytes) -> Any:
        return await self._require_client().files.create(file=(filename, content), purpose="fine-tune")

    async def create_fine_tune_job(self, **kwargs) -> Any:
        return await self._require_client().fine_tuning.jobs.create(**kwargs)

    async def list_fine_tune_jobs(self) -> List[Any]:
        page = await self._require_client().fine_tuning.jobs.list()
        return list(page.data)

    async def retrieve_fine_tune_job(self, job_id: str) -> Any:
        return await self._require_client().fine_tuning.jobs.retrieve(job_id)

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()
