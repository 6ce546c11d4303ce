# app/llm/service/provider/deepseek.py
import httpx
from typing import AsyncIterator, List, Optional

from app.core.config import Settings, settings as default_settings
from app.core.errors import UpstreamError
from app.core.logger import get_logger
from app.llm.entity.completion import ChatMessage, CompletionResult, GenerationParams
from app.llm.service.streaming import iter_sse_content
from .base_provider import BaseProvider


class DeepSeekProvider(BaseProvider):
    """Secondary provider, spoken to over raw HTTP (OpenAI-compatible wire format)."""

    name = "deepseek"

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        settings = settings or default_settings
        self.api_key = settings.DEEPSEEK_API_KEY
        self.endpoint = settings.DEEPSEEK_BASE_URL.rstrip("/")
        self._enabled = bool(self.api_key)
        self._logger = get_logger("DeepSeekProvider")
        self.client = client or httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT_MS / 1000)

    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key or ''}",
            "Content-Type": "application/json",
        }

    def _payload(self, messages: List[ChatMessage], model: str, params: GenerationParams, stream: bool) -> dict:
        return {
            "model": model,
            "messages": self._payload_messages(messages),
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "top_p": params.top_p,
            "frequency_penalty": params.frequency_penalty,
            "presence_penalty": params.presence_penalty,
            "stream": stream,
        }

    @staticmethod
    def _error_message(res: httpx.Response) -> str:
        try:
            body = res.json()
        except ValueError:
            return f"HTTP {res.status_code}: {res.text[:200]}"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        return f"HTTP {res.status_code}"

    async def probe(self) -> None:
        res = await self.client.get(f"{self.endpoint}/models", headers=self._headers)
        res.raise_for_status()

    async def complete(self, messages: List[ChatMessage], model: str, params: GenerationParams) -> CompletionResult:
        url = f"{self.endpoint}/chat/completions"
        try:
            res = await self.client.post(url, json=self._payload(messages, model, params, stream=False), headers=self._headers)
        except httpx.HTTPError as e:
            raise UpstreamError("Failed to generate response", details=str(e) or type(e).__name__, provider=self.name) from e
        if res.status_code != 200:
            message = self._error_message(res)
            self._logger.error(f"DeepSeek API error: status={res.status_code} | {message}")
            raise UpstreamError("Failed to generate response", details=message, provider=self.name)
        try:
            data = res.json()
        except ValueError as e:
            raise UpstreamError("Failed to generate response", details="Malformed JSON from provider", provider=self.name) from e
        return self._to_result(data, model)

    async def open_stream(self, messages: List[ChatMessage], model: str, params: GenerationParams) -> AsyncIterator[str]:
        request = self.client.build_request(
            "POST",
            f"{self.endpoint}/chat/completions",
            json=self._payload(messages, model, params, stream=True),
            headers={**self._headers, "Accept": "text/event-stream"},
        )
        try:
            res = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamError("Failed to generate response", details=str(e) or type(e).__name__, provider=self.name) from e
        if res.status_code != 200:
            await res.aread()
            await res.aclose()
            message = self._error_message(res)
            self._logger.error(f"DeepSeek stream error: status={res.status_code} | {message}")
            raise UpstreamError("Failed to generate response", details=message, provider=self.name)
        return self._relay(res)

    async def _relay(self, res: httpx.Response) -> AsyncIterator[str]:
        try:
            async for fragment in iter_sse_content(res.aiter_lines()):
                yield fragment
        finally:
            await res.aclose()

    async def aclose(self) -> None:
        await self.client.aclose()
