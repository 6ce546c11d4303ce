from typing import AsyncIterator, List

from fastapi.responses import JSONResponse, StreamingResponse

from app.core.config import Settings
from app.core.errors import ProxyError
from app.core.logger import get_logger
from app.llm.api.docs import public_api_docs
from app.llm.api.dto import (
    ChatRequest,
    ChatResponse,
    HealthResponse,
    ModelInfo,
    PublicChatRequest,
    PublicChatResponse,
    PublicErrorResponse,
)
from app.llm.service.llm_service import LLMService

logger = get_logger("ChatHandler")

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # for Nginx
}


class LLMHandler:
    """Handler for the chat, model and docs endpoints."""

    def __init__(self, llm_service: LLMService, settings: Settings):
        self.llm_service = llm_service
        self.settings = settings
        self.app_name = settings.APP_NAME

    def health(self) -> HealthResponse:
        return HealthResponse(status="OK", message=f"{self.app_name} is running")

    def models(self) -> List[ModelInfo]:
        return [ModelInfo(**m) for m in self.llm_service.models()]

    def docs(self) -> dict:
        return public_api_docs(
            self.llm_service.router.catalog.default_model,
            self.app_name,
            self.settings.RATE_LIMIT_MAX_REQUESTS,
            self.settings.RATE_LIMIT_WINDOW_SECONDS,
        )

    async def chat(self, body: ChatRequest):
        if body.stream:
            return await self.chat_stream(body)
        result = await self.llm_service.chat(body)
        return ChatResponse(**result.model_dump())

    async def chat_stream(self, body: ChatRequest) -> StreamingResponse:
        # Opening errors surface as JSON before any byte is written
        provider, fragments = await self.llm_service.chat_stream(body)
        return StreamingResponse(
            _relay(fragments, provider),
            media_type="text/plain",
            headers={**STREAM_HEADERS, "X-Provider": provider},
        )

    async def public_chat(self, body: PublicChatRequest) -> JSONResponse:
        try:
            result = await self.llm_service.public_chat(body)
        except ProxyError as e:
            error = PublicErrorResponse(error=e.message, details=e.details)
            return JSONResponse(status_code=e.status_code, content=error.model_dump())
        response = PublicChatResponse(
            response=result.message.content,
            model=result.model,
            provider=result.provider,
            usage=result.usage,
        )
        return JSONResponse(content=response.model_dump())


async def _relay(fragments: AsyncIterator[str], provider: str) -> AsyncIterator[str]:
    """Writes fragments as they arrive; a mid-stream failure just ends the body."""
    try:
        async for fragment in fragments:
            yield fragment
    except Exception as e:
        logger.error(f"Stream from {provider} aborted: {type(e).__name__}: {e}")
