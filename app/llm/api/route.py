# app/llm/api/route.py

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from ..api.dto import ChatRequest, HealthResponse, ModelInfo, PublicChatRequest
from ..api.handler import LLMHandler


def get_llm_handler(request: Request) -> LLMHandler:
    """Dependency to get the LLM handler from app.state."""
    handler = getattr(request.app.state, "llm_handler", None)
    if handler is None:
        raise HTTPException(status_code=503, detail="LLM service not initialized")
    return handler


llm_router = APIRouter(prefix="/api", tags=["LLM"])


@llm_router.get("/health", response_model=HealthResponse)
async def health(handler: LLMHandler = Depends(get_llm_handler)):
    return handler.health()


@llm_router.get("/models", response_model=List[ModelInfo])
async def list_models(handler: LLMHandler = Depends(get_llm_handler)):
    """Virtual models callers may request."""
    return handler.models()


@llm_router.post("/chat")
async def chat(body: ChatRequest, handler: LLMHandler = Depends(get_llm_handler)):
    """
    Chat completion for the bundled UI.
    With ``stream`` set, tokens are written as raw ``text/plain`` chunks.
    """
    return await handler.chat(body)


@llm_router.post("/v1/chat")
async def public_chat(body: PublicChatRequest, handler: LLMHandler = Depends(get_llm_handler)):
    """Keyless developer API; always served by the cost-optimized provider."""
    return await handler.public_chat(body)


@llm_router.get("/docs")
async def api_docs(handler: LLMHandler = Depends(get_llm_handler)):
    return handler.docs()
