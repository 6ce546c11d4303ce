# app/llm/entity/completion.py
"""
Provider-neutral models passed between the router, providers and handlers.
"""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class GenerationParams(BaseModel):
    """Numeric generation settings after clamping into provider-accepted ranges."""
    temperature: float
    max_tokens: int
    top_p: float
    frequency_penalty: float
    presence_penalty: float


class CompletionResult(BaseModel):
    message: ChatMessage
    usage: Optional[Usage] = None
    model: str
    provider: str


class RouteContext(str, Enum):
    INTERNAL = "internal"  # /api/chat: probe primary, fall back on failure
    PUBLIC = "public"      # /api/v1/chat: secondary only
