# app/llm/api/dto.py
from pydantic import BaseModel
from typing import List, Optional

from app.llm.entity.completion import ChatMessage, Usage


class ChatRequest(BaseModel):
    # Optional so a missing array is answered with our own 400, not a 422
    messages: Optional[List[ChatMessage]] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    stream: bool = False
    system_message: Optional[str] = None


class ChatResponse(BaseModel):
    message: ChatMessage
    usage: Optional[Usage] = None
    model: str
    provider: str


class PublicChatRequest(BaseModel):
    message: Optional[str] = None
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    system_prompt: Optional[str] = None


class PublicChatResponse(BaseModel):
    success: bool = True
    response: str
    model: str
    provider: str
    usage: Optional[Usage] = None


class PublicErrorResponse(BaseModel):
    success: bool = False
    error: str
    details: Optional[str] = None


class ModelInfo(BaseModel):
    id: str
    name: str
    created: Optional[int] = None
    owned_by: Optional[str] = None
    provider: Optional[str] = None
    description: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    message: str

