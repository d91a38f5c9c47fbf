from __future__ import annotations

from pydantic import BaseModel, Field


class ChatMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)


class ChatMessageResponse(BaseModel):
    success: bool
    response: str
    toolsUsed: list[str] = Field(default_factory=list)
    timestamp: str
    logs: list[str] | None = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str | None = None
    timestamp: str | None = None
