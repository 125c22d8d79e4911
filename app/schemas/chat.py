from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Body of POST /chat."""

    message: str = Field(..., description="User message", examples=["What are your opening hours?"])
    conversation_id: str | None = Field(
        None,
        description="Optional id grouping messages of one conversation",
        max_length=128,
    )


class ChatResponse(BaseModel):
    """Reply produced by the AI provider."""

    success: bool = Field(True, description="Always true for a 200 response")
    response: str = Field(..., description="Generated reply text")
    timestamp: str = Field(..., description="ISO-8601 UTC time of the reply")
    mode: Literal["demo", "production"] = Field(
        ..., description="'demo' when served by the offline demo client"
    )
