"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from advisor_agent.schemas import ChatContext


class ChatRequest(BaseModel):
    """Incoming chat message from a web simulator or app.

    Blank ``message`` / ``userId`` are accepted here and rejected by the
    orchestrator with a 400, so every client sees the same error shape.
    """

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(
        "",
        alias="userId",
        max_length=100,
        description="Unique user / conversation identifier",
    )
    message: str = Field("", max_length=2000, description="The user's message")
    context: ChatContext | None = Field(None, description="Optional language / funnel stage")


class MessengerMeta(BaseModel):
    intent: str
    lang: str
    next_action: str


class MessengerResponse(BaseModel):
    """Reply format expected by the Messenger bot command."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    response: str
    context_id: str | None = Field(None, alias="contextId")
    meta: MessengerMeta | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "teachermada-agent"
