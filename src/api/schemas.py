"""API-facing Pydantic models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CallStatusResponse(BaseModel):
    call_id: str
    status: str


class ActiveCallsResponse(BaseModel):
    active_calls: list[str]


class WebhookEvent(BaseModel):
    """Envelope of an OpenAI platform webhook delivery."""

    id: str | None = None
    type: str
    created_at: int | None = None
    data: dict[str, Any] = Field(default_factory=dict)


class WebhookAck(BaseModel):
    received: bool = True
    call_id: str | None = None
