from typing import Any

from pydantic import BaseModel, Field


class WebhookEvent(BaseModel):
    id: str = Field(..., min_length=1, max_length=128)
    type: str = Field(..., min_length=1, max_length=64)
    data: dict[str, Any] = {}


class WebhookAck(BaseModel):
    event_id: str
    type: str
    duplicate: bool
