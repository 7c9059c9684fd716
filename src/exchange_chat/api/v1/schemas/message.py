from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    room_id: str
    # Encoded envelope string, or the structured envelope object itself.
    content: str | dict[str, Any]
    client_msg_id: str | None = Field(None, max_length=64)


class MessageResponse(BaseModel):
    id: str
    room_id: str
    sender_id: int
    type: str
    content: str
    client_msg_id: str | None
    created_at: datetime
