from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class RoomResponse(BaseModel):
    id: str
    exchange_id: int
    user1_id: int
    user2_id: int
    created_at: datetime

    model_config = {"from_attributes": True}
