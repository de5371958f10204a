from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from app.schemas.profile import SenderInfo

MESSAGE_MAX_LENGTH = 2000


class MessageCreate(BaseModel):
    """Schema for posting a message to a complaint thread"""
    message: str = Field(..., min_length=1, max_length=MESSAGE_MAX_LENGTH)

    @field_validator("message")
    @classmethod
    def reject_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message cannot be empty")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "We are looking into it"
            }
        }
    }


class MessageResponse(BaseModel):
    """A thread message with its sender's display identity"""
    id: UUID
    complaint_id: UUID
    sender_id: UUID
    message: str
    created_at: datetime
    read_at: Optional[datetime] = None
    sender: SenderInfo
