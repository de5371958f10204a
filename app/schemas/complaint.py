from typing import Optional, List
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field

from app.models.complaint import ComplaintCategory, ComplaintStatus
from app.schemas.profile import ProfilePublic

DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 1000


class ComplaintCreate(BaseModel):
    """Schema for raising a complaint"""
    category: ComplaintCategory
    description: str = Field(..., min_length=DESCRIPTION_MIN_LENGTH, max_length=DESCRIPTION_MAX_LENGTH)
    is_emergency: bool = False

    model_config = {
        "json_schema_extra": {
            "example": {
                "category": "electrical",
                "description": "Room lights not working",
                "is_emergency": False
            }
        }
    }


class ComplaintStatusUpdate(BaseModel):
    """
    Schema for an admin status transition.

    Leaving out ``admin_feedback`` keeps the current feedback; sending an
    empty string clears it.
    """
    status: ComplaintStatus
    admin_feedback: Optional[str] = Field(None, max_length=2000)

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "in_progress",
                "admin_feedback": "Technician assigned"
            }
        }
    }


class ComplaintResponse(BaseModel):
    """Schema for complaint response"""
    id: UUID
    student_id: UUID
    category: ComplaintCategory
    description: str
    status: ComplaintStatus
    admin_feedback: Optional[str]
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime]
    student: Optional[ProfilePublic] = None

    model_config = {"from_attributes": True}


class ComplaintList(BaseModel):
    """Schema for complaint list"""
    items: List[ComplaintResponse]
    total: int


class ComplaintStats(BaseModel):
    """Per-status complaint counts for the admin dashboard"""
    total: int
    pending: int
    in_progress: int
    resolved: int
    emergency: int
