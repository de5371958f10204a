from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field

from app.models.profile import ProfileRole


class StudentRegister(BaseModel):
    """Schema for student self-registration"""
    name: str = Field(..., min_length=2, max_length=100)
    student_id: str = Field(..., min_length=3, max_length=50)
    batch: str = Field(..., min_length=1, max_length=50)
    phone: str = Field(..., min_length=10, max_length=15)
    email: EmailStr = Field(..., max_length=255)
    password: str = Field(..., min_length=8, max_length=100)

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Anu Joseph",
                "student_id": "BRO2024-117",
                "batch": "BCR54",
                "phone": "9876543210",
                "email": "anu@example.com",
                "password": "securePassword123"
            }
        }
    }


class StudentLogin(BaseModel):
    """Students log in with their student id rather than their email"""
    student_id: str = Field(..., min_length=1, max_length=50)
    password: str


class AdminLogin(BaseModel):
    """Schema for admin login"""
    email: EmailStr
    password: str


class ProfileResponse(BaseModel):
    """Schema for profile response (full details)"""
    id: UUID
    email: EmailStr
    name: str
    role: ProfileRole
    student_id: Optional[str] = None
    batch: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ProfilePublic(BaseModel):
    """Owner details shown next to a complaint"""
    name: str
    student_id: Optional[str] = None
    batch: Optional[str] = None

    model_config = {"from_attributes": True}


class SenderInfo(BaseModel):
    """How a message sender is displayed"""
    name: str
    role: ProfileRole


class TokenResponse(BaseModel):
    """Schema for JWT token response"""
    access_token: str
    token_type: str = "bearer"
    profile: ProfileResponse
