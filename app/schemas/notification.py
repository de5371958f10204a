"""Pydantic schemas for unread-message notifications"""

from typing import List
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel

from app.schemas.profile import SenderInfo


class NotificationComplaint(BaseModel):
    """Context of the complaint a notification belongs to"""
    category: str
    description: str


class NotificationResponse(BaseModel):
    """An unread message addressed to the caller"""
    id: UUID
    complaint_id: UUID
    message: str
    created_at: datetime
    sender_id: UUID
    complaint: NotificationComplaint
    sender: SenderInfo


class NotificationList(BaseModel):
    """
    Newest unread messages, capped at the page size.

    ``badge`` is derived from the capped list, so it reads "9+" once the page
    is full no matter how many more unread messages exist.
    """
    items: List[NotificationResponse]
    badge: str


class UnreadCountResponse(BaseModel):
    """Uncapped number of unread messages addressed to the caller"""
    unread_count: int


class OpenNotificationResponse(BaseModel):
    """Where to navigate after opening a notification"""
    complaint_id: UUID


class MarkAllReadResponse(BaseModel):
    message: str
    count: int
