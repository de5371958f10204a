"""
Unread-message notification endpoints.
"""

from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.core.auth import get_current_profile
from app.models.profile import Profile
from app.schemas.notification import (
    NotificationList, UnreadCountResponse, OpenNotificationResponse, MarkAllReadResponse
)
from app.services.message_service import get_message_service
from app.services.notification_service import get_notification_service, badge_label


router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationList)
async def list_notifications(
    current_profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
):
    """
    Newest unread messages addressed to the caller (one page).

    - **badge**: bell text computed from this page, so it caps at "9+"
    """
    items = await get_notification_service().unread_notifications(current_profile, session)
    return NotificationList(items=items, badge=badge_label(len(items)))


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
):
    """Uncapped number of unread messages addressed to the caller"""
    count = await get_notification_service().unread_count(current_profile, session)
    return UnreadCountResponse(unread_count=count)


@router.post("/{message_id}/open", response_model=OpenNotificationResponse)
async def open_notification(
    message_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
):
    """
    Open a notification: marks its message read and returns the complaint to show.
    """
    complaint_id = await get_notification_service().open_notification(
        current_profile, message_id, session
    )
    return OpenNotificationResponse(complaint_id=complaint_id)


@router.post("/mark-all-read", response_model=MarkAllReadResponse, status_code=status.HTTP_200_OK)
async def mark_all_notifications_read(
    current_profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
):
    """
    Mark all messages addressed to the caller as read.
    """
    count = await get_message_service().mark_all_read(current_profile, session)
    return MarkAllReadResponse(
        message=f"Marked {count} notifications as read",
        count=count,
    )
