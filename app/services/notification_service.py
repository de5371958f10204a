"""
Unread-message notifications.

A notification is simply a message addressed to the principal that has no
``read_at`` yet. The list is capped at one page, newest first; the true total
is only available through ``unread_count``.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.complaint import Complaint
from app.models.complaint_message import ComplaintMessage
from app.models.profile import Profile
from app.schemas.notification import NotificationComplaint, NotificationResponse
from app.services.message_service import addressed_to, get_message_service
from app.services.profile_service import get_profile_service, sender_info

UNKNOWN_COMPLAINT = NotificationComplaint(category="Unknown", description="")


def badge_label(count: int) -> str:
    """Bell badge text for a (possibly capped) notification count"""
    if count <= 0:
        return ""
    return "9+" if count > 9 else str(count)


class NotificationService:
    """Service for deriving and clearing a principal's notifications"""

    async def unread_notifications(
        self, principal: Profile, session: AsyncSession, limit: Optional[int] = None
    ) -> List[NotificationResponse]:
        """Newest unread messages addressed to the principal, with display context"""
        result = await session.execute(
            select(ComplaintMessage)
            .where(*addressed_to(principal))
            .order_by(ComplaintMessage.created_at.desc(), ComplaintMessage.id.desc())
            .limit(limit or settings.NOTIFICATION_PAGE_SIZE)
        )
        messages = list(result.scalars().all())
        if not messages:
            return []

        complaint_ids = {m.complaint_id for m in messages}
        complaint_rows = await session.execute(
            select(Complaint.id, Complaint.category, Complaint.description)
            .where(Complaint.id.in_(complaint_ids))
        )
        complaints = {
            row.id: NotificationComplaint(category=row.category.value, description=row.description)
            for row in complaint_rows
        }
        profiles = await get_profile_service().get_profiles(
            (m.sender_id for m in messages), session
        )

        return [
            NotificationResponse(
                id=m.id,
                complaint_id=m.complaint_id,
                message=m.message,
                created_at=m.created_at,
                sender_id=m.sender_id,
                complaint=complaints.get(m.complaint_id, UNKNOWN_COMPLAINT),
                sender=sender_info(profiles.get(m.sender_id)),
            )
            for m in messages
        ]

    async def unread_count(self, principal: Profile, session: AsyncSession) -> int:
        result = await session.execute(
            select(func.count(ComplaintMessage.id)).where(*addressed_to(principal))
        )
        return result.scalar() or 0

    async def open_notification(
        self, principal: Profile, message_id: UUID, session: AsyncSession
    ) -> UUID:
        """Mark the message read and return the complaint to show"""
        message = await get_message_service().mark_read(principal, message_id, session)
        return message.complaint_id


# Singleton
_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    """Get or create notification service singleton"""
    global _notification_service
    if _notification_service is None:
        _notification_service = NotificationService()
    return _notification_service
