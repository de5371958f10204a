"""
Per-complaint message threads and their read state.

Messages are append-only. The only mutation is ``read_at`` going from null
to a timestamp, exactly once, by a participant other than the sender.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidInputError, NotFoundError, PermissionDeniedError, StoreError
from app.models.complaint import Complaint
from app.models.complaint_message import ComplaintMessage
from app.models.profile import Profile
from app.schemas.message import MessageResponse, MESSAGE_MAX_LENGTH
from app.services.complaint_service import can_access
from app.services.profile_service import get_profile_service, sender_info
from app.services.realtime import ChangeEvent, get_change_broker
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


def addressed_to(principal: Profile) -> list:
    """
    Filter for unread messages the principal should be told about.

    Students only hear about their own complaints; admins about all of them.
    A principal's own messages are never unread for them.
    """
    conditions = [
        ComplaintMessage.read_at.is_(None),
        ComplaintMessage.sender_id != principal.id,
    ]
    if not principal.is_admin:
        conditions.append(
            ComplaintMessage.complaint_id.in_(
                select(Complaint.id).where(Complaint.student_id == principal.id)
            )
        )
    return conditions


class MessageService:
    """Service for posting, listing and reading complaint messages"""

    async def _get_accessible_complaint(
        self, principal: Profile, complaint_id: UUID, session: AsyncSession
    ) -> Complaint:
        complaint = await session.get(Complaint, complaint_id)
        if complaint is None:
            raise NotFoundError("Complaint")
        if not can_access(principal, complaint):
            raise PermissionDeniedError()
        return complaint

    async def post_message(
        self, sender: Profile, complaint_id: UUID, body: str, session: AsyncSession
    ) -> ComplaintMessage:
        """Append a message to a complaint's thread"""
        text = body.strip()
        if not text:
            raise InvalidInputError("message", "Message cannot be empty")
        if len(text) > MESSAGE_MAX_LENGTH:
            raise InvalidInputError(
                "message", f"Message must be at most {MESSAGE_MAX_LENGTH} characters"
            )

        await self._get_accessible_complaint(sender, complaint_id, session)

        message = ComplaintMessage(
            complaint_id=complaint_id,
            sender_id=sender.id,
            message=text,
            created_at=utcnow(),
        )
        session.add(message)
        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception("Failed to post message on complaint %s", complaint_id)
            raise StoreError("Failed to send message")
        await session.refresh(message)

        get_change_broker().publish_rows("complaint_messages", ChangeEvent.INSERT, [message])
        return message

    async def present(
        self, messages: List[ComplaintMessage], session: AsyncSession
    ) -> List[MessageResponse]:
        """Attach each sender's display identity"""
        profiles = await get_profile_service().get_profiles(
            (m.sender_id for m in messages), session
        )
        return [
            MessageResponse(
                id=m.id,
                complaint_id=m.complaint_id,
                sender_id=m.sender_id,
                message=m.message,
                created_at=m.created_at,
                read_at=m.read_at,
                sender=sender_info(profiles.get(m.sender_id)),
            )
            for m in messages
        ]

    async def list_messages(
        self, principal: Profile, complaint_id: UUID, session: AsyncSession
    ) -> List[MessageResponse]:
        """The thread in ascending creation order"""
        await self._get_accessible_complaint(principal, complaint_id, session)

        result = await session.execute(
            select(ComplaintMessage)
            .where(ComplaintMessage.complaint_id == complaint_id)
            .order_by(ComplaintMessage.created_at.asc(), ComplaintMessage.id.asc())
        )
        return await self.present(list(result.scalars().all()), session)

    async def get_message_view(
        self, principal: Profile, message_id: UUID, session: AsyncSession
    ) -> Optional[MessageResponse]:
        message = await session.get(ComplaintMessage, message_id)
        if message is None:
            return None
        await self._get_accessible_complaint(principal, message.complaint_id, session)
        views = await self.present([message], session)
        return views[0]

    async def mark_read(
        self, principal: Profile, message_id: UUID, session: AsyncSession
    ) -> ComplaintMessage:
        """
        Record that the principal has read a message.

        Only the first call by a non-sender participant sets ``read_at``; any
        later call, or one by the sender, leaves the row as it is.
        """
        message = await session.get(ComplaintMessage, message_id)
        if message is None:
            raise NotFoundError("Message")
        await self._get_accessible_complaint(principal, message.complaint_id, session)

        if message.sender_id == principal.id or message.read_at is not None:
            return message

        try:
            result = await session.execute(
                update(ComplaintMessage)
                .where(
                    ComplaintMessage.id == message_id,
                    ComplaintMessage.read_at.is_(None),
                )
                .values(read_at=utcnow())
            )
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception("Failed to mark message %s read", message_id)
            raise StoreError("Failed to mark message as read")
        await session.refresh(message)

        if result.rowcount:
            get_change_broker().publish_rows("complaint_messages", ChangeEvent.UPDATE, [message])
        return message

    async def mark_all_read(self, principal: Profile, session: AsyncSession) -> int:
        """Mark every message currently addressed to the principal as read"""
        try:
            # One guarded UPDATE: rows read by anyone in the meantime keep their stamp
            result = await session.execute(
                update(ComplaintMessage)
                .where(*addressed_to(principal))
                .values(read_at=utcnow())
                .returning(ComplaintMessage.id)
                .execution_options(synchronize_session=False)
            )
            message_ids = [row.id for row in result.all()]
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception("Failed to mark messages read for %s", principal.id)
            raise StoreError("Failed to mark messages as read")
        if not message_ids:
            return 0

        stamped = await session.execute(
            select(ComplaintMessage)
            .where(ComplaintMessage.id.in_(message_ids))
            .execution_options(populate_existing=True)
        )
        get_change_broker().publish_rows(
            "complaint_messages", ChangeEvent.UPDATE, stamped.scalars().all()
        )
        return len(message_ids)


# Singleton
_message_service: Optional[MessageService] = None


def get_message_service() -> MessageService:
    """Get or create message service singleton"""
    global _message_service
    if _message_service is None:
        _message_service = MessageService()
    return _message_service
