"""
Complaint lifecycle.

Students create complaints in PENDING or EMERGENCY; from then on only admins
move them, freely between any of the four states. Every move to RESOLVED
stamps ``resolved_at``, which starts the retention clock.
"""

import logging
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import InvalidInputError, NotFoundError, PermissionDeniedError, StoreError
from app.models.complaint import Complaint, ComplaintCategory, ComplaintStatus
from app.models.profile import Profile, ProfileRole
from app.schemas.complaint import DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH
from app.services.realtime import ChangeEvent, get_change_broker
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

# Sentinel for "leave admin_feedback as it is"
UNCHANGED = object()


def can_access(principal: Profile, complaint: Complaint) -> bool:
    """A complaint is visible to its owning student and to every admin"""
    if principal.is_admin:
        return True
    if principal.role == ProfileRole.STUDENT:
        return complaint.student_id == principal.id
    return False


def initial_status(is_emergency: bool) -> ComplaintStatus:
    return ComplaintStatus.EMERGENCY if is_emergency else ComplaintStatus.PENDING


class ComplaintService:
    """Service for complaint creation, lookup and status transitions"""

    async def create_complaint(
        self,
        student: Profile,
        category: ComplaintCategory,
        description: str,
        is_emergency: bool,
        session: AsyncSession,
    ) -> Complaint:
        """Raise a complaint on behalf of the calling student"""
        if student.role != ProfileRole.STUDENT:
            raise PermissionDeniedError()
        if not isinstance(category, ComplaintCategory):
            try:
                category = ComplaintCategory(category)
            except ValueError:
                raise InvalidInputError("category", "Category is required")
        if not DESCRIPTION_MIN_LENGTH <= len(description) <= DESCRIPTION_MAX_LENGTH:
            raise InvalidInputError(
                "description",
                f"Description must be between {DESCRIPTION_MIN_LENGTH} and "
                f"{DESCRIPTION_MAX_LENGTH} characters",
            )

        now = utcnow()
        complaint = Complaint(
            student_id=student.id,
            category=category,
            description=description,
            status=initial_status(is_emergency),
            created_at=now,
            updated_at=now,
        )
        session.add(complaint)
        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception("Failed to create complaint for %s", student.id)
            raise StoreError("Failed to create complaint")
        await session.refresh(complaint)

        logger.info(
            "Complaint %s raised by %s (%s, %s)",
            complaint.id, student.id, complaint.category.value, complaint.status.value,
        )
        get_change_broker().publish_rows("complaints", ChangeEvent.INSERT, [complaint])
        return complaint

    async def update_complaint_status(
        self,
        admin: Profile,
        complaint_id: UUID,
        new_status: ComplaintStatus,
        session: AsyncSession,
        feedback=UNCHANGED,
    ) -> Complaint:
        """
        Move a complaint to ``new_status`` (admin only).

        Any state may move to any other. ``resolved_at`` is stamped on every
        call that sets RESOLVED, including a repeat, so re-resolving restarts
        the retention window. Any other target status clears it.
        """
        if admin.role != ProfileRole.ADMIN:
            raise PermissionDeniedError()
        try:
            new_status = ComplaintStatus(new_status)
        except ValueError:
            raise InvalidInputError("status", "Unknown status")

        complaint = await session.get(Complaint, complaint_id)
        if complaint is None:
            raise NotFoundError("Complaint")

        previous = complaint.status
        now = utcnow()
        complaint.status = new_status
        complaint.updated_at = now
        if feedback is not UNCHANGED:
            complaint.admin_feedback = feedback or None
        if new_status == ComplaintStatus.RESOLVED:
            complaint.resolved_at = now
        else:
            complaint.resolved_at = None

        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception("Failed to update complaint %s", complaint_id)
            raise StoreError("Failed to update complaint")
        await session.refresh(complaint)

        logger.info(
            "Complaint %s moved %s -> %s by %s",
            complaint.id, previous.value, new_status.value, admin.id,
        )
        get_change_broker().publish_rows("complaints", ChangeEvent.UPDATE, [complaint])
        return complaint

    async def get_complaint(
        self, principal: Profile, complaint_id: UUID, session: AsyncSession
    ) -> Complaint:
        result = await session.execute(
            select(Complaint)
            .options(selectinload(Complaint.student))
            .where(Complaint.id == complaint_id)
            .execution_options(populate_existing=True)
        )
        complaint = result.scalar_one_or_none()
        if complaint is None:
            raise NotFoundError("Complaint")
        if not can_access(principal, complaint):
            raise PermissionDeniedError()
        return complaint

    async def list_complaints(
        self,
        principal: Profile,
        session: AsyncSession,
        status: Optional[ComplaintStatus] = None,
    ) -> List[Complaint]:
        """Students get their own complaints, admins get everyone's; newest first"""
        query = select(Complaint).options(selectinload(Complaint.student))
        if principal.role == ProfileRole.STUDENT:
            query = query.where(Complaint.student_id == principal.id)
        if status is not None:
            query = query.where(Complaint.status == status)
        query = query.order_by(Complaint.created_at.desc(), Complaint.id.desc())

        result = await session.execute(query)
        return list(result.scalars().all())

    async def complaint_stats(self, session: AsyncSession) -> Dict[str, int]:
        result = await session.execute(
            select(Complaint.status, func.count(Complaint.id)).group_by(Complaint.status)
        )
        counts = {status: count for status, count in result.all()}
        return {
            "total": sum(counts.values()),
            "pending": counts.get(ComplaintStatus.PENDING, 0),
            "in_progress": counts.get(ComplaintStatus.IN_PROGRESS, 0),
            "resolved": counts.get(ComplaintStatus.RESOLVED, 0),
            "emergency": counts.get(ComplaintStatus.EMERGENCY, 0),
        }


# Singleton
_complaint_service: Optional[ComplaintService] = None


def get_complaint_service() -> ComplaintService:
    """Get or create complaint service singleton"""
    global _complaint_service
    if _complaint_service is None:
        _complaint_service = ComplaintService()
    return _complaint_service
