"""
Purge of complaints that have stayed resolved past the retention window.

A sweep is idempotent: it deletes whatever currently matches "resolved, and
resolved at or before now minus the window", so a failed run loses nothing
and the next run picks the same complaints up again.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.core.exceptions import StoreError
from app.models.complaint import Complaint, ComplaintStatus
from app.models.complaint_message import ComplaintMessage
from app.services.realtime import ChangeEvent, RowChange, get_change_broker
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    """What a sweep removed"""
    cutoff: datetime
    deleted_complaints: int = 0
    deleted_messages: int = 0


class RetentionSweeper:
    """Deletes resolved complaints, and their threads, once the window has passed"""

    def __init__(self, retention_days: Optional[int] = None):
        days = settings.RESOLVED_RETENTION_DAYS if retention_days is None else retention_days
        self.retention = timedelta(days=days)

    def cutoff(self, now: Optional[datetime] = None) -> datetime:
        return (now or utcnow()) - self.retention

    async def sweep(self, session: AsyncSession, now: Optional[datetime] = None) -> SweepResult:
        result = SweepResult(cutoff=self.cutoff(now))
        expired = (
            Complaint.status == ComplaintStatus.RESOLVED,
            Complaint.resolved_at.is_not(None),
            Complaint.resolved_at <= result.cutoff,
        )

        try:
            # Lock the candidates so a concurrent reopen waits for the purge to finish
            candidates = await session.execute(
                select(Complaint.id).where(*expired).with_for_update()
            )
            if not candidates.all():
                logger.info("Retention sweep: nothing resolved before %s", result.cutoff)
                return result

            # Each delete re-applies the expiry criteria; a complaint reopened since
            # the lookup keeps its row and its thread. Threads go first so the purge
            # does not depend on ON DELETE CASCADE support
            message_rows = await session.execute(
                delete(ComplaintMessage)
                .where(ComplaintMessage.complaint_id.in_(select(Complaint.id).where(*expired)))
                .returning(ComplaintMessage.id, ComplaintMessage.complaint_id)
                .execution_options(synchronize_session=False)
            )
            messages = message_rows.all()
            complaint_rows = await session.execute(
                delete(Complaint)
                .where(*expired)
                .returning(Complaint.id, Complaint.student_id)
                .execution_options(synchronize_session=False)
            )
            complaints = complaint_rows.all()
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception("Retention sweep failed")
            raise StoreError("Failed to delete old resolved complaints")

        result.deleted_complaints = len(complaints)
        result.deleted_messages = len(messages)
        logger.info(
            "Retention sweep removed %d complaints and %d messages resolved before %s",
            result.deleted_complaints, result.deleted_messages, result.cutoff,
        )

        broker = get_change_broker()
        for row in messages:
            broker.publish(RowChange(
                table="complaint_messages",
                event=ChangeEvent.DELETE,
                row={"id": str(row.id), "complaint_id": str(row.complaint_id)},
            ))
        for row in complaints:
            broker.publish(RowChange(
                table="complaints",
                event=ChangeEvent.DELETE,
                row={"id": str(row.id), "student_id": str(row.student_id)},
            ))
        return result


async def run_sweep_once(now: Optional[datetime] = None) -> SweepResult:
    """One sweep in its own session"""
    async with AsyncSessionLocal() as session:
        return await RetentionSweeper().sweep(session, now=now)


async def run_periodic_sweeps(interval_seconds: float) -> None:
    """Sweep forever; a failed run is logged and retried on the next tick"""
    logger.info("Retention sweeps scheduled every %.0f seconds", interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_sweep_once()
        except Exception:
            logger.exception("Scheduled retention sweep failed; retrying next tick")
