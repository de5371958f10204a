import logging
from datetime import timedelta

import pytest
from sqlalchemy import Delete, func, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import AsyncSessionLocal, SessionLocal
from app.core.exceptions import StoreError
from app.models.profile import Profile
from app.models.complaint import Complaint, ComplaintCategory, ComplaintStatus
from app.models.complaint_message import ComplaintMessage
from app.services.complaint_service import get_complaint_service
from app.services.message_service import get_message_service
from app.services import retention_sweeper
from app.services.retention_sweeper import RetentionSweeper, run_periodic_sweeps
from app.utils.time import utcnow

MAINTENANCE_HEADERS = {"X-Maintenance-Key": "test-maintenance-key"}


async def _complaint(session, student, admin, status=ComplaintStatus.RESOLVED, resolved_at=None):
    service = get_complaint_service()
    complaint = await service.create_complaint(
        student, ComplaintCategory.ELECTRICAL, "Room lights not working", False, session
    )
    await get_message_service().post_message(admin, complaint.id, "Technician assigned", session)
    await service.update_complaint_status(admin, complaint.id, status, session)
    if resolved_at is not None:
        complaint.resolved_at = resolved_at
        await session.commit()
    return complaint


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar()


async def test_purges_after_window(session, people):
    student, admin = people
    complaint = await _complaint(session, student, admin)

    result = await RetentionSweeper().sweep(session, now=complaint.resolved_at + timedelta(days=8))
    assert result.deleted_complaints == 1
    assert result.deleted_messages == 1
    assert await _count(session, Complaint) == 0
    assert await _count(session, ComplaintMessage) == 0


async def test_keeps_recently_resolved(session, people):
    student, admin = people
    complaint = await _complaint(session, student, admin)

    result = await RetentionSweeper().sweep(session, now=complaint.resolved_at + timedelta(days=6))
    assert result.deleted_complaints == 0
    assert await _count(session, Complaint) == 1


async def test_exact_boundary_is_purged(session, people):
    student, admin = people
    resolved_at = utcnow().replace(microsecond=0) - timedelta(days=7)
    await _complaint(session, student, admin, resolved_at=resolved_at)

    result = await RetentionSweeper().sweep(session, now=resolved_at + timedelta(days=7))
    assert result.deleted_complaints == 1


async def test_unresolved_complaints_are_never_purged(session, people):
    student, admin = people
    await _complaint(session, student, admin, status=ComplaintStatus.IN_PROGRESS)

    result = await RetentionSweeper().sweep(session, now=utcnow() + timedelta(days=365))
    assert result.deleted_complaints == 0


async def test_sweep_is_idempotent(session, people):
    student, admin = people
    complaint = await _complaint(session, student, admin)
    now = complaint.resolved_at + timedelta(days=8)

    assert (await RetentionSweeper().sweep(session, now=now)).deleted_complaints == 1
    assert (await RetentionSweeper().sweep(session, now=now)).deleted_complaints == 0


async def test_re_resolving_restarts_window(session, people):
    student, admin = people
    complaint = await _complaint(session, student, admin, resolved_at=utcnow() - timedelta(days=8))

    service = get_complaint_service()
    await service.update_complaint_status(admin, complaint.id, ComplaintStatus.IN_PROGRESS, session)
    await service.update_complaint_status(admin, complaint.id, ComplaintStatus.RESOLVED, session)

    result = await RetentionSweeper().sweep(session)
    assert result.deleted_complaints == 0


def test_retention_days_override():
    now = utcnow()
    assert RetentionSweeper(retention_days=1).cutoff(now) == now - timedelta(days=1)
    assert RetentionSweeper().cutoff(now) == now - timedelta(days=7)


def test_endpoint_requires_maintenance_key(client):
    url = "/maintenance/cleanup-resolved-complaints"
    assert client.post(url).status_code == 403
    assert client.post(url, headers={"X-Maintenance-Key": "wrong"}).status_code == 403

    r = client.post(url, headers=MAINTENANCE_HEADERS)
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Old resolved complaints cleaned up", "deleted": 0}


def test_endpoint_scenario(client, make_student, make_complaint, admin):
    student = make_student()
    complaint = make_complaint(student)
    client.patch(
        f"/complaints/{complaint['id']}/status",
        json={"status": "in_progress", "admin_feedback": "Technician assigned"},
        headers=admin["headers"],
    )
    client.patch(f"/complaints/{complaint['id']}/status", json={"status": "resolved"}, headers=admin["headers"])

    # Pretend the resolution happened eight days ago
    with SessionLocal() as db:
        db.execute(update(Complaint).values(resolved_at=utcnow() - timedelta(days=8)))
        db.commit()

    r = client.post("/maintenance/cleanup-resolved-complaints", headers=MAINTENANCE_HEADERS)
    assert r.json()["deleted"] == 1
    assert client.get(f"/complaints/{complaint['id']}", headers=student["headers"]).status_code == 404
    assert client.get("/complaints", headers=admin["headers"]).json()["total"] == 0


async def test_complaint_reopened_mid_sweep_survives(session, people, monkeypatch):
    student, admin = people
    complaint = await _complaint(session, student, admin, resolved_at=utcnow() - timedelta(days=8))

    execute = session.execute
    reopened = False

    async def execute_then_reopen(statement, *args, **kwargs):
        nonlocal reopened
        result = await execute(statement, *args, **kwargs)
        if not reopened:
            # An admin reopens the complaint right after the sweep's lookup
            reopened = True
            async with AsyncSessionLocal() as other:
                other_admin = await other.get(Profile, admin.id)
                await get_complaint_service().update_complaint_status(
                    other_admin, complaint.id, ComplaintStatus.IN_PROGRESS, other
                )
        return result

    monkeypatch.setattr(session, "execute", execute_then_reopen)
    result = await RetentionSweeper().sweep(session)
    monkeypatch.undo()

    assert reopened
    assert result.deleted_complaints == 0
    assert result.deleted_messages == 0
    status = await session.execute(select(Complaint.status).where(Complaint.id == complaint.id))
    assert status.scalar_one() == ComplaintStatus.IN_PROGRESS
    assert await _count(session, ComplaintMessage) == 1


def _fail_on_complaint_delete(monkeypatch):
    """Make the complaint DELETE fail after the thread DELETE has already run"""
    execute = AsyncSession.execute

    async def failing_execute(self, statement, *args, **kwargs):
        if isinstance(statement, Delete) and statement.table.name == "complaints":
            raise OperationalError("DELETE FROM complaints", {}, Exception("disk I/O error"))
        return await execute(self, statement, *args, **kwargs)

    monkeypatch.setattr(AsyncSession, "execute", failing_execute)


async def test_failed_sweep_rolls_back(session, people, monkeypatch):
    student, admin = people
    complaint = await _complaint(session, student, admin)
    _fail_on_complaint_delete(monkeypatch)

    with pytest.raises(StoreError) as exc_info:
        await RetentionSweeper().sweep(session, now=complaint.resolved_at + timedelta(days=8))
    assert exc_info.value.message == "Failed to delete old resolved complaints"

    monkeypatch.undo()
    assert await _count(session, Complaint) == 1
    assert await _count(session, ComplaintMessage) == 1


def test_endpoint_reports_failure(client, make_student, make_complaint, admin, monkeypatch):
    student = make_student()
    complaint = make_complaint(student)
    client.post(f"/complaints/{complaint['id']}/messages", json={"message": "On it"}, headers=admin["headers"])
    client.patch(f"/complaints/{complaint['id']}/status", json={"status": "resolved"}, headers=admin["headers"])
    with SessionLocal() as db:
        db.execute(update(Complaint).values(resolved_at=utcnow() - timedelta(days=8)))
        db.commit()

    _fail_on_complaint_delete(monkeypatch)
    r = client.post("/maintenance/cleanup-resolved-complaints", headers=MAINTENANCE_HEADERS)
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to delete old resolved complaints"}

    monkeypatch.undo()
    assert client.get(f"/complaints/{complaint['id']}", headers=student["headers"]).status_code == 200
    thread = client.get(f"/complaints/{complaint['id']}/messages", headers=student["headers"]).json()
    assert [m["message"] for m in thread] == ["On it"]


class _StopSweeping(BaseException):
    pass


async def test_periodic_sweeps_survive_a_failed_tick(monkeypatch, caplog):
    calls = []

    async def flaky_sweep():
        calls.append(len(calls) + 1)
        if len(calls) == 1:
            raise StoreError("Failed to delete old resolved complaints")
        if len(calls) == 3:
            raise _StopSweeping()

    monkeypatch.setattr(retention_sweeper, "run_sweep_once", flaky_sweep)

    with caplog.at_level(logging.ERROR, logger="app.services.retention_sweeper"):
        with pytest.raises(_StopSweeping):
            await run_periodic_sweeps(0)

    assert calls == [1, 2, 3]
    assert "retrying next tick" in caplog.text
