from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.core.auth import get_current_profile, require_admin, require_student
from app.models.profile import Profile
from app.models.complaint import ComplaintStatus
from app.schemas.complaint import (
    ComplaintCreate, ComplaintStatusUpdate, ComplaintResponse, ComplaintList, ComplaintStats
)
from app.services.complaint_service import get_complaint_service, UNCHANGED

router = APIRouter(prefix="/complaints", tags=["Complaints"])


@router.post("", response_model=ComplaintResponse, status_code=status.HTTP_201_CREATED)
async def create_complaint(
    payload: ComplaintCreate,
    current_profile: Profile = Depends(require_student),
    session: AsyncSession = Depends(get_async_session),
):
    """
    Raise a complaint.

    Starts as EMERGENCY when `is_emergency` is set, otherwise PENDING.
    """
    complaint = await get_complaint_service().create_complaint(
        current_profile,
        payload.category,
        payload.description,
        payload.is_emergency,
        session,
    )
    return await get_complaint_service().get_complaint(current_profile, complaint.id, session)


@router.get("", response_model=ComplaintList)
async def list_complaints(
    status_filter: Optional[ComplaintStatus] = Query(None, alias="status"),
    current_profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
):
    """
    List complaints, newest first.

    Students see their own complaints only; admins see all of them with the
    owning student's details.
    """
    complaints = await get_complaint_service().list_complaints(
        current_profile, session, status=status_filter
    )
    return ComplaintList(items=complaints, total=len(complaints))


@router.get("/stats", response_model=ComplaintStats)
async def complaint_stats(
    current_profile: Profile = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
):
    """Complaint counts per status (Admin only)"""
    return ComplaintStats(**await get_complaint_service().complaint_stats(session))


@router.get("/{complaint_id}", response_model=ComplaintResponse)
async def get_complaint(
    complaint_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
):
    """Get a single complaint (owner or admin)"""
    return await get_complaint_service().get_complaint(current_profile, complaint_id, session)


@router.patch("/{complaint_id}/status", response_model=ComplaintResponse)
async def update_complaint_status(
    complaint_id: UUID,
    payload: ComplaintStatusUpdate,
    current_profile: Profile = Depends(require_admin),
    session: AsyncSession = Depends(get_async_session),
):
    """Change a complaint's status and feedback (Admin only)"""
    feedback = payload.admin_feedback if "admin_feedback" in payload.model_fields_set else UNCHANGED
    service = get_complaint_service()
    await service.update_complaint_status(
        current_profile, complaint_id, payload.status, session, feedback=feedback
    )
    return await service.get_complaint(current_profile, complaint_id, session)
