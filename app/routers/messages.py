from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.core.auth import get_current_profile
from app.models.profile import Profile
from app.schemas.message import MessageCreate, MessageResponse
from app.services.message_service import get_message_service

router = APIRouter(tags=["Complaint Chat"])


@router.get("/complaints/{complaint_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    complaint_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
):
    """Get a complaint's thread, oldest first"""
    return await get_message_service().list_messages(current_profile, complaint_id, session)


@router.post(
    "/complaints/{complaint_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_message(
    complaint_id: UUID,
    payload: MessageCreate,
    current_profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
):
    """Send a message on a complaint (its student or any admin)"""
    service = get_message_service()
    message = await service.post_message(current_profile, complaint_id, payload.message, session)
    views = await service.present([message], session)
    return views[0]


@router.post("/messages/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: UUID,
    current_profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
):
    """Mark a message as read. Repeated calls keep the first read time."""
    service = get_message_service()
    message = await service.mark_read(current_profile, message_id, session)
    views = await service.present([message], session)
    return views[0]
