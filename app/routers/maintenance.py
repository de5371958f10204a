import logging
import secrets
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_async_session
from app.core.exceptions import StoreError
from app.schemas.common import SweepResponse
from app.services.retention_sweeper import RetentionSweeper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/maintenance", tags=["Maintenance"])


async def require_maintenance_key(
    x_maintenance_key: Optional[str] = Header(None),
) -> None:
    """Only the scheduler holding the shared maintenance key may trigger jobs"""
    if (
        not settings.MAINTENANCE_API_KEY
        or not x_maintenance_key
        or not secrets.compare_digest(x_maintenance_key, settings.MAINTENANCE_API_KEY)
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not permitted",
        )


@router.post(
    "/cleanup-resolved-complaints",
    response_model=SweepResponse,
    responses={500: {"description": "Sweep failed", "content": {"application/json": {"example": {"error": "..."}}}}},
)
async def cleanup_resolved_complaints(
    _: None = Depends(require_maintenance_key),
    session: AsyncSession = Depends(get_async_session),
):
    """
    Delete complaints resolved longer ago than the retention window.

    Safe to call repeatedly: a second run with no new resolutions deletes nothing.
    """
    try:
        result = await RetentionSweeper().sweep(session)
    except StoreError as e:
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": e.message})
    except Exception:
        logger.exception("Unexpected error during retention sweep")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    return SweepResponse(
        success=True,
        message="Old resolved complaints cleaned up",
        deleted=result.deleted_complaints,
    )
