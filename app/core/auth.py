from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_async_session
from app.core.security import decode_access_token
from app.models.profile import Profile, ProfileRole

# Security scheme
security = HTTPBearer()


async def resolve_principal(token: str, session: AsyncSession) -> Profile:
    """Map an access token to the active profile it was issued for"""
    payload = decode_access_token(token)
    profile_id: Optional[str] = payload.get("sub")

    if profile_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    try:
        profile_uuid = UUID(profile_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    # Get profile from database
    result = await session.execute(select(Profile).where(Profile.id == profile_uuid))
    profile = result.scalar_one_or_none()

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not profile.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )

    return profile


async def get_current_profile(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_async_session),
) -> Profile:
    """Get current authenticated profile"""
    return await resolve_principal(credentials.credentials, session)


async def require_student(
    current_profile: Profile = Depends(get_current_profile),
) -> Profile:
    """Require caller to be a student"""
    if current_profile.role != ProfileRole.STUDENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not permitted",
        )
    return current_profile


async def require_admin(
    current_profile: Profile = Depends(get_current_profile),
) -> Profile:
    """Require caller to be an admin"""
    if current_profile.role != ProfileRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not permitted",
        )
    return current_profile
