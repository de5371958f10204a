from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.core.security import create_access_token
from app.core.auth import get_current_profile
from app.models.profile import Profile, ProfileRole
from app.schemas.profile import StudentRegister, StudentLogin, AdminLogin, ProfileResponse, TokenResponse
from app.schemas.common import MessageResponse
from app.services.profile_service import get_profile_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _issue_token(profile: Profile) -> TokenResponse:
    if not profile.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )
    access_token = create_access_token(data={"sub": str(profile.id), "role": profile.role.value})
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        profile=ProfileResponse.model_validate(profile),
    )


@router.post("/register", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: StudentRegister,
    session: AsyncSession = Depends(get_async_session),
):
    """Register a new student. Admin accounts are provisioned by operators only."""
    return await get_profile_service().register_student(data, session)


@router.post("/login/student", response_model=TokenResponse)
async def login_student(
    credentials: StudentLogin,
    session: AsyncSession = Depends(get_async_session),
):
    """Login with student id and password"""
    service = get_profile_service()

    # Students log in by student id; resolve it to the account email first
    email = await service.lookup_email_by_student_id(credentials.student_id, session)
    if not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid Student ID",
        )

    profile = await service.authenticate(email, credentials.password, session)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if profile.role != ProfileRole.STUDENT:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account is not a student account",
        )

    return _issue_token(profile)


@router.post("/login/admin", response_model=TokenResponse)
async def login_admin(
    credentials: AdminLogin,
    session: AsyncSession = Depends(get_async_session),
):
    """Login with admin email and password"""
    profile = await get_profile_service().authenticate(credentials.email, credentials.password, session)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if profile.role != ProfileRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account is not an admin account",
        )

    return _issue_token(profile)


@router.get("/me", response_model=ProfileResponse)
async def get_current_profile_info(
    current_profile: Profile = Depends(get_current_profile),
):
    """Get current profile information"""
    return current_profile


@router.post("/logout", response_model=MessageResponse)
async def logout():
    """Logout (client should delete token)"""
    return MessageResponse(message="Successfully logged out")
