"""
Identity and profile resolution: registration, admin provisioning, and how
principals are displayed to each other.
"""

import logging
from typing import Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import select, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, StoreError
from app.core.security import get_password_hash, verify_password
from app.models.profile import Profile, ProfileRole
from app.schemas.profile import StudentRegister, SenderInfo

logger = logging.getLogger(__name__)

UNKNOWN_SENDER = SenderInfo(name="Unknown", role=ProfileRole.STUDENT)


def sender_info(profile: Optional[Profile]) -> SenderInfo:
    """Display identity of a sender; a missing profile degrades to "Unknown" """
    if profile is None:
        return UNKNOWN_SENDER
    return SenderInfo(name=profile.display_name, role=profile.role)


class ProfileService:
    """Service for creating and looking up profiles"""

    async def register_student(self, data: StudentRegister, session: AsyncSession) -> Profile:
        """Create a student profile; the role is never taken from the request"""
        result = await session.execute(
            select(Profile).where(
                or_(Profile.email == data.email, Profile.student_id == data.student_id)
            )
        )
        existing = result.scalars().first()
        if existing is not None:
            if existing.email == data.email:
                raise ConflictError("Email already registered")
            raise ConflictError("Student ID already registered")

        profile = Profile(
            email=data.email,
            hashed_password=get_password_hash(data.password),
            name=data.name,
            role=ProfileRole.STUDENT,
            student_id=data.student_id,
            batch=data.batch,
            phone=data.phone,
        )
        session.add(profile)
        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception("Failed to register student %s", data.student_id)
            raise StoreError("Registration failed")
        await session.refresh(profile)

        logger.info("Registered student %s", profile.student_id)
        return profile

    async def provision_admin(
        self, email: str, name: str, password: str, session: AsyncSession
    ) -> Profile:
        """Create an admin profile (operator use only, never exposed over HTTP)"""
        result = await session.execute(select(Profile).where(Profile.email == email))
        if result.scalar_one_or_none() is not None:
            raise ConflictError("Email already registered")

        profile = Profile(
            email=email,
            hashed_password=get_password_hash(password),
            name=name,
            role=ProfileRole.ADMIN,
        )
        session.add(profile)
        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception("Failed to provision admin %s", email)
            raise StoreError("Provisioning failed")
        await session.refresh(profile)

        logger.info("Provisioned admin %s", email)
        return profile

    async def lookup_email_by_student_id(
        self, student_id: str, session: AsyncSession
    ) -> Optional[str]:
        """Translate the identifier a student logs in with to their account email"""
        result = await session.execute(
            select(Profile.email).where(
                Profile.student_id == student_id,
                Profile.role == ProfileRole.STUDENT,
            )
        )
        return result.scalar_one_or_none()

    async def authenticate(
        self, email: str, password: str, session: AsyncSession
    ) -> Optional[Profile]:
        result = await session.execute(select(Profile).where(Profile.email == email))
        profile = result.scalar_one_or_none()
        if profile is None or not verify_password(password, profile.hashed_password):
            return None
        return profile

    async def get_profiles(
        self, profile_ids: Iterable[UUID], session: AsyncSession
    ) -> Dict[UUID, Profile]:
        ids = set(profile_ids)
        if not ids:
            return {}
        result = await session.execute(select(Profile).where(Profile.id.in_(ids)))
        return {profile.id: profile for profile in result.scalars().all()}


# Singleton
_profile_service: Optional[ProfileService] = None


def get_profile_service() -> ProfileService:
    """Get or create profile service singleton"""
    global _profile_service
    if _profile_service is None:
        _profile_service = ProfileService()
    return _profile_service
