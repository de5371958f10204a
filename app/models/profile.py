import uuid
import enum
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Boolean, Enum as SQLEnum, DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.utils.time import utcnow

if TYPE_CHECKING:
    from app.models.complaint import Complaint


class ProfileRole(str, enum.Enum):
    """Principal roles"""
    STUDENT = "student"
    ADMIN = "admin"


class Profile(Base):
    """One profile per principal, holding its role and login credential"""
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Fixed at registration/provisioning, never changed through the API
    role: Mapped[ProfileRole] = mapped_column(
        SQLEnum(ProfileRole, name="profile_role", values_callable=lambda e: [m.value for m in e]),
        default=ProfileRole.STUDENT,
        nullable=False,
    )

    # Student-specific fields
    student_id: Mapped[Optional[str]] = mapped_column(
        String(50), unique=True, index=True, nullable=True
    )
    batch: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    # Relationships
    complaints: Mapped[List["Complaint"]] = relationship(
        "Complaint", back_populates="student", passive_deletes=True
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN

    @property
    def display_name(self) -> str:
        """Admins always speak with one institutional voice"""
        if self.role == ProfileRole.ADMIN:
            return "Admin"
        return self.name

    def __repr__(self) -> str:
        return f"<Profile {self.email} ({self.role.value})>"
