import uuid
import enum
from datetime import datetime
from typing import Optional, List, TYPE_CHECKING
from sqlalchemy import String, Text, Enum as SQLEnum, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.utils.time import utcnow

if TYPE_CHECKING:
    from app.models.profile import Profile
    from app.models.complaint_message import ComplaintMessage


class ComplaintCategory(str, enum.Enum):
    """What the complaint is about"""
    ELECTRICAL = "electrical"
    SYSTEM = "system"
    HOSTEL = "hostel"
    ACADEMIC = "academic"
    INFRASTRUCTURE = "infrastructure"
    OTHER = "other"


class ComplaintStatus(str, enum.Enum):
    """Complaint lifecycle states"""
    PENDING = "pending"
    EMERGENCY = "emergency"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class Complaint(Base):
    """A student-submitted issue tracked through the status lifecycle"""
    __tablename__ = "complaints"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    category: Mapped[ComplaintCategory] = mapped_column(
        SQLEnum(ComplaintCategory, name="complaint_category", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[ComplaintStatus] = mapped_column(
        SQLEnum(ComplaintStatus, name="complaint_status", values_callable=lambda e: [m.value for m in e]),
        default=ComplaintStatus.PENDING,
        nullable=False,
        index=True,
    )
    admin_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    # Stamped on every transition to RESOLVED, cleared on any other transition
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    # Relationships
    student: Mapped["Profile"] = relationship("Profile", back_populates="complaints")
    messages: Mapped[List["ComplaintMessage"]] = relationship(
        "ComplaintMessage",
        back_populates="complaint",
        order_by="ComplaintMessage.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Complaint {self.id} - {self.status.value}>"
