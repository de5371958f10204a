import uuid
from datetime import datetime
from typing import Optional, TYPE_CHECKING
from sqlalchemy import Text, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.utils.time import utcnow

if TYPE_CHECKING:
    from app.models.profile import Profile
    from app.models.complaint import Complaint


class ComplaintMessage(Base):
    """A message in a complaint's thread between its student and the admins"""
    __tablename__ = "complaint_messages"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )

    complaint_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("complaints.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )

    message: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)
    # Null means unread; set exactly once
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True, index=True)

    # Relationships
    complaint: Mapped["Complaint"] = relationship("Complaint", back_populates="messages")
    sender: Mapped["Profile"] = relationship("Profile")

    def __repr__(self) -> str:
        return f"<ComplaintMessage {self.id} - Complaint {self.complaint_id}>"
