from app.models.profile import Profile, ProfileRole
from app.models.complaint import Complaint, ComplaintCategory, ComplaintStatus
from app.models.complaint_message import ComplaintMessage

__all__ = [
    "Profile", "ProfileRole",
    "Complaint", "ComplaintCategory", "ComplaintStatus",
    "ComplaintMessage",
]
