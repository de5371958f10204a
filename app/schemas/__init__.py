from app.schemas.profile import (
    StudentRegister, StudentLogin, AdminLogin, ProfileResponse, ProfilePublic, SenderInfo, TokenResponse
)
from app.schemas.complaint import (
    ComplaintCreate, ComplaintStatusUpdate, ComplaintResponse, ComplaintList, ComplaintStats
)
from app.schemas.message import MessageCreate, MessageResponse as ThreadMessageResponse
from app.schemas.notification import (
    NotificationResponse, NotificationList, UnreadCountResponse, OpenNotificationResponse, MarkAllReadResponse
)
from app.schemas.common import MessageResponse, SweepResponse

__all__ = [
    "StudentRegister",
    "StudentLogin",
    "AdminLogin",
    "ProfileResponse",
    "ProfilePublic",
    "SenderInfo",
    "TokenResponse",
    "ComplaintCreate",
    "ComplaintStatusUpdate",
    "ComplaintResponse",
    "ComplaintList",
    "ComplaintStats",
    "MessageCreate",
    "ThreadMessageResponse",
    "NotificationResponse",
    "NotificationList",
    "UnreadCountResponse",
    "OpenNotificationResponse",
    "MarkAllReadResponse",
    "MessageResponse",
    "SweepResponse",
]
