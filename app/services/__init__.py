# Services for business logic
from app.services.profile_service import ProfileService, get_profile_service
from app.services.complaint_service import ComplaintService, get_complaint_service
from app.services.message_service import MessageService, get_message_service
from app.services.notification_service import NotificationService, get_notification_service
from app.services.retention_sweeper import RetentionSweeper, SweepResult
from app.services.realtime import ChangeBroker, LiveView, get_change_broker

__all__ = [
    "ProfileService", "get_profile_service",
    "ComplaintService", "get_complaint_service",
    "MessageService", "get_message_service",
    "NotificationService", "get_notification_service",
    "RetentionSweeper", "SweepResult",
    "ChangeBroker", "LiveView", "get_change_broker",
]
