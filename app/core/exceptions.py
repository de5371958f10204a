"""
Domain exceptions raised by the service layer.

Routers let these propagate; ``main.py`` maps each one to an HTTP response.
"""

from typing import Any, Dict, List, Optional


class ComplaintDeskError(Exception):
    """Base class for all service-layer errors"""

    status_code = 500
    default_message = "Operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ComplaintDeskError):
    """A referenced complaint, message or profile does not exist"""

    status_code = 404
    default_message = "Not found"

    def __init__(self, entity: str):
        super().__init__(f"{entity} not found")
        self.entity = entity


class PermissionDeniedError(ComplaintDeskError):
    """The caller's role or ownership does not allow the operation"""

    status_code = 403
    default_message = "Not permitted"

    def __init__(self):
        # Deliberately generic: the reason is never exposed to the caller
        super().__init__(self.default_message)


class ConflictError(ComplaintDeskError):
    """A unique attribute (email, student id) is already taken"""

    status_code = 400
    default_message = "Already exists"


class InvalidInputError(ComplaintDeskError):
    """Input rejected by a server-side rule beyond the request schema"""

    status_code = 422
    default_message = "Invalid input"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_detail(self) -> List[Dict[str, Any]]:
        return [{"loc": ["body", self.field], "msg": self.message, "type": "value_error"}]


class StoreError(ComplaintDeskError):
    """The persistence layer rejected or could not complete a read/write"""

    status_code = 500
    default_message = "Database operation failed"
