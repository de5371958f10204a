# Utility functions
from app.utils.time import utcnow

__all__ = [
    "utcnow",
]
