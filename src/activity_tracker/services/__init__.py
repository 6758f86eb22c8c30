"""Services for activity tracking."""

from .activity_service import ActivityService, OperationResult

__all__ = [
    "ActivityService",
    "OperationResult",
]
