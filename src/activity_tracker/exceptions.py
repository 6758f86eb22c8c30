"""
Errors raised by the activity tracker.

Every error carries an ErrorCode and the HTTP status the API answers with.
Services catch them and hand them back inside an OperationResult; the API
layer turns them into {"error": {"code", "message", "details"}} bodies.
"""

from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for consistent error responses."""

    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # History
    ACTIVITY_NOT_FOUND = "ACTIVITY_NOT_FOUND"
    ACTIVITY_VALIDATION_ERROR = "ACTIVITY_VALIDATION_ERROR"

    # Live session
    NO_ACTIVE_SESSION = "NO_ACTIVE_SESSION"
    SENSOR_ERROR = "SENSOR_ERROR"

    # Storage and statistics
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"
    STATISTICS_INCONSISTENT = "STATISTICS_INCONSISTENT"


class ActivityTrackerError(Exception):
    """
    Root of the tracker's errors.

    Subclasses pin `code` and `status_code` as class attributes and pass
    whatever context a client can act on as keyword details.
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500
    default_message = "Activity tracker failure"

    def __init__(self, message: Optional[str] = None, **details: Any) -> None:
        self.message = message or self.default_message
        self.details: Dict[str, Any] = {k: v for k, v in details.items() if v is not None}
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# ============================================================================
# Bad activity data (422)
# ============================================================================

class ValidationError(ActivityTrackerError):
    """An activity or edit breaks the activity model's rules."""

    code = ErrorCode.VALIDATION_ERROR
    status_code = 422
    default_message = "Invalid activity data"


class ActivityValidationError(ValidationError):
    """A stored activity record no longer parses or validates."""

    code = ErrorCode.ACTIVITY_VALIDATION_ERROR

    def __init__(self, activity_id: str, reason: str) -> None:
        super().__init__(
            f"Stored activity {activity_id} is invalid",
            activity_id=activity_id,
            reason=reason,
        )
        self.activity_id = activity_id


# ============================================================================
# Lookups (404)
# ============================================================================

class NotFoundError(ActivityTrackerError):
    """A record looked up by id does not exist."""

    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} with ID '{resource_id}' not found",
            resource_type=resource_type,
            resource_id=resource_id,
        )
        self.resource_id = resource_id


class ActivityNotFoundError(NotFoundError):
    code = ErrorCode.ACTIVITY_NOT_FOUND

    def __init__(self, activity_id: str) -> None:
        super().__init__("Activity", activity_id)


# ============================================================================
# Live session (409 / 503)
# ============================================================================

class SessionConflictError(ActivityTrackerError):
    """A session is already tracking or paused."""

    code = ErrorCode.CONFLICT
    status_code = 409
    default_message = "A workout session is already in progress"

    def __init__(self, activity_id: Optional[str] = None) -> None:
        super().__init__(activity_id=activity_id)


class NoActiveSessionError(ActivityTrackerError):
    """A session command arrived while nothing is tracking or paused."""

    code = ErrorCode.NO_ACTIVE_SESSION
    status_code = 409
    default_message = "No workout session is in progress"


class SensorError(ActivityTrackerError):
    """The location stream failed; the session keeps tracking time."""

    code = ErrorCode.SENSOR_ERROR
    status_code = 503
    default_message = "Location stream failed"


# ============================================================================
# Storage and statistics (500)
# ============================================================================

class PersistenceError(ActivityTrackerError):
    """A repository read or write failed."""

    code = ErrorCode.PERSISTENCE_ERROR
    default_message = "Persistence operation failed"

    def __init__(self, message: Optional[str] = None, operation: Optional[str] = None) -> None:
        super().__init__(message, operation=operation)
        self.operation = operation


class StatisticsConsistencyError(ActivityTrackerError):
    """Derived statistics disagree with their own invariants and could not be rebuilt."""

    code = ErrorCode.STATISTICS_INCONSISTENT

    def __init__(self, issues: List[str], reason: Optional[str] = None) -> None:
        super().__init__(
            f"Statistics inconsistent: {len(issues)} issue(s) found",
            issues=list(issues),
            reason=reason,
        )
        self.issues = list(issues)
