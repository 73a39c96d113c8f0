"""
Custom exceptions for the Vanpool Booking platform.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""

    # General errors
    UNEXPECTED = "unexpected"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"

    # Conflicts
    DUPLICATE_NAME = "duplicate_name"
    VAN_CLOSED = "van_closed"
    HAS_ACTIVE_PASSENGERS = "has_active_passengers"
    FINALIZED_LOCKED = "finalized_locked"
    NO_CONFIRMED_PASSENGERS = "no_confirmed_passengers"
    VAN_COST_REQUIRED = "van_cost_required"
    ALREADY_ATTACHED = "already_attached"
    ALREADY_EXISTS = "already_exists"

    # State machine
    INVALID_TRANSITION = "invalid_transition"

    # Concurrency errors
    CONCURRENCY_CONFLICT = "concurrency_conflict"


class ErrorCategory(str, Enum):
    """Coarse error taxonomy callers can branch on."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    STATE_TRANSITION_INVALID = "state_transition_invalid"
    UNEXPECTED = "unexpected"


class VanpoolError(Exception):
    """Base exception class for the Vanpool platform."""

    category: ErrorCategory = ErrorCategory.UNEXPECTED

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNEXPECTED,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "code": self.error_code.value,
            "category": self.category.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.retry_after:
            result["retry_after"] = self.retry_after

        return result


class ValidationError(VanpoolError):
    """Exception raised for malformed or out-of-range input."""

    category = ErrorCategory.VALIDATION

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None, **kwargs):
        details = kwargs.pop("details", None) or {}
        if field_errors:
            details["field_errors"] = field_errors
        super().__init__(
            message,
            error_code=ErrorCode.VALIDATION,
            details=details,
            **kwargs
        )
        self.field_errors = field_errors or {}


class NotFoundError(VanpoolError):
    """Base exception for resource not found errors."""

    category = ErrorCategory.NOT_FOUND

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class VanNotFoundError(NotFoundError):
    """Exception raised when a van is not found."""

    def __init__(self, van_id: str, **kwargs):
        super().__init__(
            f"Van {van_id} not found",
            resource_type="van",
            resource_id=van_id,
            **kwargs
        )


class EventNotFoundError(NotFoundError):
    """Exception raised when an event is not found."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            f"Event {event_id} not found",
            resource_type="event",
            resource_id=event_id,
            **kwargs
        )


class ReservationNotFoundError(NotFoundError):
    """Exception raised when an active reservation is not found."""

    def __init__(self, reservation_id: str, **kwargs):
        super().__init__(
            f"Reservation {reservation_id} not found",
            resource_type="reservation",
            resource_id=reservation_id,
            **kwargs
        )


class OverrideNotFoundError(NotFoundError):
    """Exception raised when a duplicate-name override is not found."""

    def __init__(self, override_id: str, **kwargs):
        super().__init__(
            f"Override {override_id} not found",
            resource_type="duplicate_name_override",
            resource_id=override_id,
            **kwargs
        )


class EventVanNotFoundError(NotFoundError):
    """Exception raised when a van is not attached to the given event."""

    def __init__(self, event_id: str, van_id: str, **kwargs):
        super().__init__(
            f"Van {van_id} is not attached to event {event_id}",
            resource_type="event_van",
            resource_id=f"{event_id}/{van_id}",
            **kwargs
        )


class ConflictError(VanpoolError):
    """Base exception for requests that clash with the current state."""

    category = ErrorCategory.CONFLICT


class DuplicateNameError(ConflictError):
    """Exception raised when a full name already holds an active reservation."""

    def __init__(self, full_name: str, existing_reservation: Optional[Dict[str, Any]] = None, **kwargs):
        details: Dict[str, Any] = {"full_name": full_name}
        if existing_reservation is not None:
            details["existing_reservation"] = existing_reservation
        super().__init__(
            "This full name already holds an active reservation.",
            error_code=ErrorCode.DUPLICATE_NAME,
            details=details,
            suggestions=["Release the existing reservation first", "Ask an administrator for a name exception"],
            **kwargs
        )
        self.full_name = full_name
        self.existing_reservation = existing_reservation


class VanClosedError(ConflictError):
    """Exception raised when a closed van's roster would change."""

    def __init__(self, van_id: str, **kwargs):
        super().__init__(
            f"Van {van_id} is closed; its roster can no longer change",
            error_code=ErrorCode.VAN_CLOSED,
            details={"van_id": van_id},
            suggestions=["Ask an administrator to reopen the van"],
            **kwargs
        )


class VanHasActivePassengersError(ConflictError):
    """Exception raised when deleting a van that still has riders."""

    def __init__(self, van_id: str, active_count: int, **kwargs):
        super().__init__(
            f"Cannot delete van {van_id} with {active_count} active reservations",
            error_code=ErrorCode.HAS_ACTIVE_PASSENGERS,
            details={"van_id": van_id, "active_count": active_count},
            suggestions=["Release every confirmed and waitlisted passenger first"],
            **kwargs
        )


class EventFinalizedError(ConflictError):
    """Exception raised when mutating a finalized event."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            f"Event {event_id} is finalized and can no longer be changed",
            error_code=ErrorCode.FINALIZED_LOCKED,
            details={"event_id": event_id},
            **kwargs
        )


class NoConfirmedPassengersError(ConflictError):
    """Exception raised when a van cost cannot be split."""

    def __init__(self, van_id: str, **kwargs):
        super().__init__(
            "Cannot close a van with no confirmed passengers",
            error_code=ErrorCode.NO_CONFIRMED_PASSENGERS,
            details={"van_id": van_id},
            **kwargs
        )


class VanCostRequiredError(ConflictError):
    """Exception raised when closing a van without a cost."""

    def __init__(self, van_id: str, **kwargs):
        super().__init__(
            "Set the van cost before closing",
            error_code=ErrorCode.VAN_COST_REQUIRED,
            details={"van_id": van_id},
            **kwargs
        )


class VanAlreadyAttachedError(ConflictError):
    """Exception raised when a van already serves an event."""

    def __init__(self, van_id: str, event_id: str, **kwargs):
        super().__init__(
            f"Van {van_id} is already attached to event {event_id}",
            error_code=ErrorCode.ALREADY_ATTACHED,
            details={"van_id": van_id, "event_id": event_id},
            suggestions=["Detach the van from its current event first"],
            **kwargs
        )


class VanNameTakenError(ConflictError):
    """Exception raised when a van name is already in use."""

    def __init__(self, name: str, **kwargs):
        super().__init__(
            f"A van named '{name}' already exists",
            error_code=ErrorCode.ALREADY_EXISTS,
            details={"name": name},
            **kwargs
        )


class InvalidTransitionError(VanpoolError):
    """Exception raised for illegal event or van status jumps."""

    category = ErrorCategory.STATE_TRANSITION_INVALID

    def __init__(self, entity: str, current: str, target: str, **kwargs):
        super().__init__(
            f"Cannot move {entity} from {current} to {target}",
            error_code=ErrorCode.INVALID_TRANSITION,
            details={"entity": entity, "current_status": current, "target_status": target},
            **kwargs
        )


class ConcurrencyError(VanpoolError):
    """Exception raised when a concurrent write won the race."""

    category = ErrorCategory.CONFLICT

    def __init__(self, message: str, retry_after: int = 1, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.CONCURRENCY_CONFLICT,
            retry_after=retry_after,
            suggestions=["Please try again"],
            **kwargs
        )


class UnexpectedError(VanpoolError):
    """Exception raised for store or infrastructure failures."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.UNEXPECTED,
            **kwargs
        )
