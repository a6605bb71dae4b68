"""
Typed exceptions for lead lifecycle failures.

Every failure carries an ErrorKind so callers can react without parsing
messages: re-authenticate on UNAUTHORIZED, highlight `field` on
VALIDATION_ERROR, offer a retry on TRANSIENT.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a lead engine failure."""

    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    TRANSIENT = "transient"


class LeadEngineError(Exception):
    """Base class for all lead engine errors."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR
    code: str = "LEAD_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(message)


# =============================================================================
# CREDENTIAL AND TRANSPORT
# =============================================================================


class UnauthorizedError(LeadEngineError):
    """Credential missing or expired. Never retried automatically."""

    kind = ErrorKind.UNAUTHORIZED
    code = "UNAUTHORIZED"


class TransientError(LeadEngineError):
    """Network or server failure. Safe for the caller to retry."""

    kind = ErrorKind.TRANSIENT
    code = "TRANSIENT"


# =============================================================================
# NOT FOUND
# =============================================================================


class LeadNotFoundError(LeadEngineError):
    """Lead does not exist in the actor's organization."""

    kind = ErrorKind.NOT_FOUND
    code = "LEAD_NOT_FOUND"


class InvalidStatusError(LeadEngineError):
    """Status id is not a member of the status catalog."""

    kind = ErrorKind.NOT_FOUND
    code = "INVALID_STATUS"


class TargetNotFoundError(LeadEngineError):
    """Assignment target is not an active user of the requested role."""

    kind = ErrorKind.NOT_FOUND
    code = "TARGET_NOT_FOUND"


# =============================================================================
# AUTHORIZATION
# =============================================================================


class UnauthorizedActorError(LeadEngineError):
    """Actor is authenticated but not allowed to act on this lead."""

    kind = ErrorKind.FORBIDDEN
    code = "UNAUTHORIZED_ACTOR"


# =============================================================================
# VALIDATION
# =============================================================================


class LeadValidationError(LeadEngineError):
    """A caller-supplied field failed a precondition."""

    kind = ErrorKind.VALIDATION_ERROR
    code = "VALIDATION_ERROR"


class MissingFeedbackError(LeadValidationError):
    """Feedback or next action is empty."""

    code = "MISSING_FEEDBACK"


class MissingRequiredDateError(LeadValidationError):
    """The date field required by the target status class was not supplied."""

    code = "MISSING_REQUIRED_DATE"


class DateInPastError(LeadValidationError):
    """Follow-up or action date is earlier than today."""

    code = "DATE_IN_PAST"


class LeadUnassignedError(LeadValidationError):
    """Operation requires an assignee but the lead has none."""

    code = "LEAD_UNASSIGNED"


class InvalidTargetRoleError(LeadValidationError):
    """Target user type is not an assignable role."""

    code = "INVALID_TARGET_ROLE"


class InvalidPriorityError(LeadValidationError):
    """Priority is not one of High, Medium, Low."""

    code = "INVALID_PRIORITY"


class BookingValidationError(LeadValidationError):
    """A booking detail field is missing or malformed."""

    code = "BOOKING_VALIDATION_ERROR"


# =============================================================================
# STATE
# =============================================================================


class InvalidStateTransitionError(LeadEngineError):
    """Lead is in a state that does not allow the requested operation."""

    kind = ErrorKind.INVALID_STATE_TRANSITION
    code = "INVALID_STATE_TRANSITION"


class LeadAlreadyTerminalError(InvalidStateTransitionError):
    """Lead is terminal (won, lost, revoked or booked). No further changes."""

    code = "LEAD_ALREADY_TERMINAL"


class IllegalTransitionError(InvalidStateTransitionError):
    """Target status cannot be entered through a status transition."""

    code = "ILLEGAL_TRANSITION"


class AlreadyBookedError(InvalidStateTransitionError):
    """Lead has already been booked."""

    code = "ALREADY_BOOKED"


def validation_error_from_pydantic(exc, error_cls=LeadValidationError) -> LeadValidationError:
    """
    Convert the first pydantic validation error into a field-specific error.

    Args:
        exc: pydantic.ValidationError
        error_cls: LeadValidationError subclass to raise

    Returns:
        error_cls instance naming the first failing field
    """
    errors = exc.errors()
    if not errors:
        return error_cls(str(exc))
    first = errors[0]
    loc = first.get("loc") or ()
    field = str(loc[0]) if loc else None
    message = first.get("msg", "Invalid value")
    if field:
        message = f"{field}: {message}"
    return error_cls(message, field=field)
