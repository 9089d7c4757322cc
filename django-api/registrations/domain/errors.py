"""Domain error codes for the registrations module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE = "DUPLICATE"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"


class PreconditionReason(Enum):
    """Why a lifecycle guard rejected an action."""

    NOT_READY = "not_ready"
    ALREADY_DONE = "already_done"
    CLOSED = "closed"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class UnauthenticatedError(DomainError):
    """Raised when an action needs a caller identity and there is none."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.UNAUTHENTICATED,
            message="Authentication required",
        )


class ForbiddenError(DomainError):
    """Raised when the caller lacks a role tier or a permission."""

    def __init__(self, capability: str, reason: str) -> None:
        super().__init__(code=ErrorCode.FORBIDDEN, message=reason)
        self.capability = capability


class ValidationError(DomainError):
    """Raised when input is structurally invalid."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(code=ErrorCode.VALIDATION_ERROR, message=message)
        self.field = field


class NotFoundError(DomainError):
    """Raised when a referenced entity does not exist."""

    entity = "Resource"

    def __init__(self, identifier: str) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=f"{self.entity} not found",
        )
        self.identifier = identifier


class EventNotFoundError(NotFoundError):
    entity = "Event"


class TicketNotFoundError(NotFoundError):
    entity = "Ticket"


class RegistrationNotFoundError(NotFoundError):
    entity = "Registration"


class UserNotFoundError(NotFoundError):
    entity = "User"


class PermissionNotFoundError(NotFoundError):
    entity = "Permission"


class DuplicateError(DomainError):
    """Raised on a uniqueness violation.

    This is an expected outcome: callers decide whether to report it or
    treat it as a no-op.
    """

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.DUPLICATE, message=message)


class DuplicateRegistrationError(DuplicateError):
    """Raised when the identity is already registered for the event."""

    def __init__(self, event_id: str) -> None:
        super().__init__("Already registered for this event")
        self.event_id = event_id


class PreconditionFailedError(DomainError):
    """Raised when a lifecycle guard is violated."""

    def __init__(self, message: str, reason: PreconditionReason) -> None:
        super().__init__(code=ErrorCode.PRECONDITION_FAILED, message=message)
        self.reason = reason


class InvalidTransitionError(DomainError):
    """Raised for a structurally impossible or concurrent stage move."""

    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_TRANSITION, message=message)


class TemplateNotFoundError(DomainError):
    """Raised when no message template matches a (key, channel) pair."""

    def __init__(self, template_key: str, channel: str) -> None:
        super().__init__(
            code=ErrorCode.TEMPLATE_NOT_FOUND,
            message=f'Message template not found: key="{template_key}" channel="{channel}"',
        )
        self.template_key = template_key
        self.channel = channel
