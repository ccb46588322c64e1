class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFound(DomainError):
    """Raised when a referenced contract, reservation or log does not exist."""


class ContractNotFound(NotFound):
    pass


class ReservationNotFound(NotFound):
    pass


class AttendanceLogNotFound(NotFound):
    pass


class InvalidRecurrenceDefinition(ValidationError):
    """Raised when a recurrence rule cannot resolve to a concrete slot pattern."""


class SlotConflict(DomainError):
    """Raised when a reservation slot is already taken for the same contract."""


class InvalidTransition(DomainError):
    """Raised when an attendance or reservation change is disallowed by policy."""


class TransientStorageFailure(DomainError):
    """Raised for retryable storage errors (lock timeouts, lost connections)."""
