"""Domain-specific exceptions.

These exceptions represent business rule violations and domain errors.
They should be caught and handled by the application layer.
"""


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(DomainException):
    """Raised when domain validation fails."""

    pass


class UnsupportedIntegrationError(ValidationError):
    """Raised when no provider is registered for an integration name."""

    pass


class UnauthorizedError(DomainException):
    """Raised when the caller does not own the resource."""

    pass


class ResourceNotFoundError(DomainException):
    """Raised when a requested resource does not exist."""

    pass


class InvalidTokenError(DomainException):
    """Raised when a provider rejects an integration credential."""

    pass


class TransientIOError(DomainException):
    """Raised when a network or storage call failed and is safe to retry."""

    pass


class InconsistentStateError(DomainException):
    """Raised when the task/record invariant could not be restored."""

    pass


class InvalidStateTransitionError(DomainException):
    """Raised when an invalid state transition is attempted."""

    pass
