class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class ConfirmationRequiredError(ValidationError):
    """Raised when a destructive operation is called without confirm=True."""


class NotFoundError(DomainError):
    """Raised when a referenced period or record does not exist."""


class StateConflictError(DomainError):
    """Raised when an entity is not in a state that allows the operation."""


class ConfigurationError(DomainError):
    """Raised when settings are missing or invalid."""


class AuthenticationError(DomainError):
    """Raised when no acting user is attached to the request."""


def error_kind(exc: Exception) -> str:
    """Short machine-readable kind used in result objects and HTTP mapping."""

    if isinstance(exc, AuthenticationError):
        return "unauthenticated"
    if isinstance(exc, NotFoundError):
        return "not_found"
    if isinstance(exc, ValidationError):
        return "invalid"
    if isinstance(exc, StateConflictError):
        return "conflict"
    return "error"
