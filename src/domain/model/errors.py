"""Domain-level exceptions.

Services raise these errors to express business rule violations.
The API layer maps each class to an HTTP status code and a JSON body.
"""


class DomainError(Exception):
    """Base class for all domain errors."""
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    """Input violates a validation rule."""
    default_message = "Validation failed"

    def __init__(self, message: str | None = None, errors: list[str] | None = None):
        self.errors = errors or []
        super().__init__(message)


class NotFoundError(DomainError):
    """Requested entity does not exist."""
    default_message = "User not found"


class ConflictError(DomainError):
    """Entity with the same unique key already exists."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"{field} already exists")


class DuplicateKeyError(ConflictError):
    """Store rejected a write because a unique field collides."""


class AuthenticationError(DomainError):
    """Caller could not be authenticated."""
    default_message = "Not authenticated"


class InvalidCredentialsError(AuthenticationError):
    default_message = "Invalid credentials"


class InvalidCodeError(AuthenticationError):
    default_message = "Invalid OTP"


class ExpiredError(AuthenticationError):
    """Time-limited credential used past its expiry."""
    default_message = "Expired"


class OtpExpiredError(ExpiredError):
    default_message = "OTP expired"


class TokenExpiredError(ExpiredError):
    default_message = "Token has expired"


class InvalidTokenError(AuthenticationError):
    default_message = "Invalid token"


class UnverifiedError(AuthenticationError):
    default_message = "Please verify your account with OTP first"


class DispatchError(DomainError):
    """Messaging provider failed to deliver."""
    default_message = "Failed to send OTP. Please try again."
