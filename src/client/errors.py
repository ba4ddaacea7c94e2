"""Errors raised by the API client."""


class ClientError(Exception):
    """Base class for client-side failures."""
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(ClientError):
    """Server could not be reached. Never retried automatically."""
    default_message = "Unable to connect to server. Please try again later."


class SessionExpiredError(ClientError):
    """Token was rejected and re-verification failed; the session is cleared."""
    default_message = "Session expired. Please log in again."


class ApiError(ClientError):
    """Server answered with an error body."""

    def __init__(self, message: str | None = None, status_code: int | None = None,
                 errors: list[str] | None = None):
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)
