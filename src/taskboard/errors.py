"""Error taxonomy for remote and session failures."""


class TaskboardError(Exception):
    """Base class for every failure surfaced by the client."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        self.reason = message  # As supplied (e.g. by the server), None when absent
        self.message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.message)


class NetworkFailure(TaskboardError):
    """No response received (connection error or timeout)."""

    default_message = "Network error, please check your connection"


class AuthFailure(TaskboardError):
    """Expired or invalid credentials (401/403)."""

    default_message = "Authentication failed"


class Unauthenticated(AuthFailure):
    """Protected operation attempted without an authenticated session."""

    default_message = "Not authenticated"


class ValidationFailure(TaskboardError):
    """Input rejected, with per-field messages."""

    default_message = "Validation failed"

    def __init__(
        self,
        message: str | None = None,
        field_errors: dict[str, str] | None = None,
        status_code: int | None = None,
    ) -> None:
        self.field_errors = dict(field_errors or {})
        if message is None and self.field_errors:
            message = next(iter(self.field_errors.values()))
        super().__init__(message, status_code)


class NotFoundFailure(TaskboardError):
    """Target entity does not exist server-side."""

    default_message = "Not found"


class ServerFailure(TaskboardError):
    """Remote service failed (5xx)."""

    default_message = "Server error"
