"""Custom exception classes for the Butler console addon engine."""


class ButlerConsoleError(Exception):
    """Base exception for Butler console errors."""

    pass


class NetworkFailure(ButlerConsoleError):
    """Raised when a request fails without a structured error body.

    Covers transport errors (connection refused, TLS, timeouts) and non-2xx
    responses whose body is not a JSON error document.
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class BackendRejection(ButlerConsoleError):
    """Raised when the backend rejects an operation with a structured message."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class ValidationFailure(ButlerConsoleError):
    """Raised when a local precondition fails. No network call has been made."""

    pass


class ActionNotAvailableError(ValidationFailure):
    """Raised when the lifecycle guard does not expose the requested action."""

    pass


class OperationInProgressError(ValidationFailure):
    """Raised when a mutating operation is already in flight for the same addon."""

    pass


class CodecParseError(ButlerConsoleError):
    """Raised when hand-edited values text cannot be decoded."""

    def __init__(self, message: str, line_number: int | None = None):
        super().__init__(message)
        self.line_number = line_number


class ConfigurationError(ButlerConsoleError):
    """Raised when configuration is invalid or missing."""

    pass
