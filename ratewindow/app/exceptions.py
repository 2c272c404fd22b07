"""Custom exceptions for the rate limiter.

Exceeding the quota is not an error: it is reported through
``RateLimitResult.allowed``.
"""


class RateLimitError(Exception):
    """Base class for rate limiter exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Rate limiter error"):
        self.message = message
        super().__init__(message)


class StoreUnavailable(RateLimitError):
    """Raised when the backing store fails (network, timeout, protocol).

    The original client exception is chained as ``__cause__``.
    Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503

    def __init__(self, detail: str = "Rate limit store unavailable", operation: str | None = None):
        self.operation = operation
        message = detail if operation is None else f"{detail} during {operation}"
        super().__init__(message)


class InvalidConfiguration(RateLimitError):
    """Raised for a non-positive window, a negative quota or a negative cost."""
    status_code = 500

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field}={value!r}: {reason}")
