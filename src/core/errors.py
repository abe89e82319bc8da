"""Tagged error type for failures reported by the commerce backend."""

from enum import Enum

# Backend error codes that indicate a temporary condition on the backend side
TRANSIENT_ERROR_CODES = frozenset(
    {
        "rest_server_unavailable",
        "woocommerce_rest_authentication_error",
        "db_error",
        "lock_wait_timeout",
        "internal_server_error",
    }
)

NETWORK_ERROR_CODE = "network_error"
NETWORK_ERROR_STATUS = 500


class ErrorKind(str, Enum):
    """Retry classification of a backend failure."""

    TRANSIENT = "transient"
    FATAL = "fatal"


def classify_backend_failure(status_code: int, code: str | None = None) -> tuple[ErrorKind, str]:
    """Decide whether a backend failure is worth retrying.

    Args:
        status_code: HTTP status returned by the backend (500 for network failures).
        code: Backend-specific error code from the response body, if any.

    Returns:
        tuple: (kind, human-readable reason for the classification).
    """
    if status_code >= 500:
        return ErrorKind.TRANSIENT, f"server error (HTTP {status_code})"
    if status_code == 429:
        return ErrorKind.TRANSIENT, "rate limited (HTTP 429)"
    if code and code in TRANSIENT_ERROR_CODES:
        return ErrorKind.TRANSIENT, f"transient backend error code '{code}'"
    return ErrorKind.FATAL, f"non-retryable response (HTTP {status_code})"


class BackendError(Exception):
    """A failed call to the commerce backend.

    The kind is fixed when the error is raised, so callers match on
    ``error.kind`` instead of probing the response themselves.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        code: str | None = None,
        kind: ErrorKind | None = None,
    ) -> None:
        classified_kind, reason = classify_backend_failure(status_code, code)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.kind = kind or classified_kind
        self.reason = reason
        super().__init__(message)

    @classmethod
    def network(cls, message: str) -> "BackendError":
        """Build the error raised when the backend could not be reached."""
        return cls(message, status_code=NETWORK_ERROR_STATUS, code=NETWORK_ERROR_CODE)

    @property
    def is_transient(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT

    def __repr__(self) -> str:
        return (
            f"BackendError(status_code={self.status_code!r}, code={self.code!r}, "
            f"kind={self.kind.value!r}, message={self.message!r})"
        )
