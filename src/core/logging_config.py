"""Logging setup and sensitive-data redaction."""

import logging
import re
from typing import Any

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Keys whose values never reach the logs
SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "token",
        "access_token",
        "refresh_token",
        "api_key",
        "secret",
        "consumer_key",
        "consumer_secret",
        "billing",
        "shipping",
        "email",
        "phone",
        "address",
        "address_1",
        "address_2",
        "first_name",
        "last_name",
    }
)

MAX_LOGGED_STRING_LENGTH = 100

# consumer_key=...&consumer_secret=... in request URLs
_CREDENTIAL_PARAM_PATTERN = re.compile(r"(consumer_(?:key|secret)=)[^&\s\"']+")


def redact_credentials(text: str) -> str:
    """Mask API credentials carried in URL query strings."""
    return _CREDENTIAL_PARAM_PATTERN.sub(r"\1[REDACTED]", text)


def sanitize_payload(value: Any) -> Any:
    """Return a copy of a JSON-like value that is safe to log.

    Sensitive keys are replaced with ``[REDACTED]``, strings that look like
    email addresses are masked and long strings are truncated.
    """
    if isinstance(value, dict):
        sanitized = {}
        for key, item in value.items():
            if key in SENSITIVE_FIELDS:
                sanitized[key] = "[REDACTED]"
            elif isinstance(item, str) and len(item) > MAX_LOGGED_STRING_LENGTH:
                sanitized[key] = item[:MAX_LOGGED_STRING_LENGTH] + "...[TRUNCATED]"
            else:
                sanitized[key] = sanitize_payload(item)
        return sanitized
    if isinstance(value, (list, tuple)):
        return [sanitize_payload(item) for item in value]
    if isinstance(value, str) and "@" in value and "." in value:
        return "[EMAIL_REDACTED]"
    return value


class SensitiveDataFilter(logging.Filter):
    """Logging filter that strips credentials from rendered log messages.

    httpx logs every request URL at INFO level, and the commerce backend
    authenticates through query parameters.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_credentials(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at startup."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, SensitiveDataFilter) for f in handler.filters):
            handler.addFilter(SensitiveDataFilter())
