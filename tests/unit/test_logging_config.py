"""Unit tests for logging setup and redaction."""

import logging

from src.core.logging_config import (
    SensitiveDataFilter,
    redact_credentials,
    sanitize_payload,
)


class TestRedactCredentials:
    def test_masks_consumer_key_and_secret(self) -> None:
        line = 'HTTP Request: GET https://shop.test/products/1?consumer_key=ck_abc&consumer_secret=cs_def "HTTP/1.1 200 OK"'

        redacted = redact_credentials(line)

        assert "ck_abc" not in redacted
        assert "cs_def" not in redacted
        assert "consumer_key=[REDACTED]&consumer_secret=[REDACTED]" in redacted

    def test_leaves_other_text_alone(self) -> None:
        assert redact_credentials("GET /products/1?per_page=1") == "GET /products/1?per_page=1"


class TestSanitizePayload:
    """Tests for sanitize_payload."""

    def test_redacts_sensitive_keys_recursively(self) -> None:
        payload = {
            "billing": {"email": "ada@example.com"},
            "line_items": [{"product_id": 1, "quantity": 2}],
            "meta_data": [{"key": "_checkout_request_id", "value": "req_1"}],
        }

        sanitized = sanitize_payload(payload)

        assert sanitized["billing"] == "[REDACTED]"
        assert sanitized["line_items"] == [{"product_id": 1, "quantity": 2}]
        assert sanitized["meta_data"][0]["value"] == "req_1"

    def test_masks_email_like_strings(self) -> None:
        assert sanitize_payload({"note": "ada@example.com"}) == {"note": "[EMAIL_REDACTED]"}

    def test_truncates_long_strings(self) -> None:
        sanitized = sanitize_payload({"value": "x" * 150})

        assert sanitized["value"] == "x" * 100 + "...[TRUNCATED]"

    def test_does_not_mutate_input(self) -> None:
        payload = {"billing": {"first_name": "Ada"}}

        sanitize_payload(payload)

        assert payload == {"billing": {"first_name": "Ada"}}


class TestSensitiveDataFilter:
    def test_rewrites_formatted_message(self) -> None:
        record = logging.LogRecord(
            name="httpx",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="HTTP Request: %s %s",
            args=("GET", "https://shop.test/products?consumer_key=ck_abc"),
            exc_info=None,
        )

        assert SensitiveDataFilter().filter(record) is True
        assert record.getMessage() == "HTTP Request: GET https://shop.test/products?consumer_key=[REDACTED]"

    def test_leaves_clean_records_untouched(self) -> None:
        record = logging.LogRecord("app", logging.INFO, __file__, 1, "Order %d created", (7,), None)

        SensitiveDataFilter().filter(record)

        assert record.msg == "Order %d created"
        assert record.args == (7,)
