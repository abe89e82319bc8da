"""Unit tests for FastAPI dependency injection functions."""

import re
from unittest.mock import MagicMock, patch

from starlette.requests import Request

from src.api.deps import get_checkout_service, get_request_id
from src.services.checkout_service import CheckoutService


def _request(headers: dict[str, str] | None = None) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "POST", "path": "/", "headers": raw_headers})


class TestGetRequestId:
    """Tests for get_request_id dependency."""

    def test_uses_id_assigned_by_middleware(self) -> None:
        request = _request({"X-Request-ID": "from-header"})
        request.state.request_id = "req_assigned"

        assert get_request_id(request) == "req_assigned"

    def test_falls_back_to_inbound_header(self) -> None:
        request = _request({"X-Request-ID": "from-header"})

        assert get_request_id(request) == "from-header"
        assert request.state.request_id == "from-header"

    def test_mints_id_when_absent(self) -> None:
        request = _request()

        request_id = get_request_id(request)

        assert re.fullmatch(r"req_[0-9a-f]{16}", request_id)
        assert get_request_id(request) == request_id

    def test_rejects_unsafe_inbound_header(self) -> None:
        request = _request({"X-Request-ID": "bad id\r\nSet-Cookie: x=1"})

        assert re.fullmatch(r"req_[0-9a-f]{16}", get_request_id(request))

    def test_rejects_overlong_inbound_header(self) -> None:
        request = _request({"X-Request-ID": "a" * 65})

        assert get_request_id(request).startswith("req_")

    def test_accepts_max_length_inbound_header(self) -> None:
        request = _request({"X-Request-ID": "a" * 64})

        assert get_request_id(request) == "a" * 64


class TestGetCheckoutService:
    def test_returns_fresh_service(self) -> None:
        with patch("src.services.commerce_gateway.get_commerce_client", return_value=MagicMock()):
            first = get_checkout_service()
            second = get_checkout_service()

        assert isinstance(first, CheckoutService)
        assert first is not second
