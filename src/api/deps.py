"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import Depends, Request

from src.api.middleware.error_handler import REQUEST_ID_HEADER, resolve_request_id
from src.services.checkout_service import CheckoutService


def get_request_id(request: Request) -> str:
    """Return the ID assigned to the current request.

    The error handler middleware sets it on ``request.state``; when the
    middleware is not installed (e.g. a bare router in tests) the header is
    used or a fresh ID is minted.
    """
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
    return request_id


def get_checkout_service() -> CheckoutService:
    """Create the checkout orchestrator for a single request."""
    return CheckoutService()


RequestId = Annotated[str, Depends(get_request_id)]
Checkout = Annotated[CheckoutService, Depends(get_checkout_service)]
