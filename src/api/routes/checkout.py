"""Checkout API route: order submission."""

import json

from fastapi import APIRouter, Request, status

from src.api.deps import Checkout, RequestId
from src.api.middleware.error_handler import InputError
from src.schemas.checkout import CheckoutResponse, CheckoutValidationResponse
from src.schemas.common import ErrorResponse
from src.services.checkout_service import parse_checkout_request

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post(
    "",
    response_model=CheckoutResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Malformed request"},
        409: {"model": CheckoutValidationResponse, "description": "Cart failed revalidation; no order created"},
        500: {"model": ErrorResponse, "description": "Order could not be created"},
    },
    summary="Submit an order",
    description="Revalidates every cart line item against the commerce backend and creates the order only if all pass.",
)
async def submit_checkout(
    request: Request,
    request_id: RequestId,
    service: Checkout,
) -> CheckoutResponse:
    """Validate the cart and create a pending bank-transfer order.

    The body is parsed by hand so that malformed carts produce the uniform
    400 error body rather than FastAPI's default 422.

    Args:
        request: Incoming request carrying the JSON body.
        request_id: ID assigned to this request.
        service: Checkout orchestrator.

    Returns:
        CheckoutResponse: The created order's ID.

    Raises:
        InputError: 400 if the body is not valid JSON or has the wrong shape.
        CheckoutValidationError: 409 if any line item failed validation.
        OrderSubmissionError: 500 if the backend rejected the order.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InputError("Request body must be valid JSON") from e

    checkout_request = parse_checkout_request(body)
    result = await service.submit_order(checkout_request, request_id=request_id)

    return CheckoutResponse(
        order_id=result.order_id,
        request_id=result.request_id,
        price_changes=result.price_changes or None,
    )
