"""Global error handling middleware for consistent error responses."""

import logging
import re
import traceback
import uuid
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Inbound IDs are echoed into headers and logs
INBOUND_REQUEST_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,64}")


def new_request_id() -> str:
    """Mint a request ID for correlating responses with server logs."""
    return f"req_{uuid.uuid4().hex[:16]}"


def resolve_request_id(inbound: str | None) -> str:
    """Keep an inbound request ID if it is a short safe token, else mint one."""
    if inbound and INBOUND_REQUEST_ID_PATTERN.fullmatch(inbound):
        return inbound
    return new_request_id()


class APIError(Exception):
    """Base exception for API errors.

    Use this class to raise application-specific errors that should
    be returned to the client with a specific status code and message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            extra: Additional top-level fields for the response body.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.extra = extra
        super().__init__(message)


class InputError(APIError):
    """Malformed request that never reaches the commerce backend."""

    def __init__(self, message: str = "Invalid request") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="invalid_request",
        )


class CheckoutValidationError(APIError):
    """Cart failed revalidation against live backend state; no order was created."""

    def __init__(
        self,
        validation_errors: list[dict[str, Any]],
        out_of_stock_product_ids: list[int],
        message: str = "Some items in your cart are no longer available. Please review your cart.",
    ) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_type="validation_failed",
            extra={
                "validation_errors": validation_errors,
                "out_of_stock_product_ids": out_of_stock_product_ids,
            },
        )
        self.validation_errors = validation_errors
        self.out_of_stock_product_ids = out_of_stock_product_ids


class OrderSubmissionError(APIError):
    """The backend did not accept the order, even after retries."""

    def __init__(self, message: str = "We could not place your order. Please try again.") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_type="internal_error",
        )


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    request_id: str | None = None,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        request_id: Optional request ID for tracing.
        extra: Optional additional body fields.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        request_id=request_id,
        extra=extra,
    )
    response = JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", by_alias=True, exclude_none=True),
    )
    if request_id:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Middleware to assign request IDs and format all exceptions.

    Honours a well-formed inbound X-Request-ID header, otherwise mints one, and stores it
    on ``request.state`` for route dependencies. Logs full stack traces for
    debugging while returning safe messages to clients.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    request.state.request_id = request_id

    try:
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    except APIError as e:
        # Application-specific errors - log at warning level
        logger.warning(
            "API error: %s - %s",
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            request_id=request_id,
            extra=e.extra,
        )

    except HTTPException as e:
        logger.warning(
            "HTTP exception: %s - %s",
            e.status_code,
            e.detail,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        # Unexpected exceptions - log full stack trace
        logger.error(
            "Unhandled exception: %s\n%s",
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
