"""Checkout order submission: validate the whole cart, then commit one order."""

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from src.api.middleware.error_handler import (
    CheckoutValidationError,
    InputError,
    OrderSubmissionError,
)
from src.core.config import Settings, get_settings
from src.core.errors import BackendError
from src.core.logging_config import sanitize_payload
from src.core.retry import with_retry
from src.models.order import (
    OrderStatusHistoryEntry,
    create_initial_status_history,
    serialize_status_history,
)
from src.models.price_snapshot import PriceSnapshot
from src.schemas.checkout import CheckoutRequest, LineItemValidationError
from src.services.commerce_gateway import CommerceGateway
from src.services.line_item_validator import LineItemValidator
from src.services.price_snapshot import build_price_snapshot, serialize_price_snapshot

logger = logging.getLogger(__name__)

# Order metadata keys
META_STATUS_HISTORY = "_order_status_history"
META_PRICE_SNAPSHOT = "_price_snapshot"
META_REQUEST_ID = "_checkout_request_id"
META_IDEMPOTENCY_KEY = "_idempotency_key"


class CheckoutStage(str, Enum):
    """Stages a single checkout request moves through."""

    RECEIVED = "received"
    VALIDATING = "validating"
    ABORTED = "aborted"
    VALIDATED = "validated"
    SNAPSHOTTING = "snapshotting"
    SUBMITTING = "submitting"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class CheckoutResult:
    """A committed order."""

    order_id: int
    request_id: str
    snapshot: PriceSnapshot
    status_history: list[OrderStatusHistoryEntry]
    price_changes: list[LineItemValidationError] = field(default_factory=list)


def parse_checkout_request(body: Any) -> CheckoutRequest:
    """Validate the shape of a checkout body before any backend call.

    Args:
        body: Decoded JSON request body.

    Returns:
        CheckoutRequest: The parsed request.

    Raises:
        InputError: If billing or line items are missing, empty or malformed.
    """
    if not isinstance(body, dict):
        raise InputError("Request body must be a JSON object")
    if not body.get("billing") or not body.get("line_items"):
        raise InputError("Missing required fields: billing or line_items")
    if not isinstance(body["line_items"], list):
        raise InputError("line_items must be an array")

    try:
        return CheckoutRequest.model_validate(body)
    except PydanticValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InputError(f"Invalid {location}: {first['msg']}") from e


class CheckoutService:
    """Orchestrates order submission for one checkout request.

    The cart is revalidated against live backend data; if any line item has a
    blocking problem no order is created. Otherwise a price snapshot and the
    initial status history are attached and the order is created through the
    retry executor.
    """

    def __init__(
        self,
        gateway: CommerceGateway | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize checkout service with its collaborators."""
        self.settings = settings or get_settings()
        self.gateway = gateway or CommerceGateway()
        self.validator = LineItemValidator(self.gateway)

    async def submit_order(self, request: CheckoutRequest, request_id: str) -> CheckoutResult:
        """Validate a cart and create the order on the backend.

        Args:
            request: Parsed checkout request.
            request_id: ID of the HTTP request, recorded on the order and in logs.

        Returns:
            CheckoutResult: The created order's ID, snapshot and history.

        Raises:
            CheckoutValidationError: If any line item failed validation (409).
            OrderSubmissionError: If the backend rejected the order (500).
        """
        log_extra = {"request_id": request_id}
        logger.info(
            "Checkout %s: %s %d line item(s)",
            request_id,
            CheckoutStage.VALIDATING.value,
            len(request.line_items),
            extra=log_extra,
        )

        validation = await self.validator.validate(request.line_items, request_id=request_id)
        if not validation.is_valid:
            logger.warning(
                "Checkout %s: %s with %d validation error(s)",
                request_id,
                CheckoutStage.ABORTED.value,
                len(validation.errors),
                extra={**log_extra, "out_of_stock_product_ids": validation.out_of_stock_product_ids},
            )
            raise CheckoutValidationError(
                validation_errors=[error.model_dump(exclude_none=True) for error in validation.errors],
                out_of_stock_product_ids=validation.out_of_stock_product_ids,
            )

        snapshot = build_price_snapshot(
            validation.resolved,
            request.line_items,
            request_id,
            variations=validation.variations,
            currency=self.settings.store_currency,
            prices_include_tax=self.settings.prices_include_tax,
        )
        history = [create_initial_status_history(actor="customer")]
        idempotency_key = uuid.uuid4().hex
        payload = self._build_order_payload(request, snapshot, history, request_id, idempotency_key)

        logger.info(
            "Checkout %s: %s order (subtotal %s %s)",
            request_id,
            CheckoutStage.SUBMITTING.value,
            snapshot["subtotal"],
            snapshot["currency"],
            extra={**log_extra, "payload": sanitize_payload(payload)},
        )

        try:
            order = await with_retry(
                lambda: self.gateway.create_order(payload, idempotency_key=idempotency_key),
                max_retries=self.settings.checkout_max_retries,
                initial_delay_ms=self.settings.checkout_retry_initial_delay_ms,
                max_delay_ms=self.settings.checkout_retry_max_delay_ms,
                jitter_ms=self.settings.checkout_retry_jitter_ms,
                operation_name="Order creation",
                request_id=request_id,
            )
        except BackendError as e:
            logger.error(
                "Checkout %s: %s - %s",
                request_id,
                CheckoutStage.FAILED.value,
                e.message,
                extra={**log_extra, "status_code": e.status_code, "error_code": e.code},
            )
            raise OrderSubmissionError() from e

        order_id = order.get("id")
        if not isinstance(order_id, int) or isinstance(order_id, bool):
            logger.error(
                "Checkout %s: %s - backend response has no order id",
                request_id,
                CheckoutStage.FAILED.value,
                extra=log_extra,
            )
            raise OrderSubmissionError()

        logger.info(
            "Checkout %s: %s order %d",
            request_id,
            CheckoutStage.COMMITTED.value,
            order_id,
            extra={**log_extra, "order_id": order_id},
        )
        return CheckoutResult(
            order_id=order_id,
            request_id=request_id,
            snapshot=snapshot,
            status_history=history,
            price_changes=validation.price_changes,
        )

    def _build_order_payload(
        self,
        request: CheckoutRequest,
        snapshot: PriceSnapshot,
        history: list[OrderStatusHistoryEntry],
        request_id: str,
        idempotency_key: str,
    ) -> dict[str, Any]:
        billing = request.billing.model_dump()
        shipping = request.shipping.model_dump() if request.shipping else billing
        # Client-displayed prices are never forwarded; the backend prices the order.
        line_items = [
            item.model_dump(include={"product_id", "quantity", "variation_id"}, exclude_none=True)
            for item in request.line_items
        ]
        return {
            "payment_method": self.settings.payment_method,
            "payment_method_title": self.settings.payment_method_title,
            "set_paid": False,
            "billing": billing,
            "shipping": shipping,
            "line_items": line_items,
            "meta_data": [
                {"key": META_STATUS_HISTORY, "value": serialize_status_history(history)},
                {"key": META_PRICE_SNAPSHOT, "value": serialize_price_snapshot(snapshot)},
                {"key": META_REQUEST_ID, "value": request_id},
                {"key": META_IDEMPOTENCY_KEY, "value": idempotency_key},
            ],
        }
