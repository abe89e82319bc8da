"""Revalidation of cart line items against live backend product state."""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Union

from src.core.errors import BackendError
from src.models.product import CommerceProduct, ResolvedProduct, resolve_product
from src.schemas.checkout import LineItem, LineItemValidationError
from src.services.commerce_gateway import CommerceGateway

logger = logging.getLogger(__name__)

# Result of a single backend read: the record, None for 404, or the failure
FetchOutcome = Union[CommerceProduct, None, BackendError]


@dataclass
class ValidationResult:
    """Outcome of validating a whole cart."""

    errors: list[LineItemValidationError] = field(default_factory=list)
    resolved: dict[int, ResolvedProduct] = field(default_factory=dict)
    variations: dict[tuple[int, int], ResolvedProduct] = field(default_factory=dict)

    @property
    def blocking_errors(self) -> list[LineItemValidationError]:
        return [error for error in self.errors if error.is_blocking]

    @property
    def price_changes(self) -> list[LineItemValidationError]:
        return [error for error in self.errors if error.field == "price"]

    @property
    def is_valid(self) -> bool:
        """True when nothing prevents the order from being created."""
        return not self.blocking_errors

    @property
    def out_of_stock_product_ids(self) -> list[int]:
        """Deduplicated IDs of products with blocking errors, in cart order."""
        return list(dict.fromkeys(error.product_id for error in self.blocking_errors))

    def price_source(self, item: LineItem) -> ResolvedProduct:
        """Record whose price applies to a line item (variation if referenced)."""
        if item.variation_id is not None:
            return self.variations[(item.product_id, item.variation_id)]
        return self.resolved[item.product_id]


class LineItemValidator:
    """Checks every line item of a cart against current backend state.

    All product and variation reads for a cart are issued concurrently and
    every problem is collected; validation never stops at the first error.
    """

    def __init__(self, gateway: CommerceGateway) -> None:
        self.gateway = gateway

    async def validate(
        self,
        line_items: list[LineItem],
        request_id: str | None = None,
    ) -> ValidationResult:
        """Validate line items and resolve live product data.

        Args:
            line_items: Cart line items in client order.
            request_id: Request ID for log correlation.

        Returns:
            ValidationResult: Errors in line-item order plus the resolved records.
        """
        product_ids = list(dict.fromkeys(item.product_id for item in line_items))
        variation_keys = list(
            dict.fromkeys(
                (item.product_id, item.variation_id)
                for item in line_items
                if item.variation_id is not None
            )
        )

        outcomes = await asyncio.gather(
            *(self._fetch(self.gateway.fetch_product(pid)) for pid in product_ids),
            *(self._fetch(self.gateway.fetch_variation(pid, vid)) for pid, vid in variation_keys),
        )
        products: dict[int, FetchOutcome] = dict(zip(product_ids, outcomes[: len(product_ids)]))
        variation_outcomes: dict[tuple[int, int], FetchOutcome] = dict(
            zip(variation_keys, outcomes[len(product_ids) :])
        )

        result = ValidationResult()
        for product_id, outcome in products.items():
            if isinstance(outcome, dict):
                result.resolved[product_id] = resolve_product(outcome)
        for (product_id, variation_id), outcome in variation_outcomes.items():
            parent = result.resolved.get(product_id)
            if isinstance(outcome, dict) and parent is not None:
                result.variations[(product_id, variation_id)] = resolve_product(
                    outcome, fallback_name=parent["name"]
                )

        for item in line_items:
            result.errors.extend(self._check_item(item, products[item.product_id], variation_outcomes, result))

        if result.errors:
            logger.info(
                "Cart validation found %d issue(s) (%d blocking) across %d line item(s)",
                len(result.errors),
                len(result.blocking_errors),
                len(line_items),
                extra={
                    "request_id": request_id,
                    "validation_errors": [error.model_dump(exclude_none=True) for error in result.errors],
                },
            )
        return result

    @staticmethod
    async def _fetch(call: Awaitable[CommerceProduct | None]) -> FetchOutcome:
        try:
            return await call
        except BackendError as e:
            return e

    def _check_item(
        self,
        item: LineItem,
        product_outcome: FetchOutcome,
        variation_outcomes: dict[tuple[int, int], FetchOutcome],
        result: ValidationResult,
    ) -> list[LineItemValidationError]:
        fallback_name = f"Product #{item.product_id}"

        if isinstance(product_outcome, BackendError):
            return [
                _error(
                    "availability",
                    item,
                    fallback_name,
                    "This product could not be verified right now. Please try again.",
                )
            ]
        if product_outcome is None:
            return [_error("availability", item, fallback_name, "This product is no longer available.")]

        product = result.resolved[item.product_id]
        target = product
        if item.variation_id is not None:
            variation_outcome = variation_outcomes[(item.product_id, item.variation_id)]
            if isinstance(variation_outcome, BackendError):
                return [
                    _error(
                        "availability",
                        item,
                        product["name"],
                        f"The selected option of {product['name']} could not be verified right now.",
                    )
                ]
            if variation_outcome is None:
                return [
                    _error(
                        "variation",
                        item,
                        product["name"],
                        f"The selected option of {product['name']} is no longer available.",
                        expected=str(item.variation_id),
                    )
                ]
            target = result.variations[(item.product_id, item.variation_id)]

        blocking = self._check_stock(item, target)
        if blocking:
            return [blocking]

        try:
            current_price = Decimal(target["price"])
        except InvalidOperation:
            current_price = None
        if current_price is None or not current_price.is_finite() or current_price < 0:
            return [_error("availability", item, target["name"], f"{target['name']} has no valid price.")]

        if item.price is not None and _price_differs(item.price, current_price):
            return [
                _error(
                    "price",
                    item,
                    target["name"],
                    f"The price of {target['name']} has changed.",
                    expected=item.price,
                    actual=target["price"],
                )
            ]
        return []

    @staticmethod
    def _check_stock(item: LineItem, target: ResolvedProduct) -> LineItemValidationError | None:
        """Return the single blocking problem for a record, if any.

        Out-of-stock wins over not-purchasable, since backends usually report
        both for a sold-out product.
        """
        name = target["name"]
        if target["stock_status"] == "outofstock":
            return _error("stock", item, name, f"{name} is out of stock.", expected="instock", actual="outofstock")

        stock_quantity = target["stock_quantity"]
        if stock_quantity is not None and stock_quantity < item.quantity:
            return _error(
                "stock",
                item,
                name,
                f"Only {max(stock_quantity, 0)} of {name} available.",
                expected=str(item.quantity),
                actual=str(stock_quantity),
            )

        if not target["purchasable"]:
            return _error("availability", item, name, f"{name} can no longer be purchased.")
        return None


def _price_differs(client_price: str, current_price: Decimal) -> bool:
    try:
        return Decimal(client_price) != current_price
    except InvalidOperation:
        return True


def _error(
    field_name: str,
    item: LineItem,
    product_name: str,
    message: str,
    expected: str | None = None,
    actual: str | None = None,
) -> LineItemValidationError:
    return LineItemValidationError(
        field=field_name,
        product_id=item.product_id,
        product_name=product_name,
        message=message,
        expected=expected,
        actual=actual,
    )
