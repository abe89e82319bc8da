"""Price snapshot construction and reading.

Snapshots are built once, when an order is committed, from prices fetched
during that same request. All arithmetic is fixed-point ``Decimal``.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Mapping

from src.models.price_snapshot import (
    PRICE_SNAPSHOT_VERSION,
    PriceMismatch,
    PriceSnapshot,
    PriceSnapshotComparison,
    PriceSnapshotItem,
)
from src.models.product import ResolvedProduct
from src.schemas.checkout import LineItem

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

# Tax is computed by the backend when the order is created
ZERO_TAX = Decimal("0.00")


def format_money(amount: Decimal) -> str:
    """Format an amount with exactly two decimal places."""
    return str(amount.quantize(CENTS, rounding=ROUND_HALF_UP))


def build_price_snapshot(
    resolved: Mapping[int, ResolvedProduct],
    line_items: list[LineItem],
    request_id: str,
    variations: Mapping[tuple[int, int], ResolvedProduct] | None = None,
    currency: str = "EUR",
    prices_include_tax: bool = False,
) -> PriceSnapshot:
    """Build the immutable price record attached to a new order.

    Unit prices come only from the resolved backend records, never from the
    client. Line items referencing a variation are priced from the variation.

    Args:
        resolved: Live product records keyed by product ID.
        line_items: Validated cart line items.
        request_id: Request ID of the checkout that commits the order.
        variations: Live variation records keyed by (product ID, variation ID).
        currency: Store currency code.
        prices_include_tax: Whether catalogue prices include tax.

    Returns:
        PriceSnapshot: The snapshot, with money values as 2-decimal strings.
    """
    variations = variations or {}
    items: list[PriceSnapshotItem] = []
    subtotal = Decimal("0")

    for line_item in line_items:
        if line_item.variation_id is not None:
            source = variations[(line_item.product_id, line_item.variation_id)]
        else:
            source = resolved[line_item.product_id]

        unit_price = Decimal(source["price"])
        line_total = (unit_price * line_item.quantity).quantize(CENTS, rounding=ROUND_HALF_UP)
        subtotal += line_total

        item: PriceSnapshotItem = {
            "product_id": line_item.product_id,
            "name": source["name"],
            "quantity": line_item.quantity,
            "unit_price": source["price"],
            "total_price": format_money(line_total),
            "tax_class": source["tax_class"],
            "tax_status": source["tax_status"],
        }
        if line_item.variation_id is not None:
            item["variation_id"] = line_item.variation_id
        items.append(item)

    return {
        "version": PRICE_SNAPSHOT_VERSION,
        "created_at": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "items": items,
        "subtotal": format_money(subtotal),
        "total_tax": format_money(ZERO_TAX),
        "total": format_money(subtotal + ZERO_TAX),
        "currency": currency,
        "prices_include_tax": prices_include_tax,
    }


def serialize_price_snapshot(snapshot: PriceSnapshot) -> str:
    """Serialize a snapshot for storage as an order metadata value."""
    return json.dumps(snapshot)


def deserialize_price_snapshot(raw: str | None) -> PriceSnapshot | None:
    """Parse a snapshot stored in order metadata.

    Returns None for missing, malformed or unrecognised values.
    """
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.error("Failed to parse price snapshot: %.100s", raw)
        return None
    if isinstance(parsed, dict) and parsed.get("version") and isinstance(parsed.get("items"), list):
        return parsed
    return None


def compare_snapshot_prices(
    snapshot: PriceSnapshot,
    current_prices: Mapping[int, str],
) -> PriceSnapshotComparison:
    """Compare snapshot unit prices with current catalogue prices.

    For display only: a mismatch never changes what the order was charged.
    A current price that is not a number (e.g. ``""`` for an unpriced product)
    counts as a mismatch.

    Returns:
        PriceSnapshotComparison: ``valid`` is True if every known product still
        has its snapshot price.
    """
    mismatches: list[PriceMismatch] = []
    for item in snapshot["items"]:
        current = current_prices.get(item["product_id"])
        if current is not None and _prices_differ(item["unit_price"], current):
            mismatches.append(
                {
                    "product_id": item["product_id"],
                    "snapshot_price": item["unit_price"],
                    "current_price": current,
                }
            )
    return {"valid": not mismatches, "mismatches": mismatches}


def _prices_differ(snapshot_price: str, current_price: str) -> bool:
    try:
        return Decimal(snapshot_price) != Decimal(current_price)
    except InvalidOperation:
        return snapshot_price != current_price
