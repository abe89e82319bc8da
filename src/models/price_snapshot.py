"""Price snapshot records stored on orders at commit time."""

from typing import NotRequired, TypedDict

# Bump when the snapshot shape changes so readers can branch on it
PRICE_SNAPSHOT_VERSION = "1.0"


class PriceSnapshotItem(TypedDict):
    """Pricing of one line item at the moment the order was committed."""

    product_id: int
    variation_id: NotRequired[int]
    name: str
    quantity: int
    unit_price: str
    total_price: str
    tax_class: str
    tax_status: str


class PriceSnapshot(TypedDict):
    """Immutable record of what the customer was charged.

    Attached to the order once and never modified afterwards, independent
    of later catalogue price changes.
    """

    version: str
    created_at: str
    request_id: str
    items: list[PriceSnapshotItem]
    subtotal: str
    total_tax: str
    total: str
    currency: str
    prices_include_tax: bool


class PriceMismatch(TypedDict):
    product_id: int
    snapshot_price: str
    current_price: str


class PriceSnapshotComparison(TypedDict):
    """Result of checking a stored snapshot against current catalogue prices."""

    valid: bool
    mismatches: list[PriceMismatch]
