"""Domain model type definitions."""

from src.models.order import OrderStatus, OrderStatusHistoryEntry
from src.models.price_snapshot import PriceSnapshot, PriceSnapshotItem
from src.models.product import CommerceProduct, ResolvedProduct

__all__ = [
    "OrderStatus",
    "OrderStatusHistoryEntry",
    "PriceSnapshot",
    "PriceSnapshotItem",
    "CommerceProduct",
    "ResolvedProduct",
]
