"""Product records as returned by the commerce backend."""

from typing import Literal, TypedDict

StockStatus = Literal["instock", "outofstock", "onbackorder"]


class CommerceProduct(TypedDict, total=False):
    """Subset of a backend product or variation record used by checkout.

    Fields other than ``id`` may be absent on partial records.
    """

    id: int
    name: str
    price: str
    purchasable: bool
    stock_status: StockStatus
    stock_quantity: int | None
    tax_class: str
    tax_status: str


class ResolvedProduct(TypedDict):
    """Live product (or variation) state fetched for a single checkout request.

    Never cached across requests.
    """

    price: str
    name: str
    purchasable: bool
    stock_status: StockStatus
    stock_quantity: int | None
    tax_class: str
    tax_status: str


def resolve_product(record: CommerceProduct, fallback_name: str | None = None) -> ResolvedProduct:
    """Normalise a backend record into the fields checkout relies on.

    Variation records usually carry no name of their own, so the parent
    product's name can be supplied as a fallback.
    """
    return {
        "price": str(record.get("price") or ""),
        "name": record.get("name") or fallback_name or f"Product #{record.get('id')}",
        "purchasable": record.get("purchasable", True) is not False,
        "stock_status": record.get("stock_status") or "instock",
        "stock_quantity": record.get("stock_quantity"),
        "tax_class": record.get("tax_class") or "",
        "tax_status": record.get("tax_status") or "taxable",
    }
