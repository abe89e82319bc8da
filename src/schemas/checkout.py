"""Checkout Pydantic schemas for API request/response models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Validation error categories. Everything except "price" blocks order creation.
ValidationField = Literal["price", "stock", "variation", "availability"]

BLOCKING_FIELDS: frozenset[str] = frozenset({"stock", "variation", "availability"})


class BillingAddress(BaseModel):
    """Billing (and default shipping) address forwarded to the backend.

    Unknown keys are kept so backend-specific address fields pass through.
    """

    model_config = ConfigDict(extra="allow")

    first_name: str = Field(default="", description="First name")
    last_name: str = Field(default="", description="Last name")
    company: str = Field(default="", description="Company")
    address_1: str = Field(default="", description="Address line 1")
    address_2: str = Field(default="", description="Address line 2")
    city: str = Field(default="", description="City")
    state: str = Field(default="", description="State or region")
    postcode: str = Field(default="", description="Postal code")
    country: str = Field(default="", description="ISO country code")
    email: str = Field(default="", description="Contact email")
    phone: str = Field(default="", description="Contact phone")


class LineItem(BaseModel):
    """A single cart line submitted by the client."""

    model_config = ConfigDict(frozen=True)

    product_id: int = Field(gt=0, description="Backend product ID")
    quantity: int = Field(gt=0, description="Requested quantity")
    variation_id: int | None = Field(default=None, gt=0, description="Backend variation ID")
    price: str | None = Field(
        default=None,
        description="Unit price the client last displayed; compared with the live price, never charged",
    )


class CheckoutRequest(BaseModel):
    """Body of POST /checkout."""

    billing: BillingAddress = Field(description="Billing address")
    shipping: BillingAddress | None = Field(default=None, description="Shipping address (defaults to billing)")
    line_items: list[LineItem] = Field(min_length=1, description="Cart line items")

    @field_validator("billing")
    @classmethod
    def billing_not_empty(cls, value: BillingAddress) -> BillingAddress:
        if not any(value.model_dump().values()):
            raise ValueError("billing must not be empty")
        return value


class LineItemValidationError(BaseModel):
    """A problem found while revalidating one line item against the backend."""

    model_config = ConfigDict(frozen=True)

    field: ValidationField = Field(description="Error category")
    product_id: int = Field(description="Offending product ID")
    product_name: str = Field(description="Product name for display")
    message: str = Field(description="Human-readable explanation")
    expected: str | None = Field(default=None, description="Expected value (e.g. requested quantity)")
    actual: str | None = Field(default=None, description="Actual value found on the backend")

    @property
    def is_blocking(self) -> bool:
        """Whether this error prevents the order from being created."""
        return self.field in BLOCKING_FIELDS


class CheckoutResponse(BaseModel):
    """Successful checkout response (201)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True, description="Always true for created orders")
    order_id: int = Field(alias="orderId", description="Backend order ID")
    request_id: str = Field(alias="requestId", description="Request ID for log correlation")
    price_changes: list[LineItemValidationError] | None = Field(
        default=None,
        alias="priceChanges",
        description="Items whose live price differed from the price the client displayed",
    )


class CheckoutValidationResponse(BaseModel):
    """Checkout rejected because the cart no longer matches backend state (409)."""

    model_config = ConfigDict(populate_by_name=True)

    error: str = Field(description="Human-readable summary")
    code: str = Field(default="validation_failed", description="Error code")
    validation_errors: list[LineItemValidationError] = Field(description="Every problem found in the cart")
    out_of_stock_product_ids: list[int] = Field(description="Products the client should remove from the cart")
    request_id: str | None = Field(default=None, alias="requestId", description="Request ID for log correlation")
