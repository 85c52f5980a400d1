"""Data models for storefront entities."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, computed_field, field_validator

# Money is exact in memory and a plain JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class Product(BaseModel):
    """Represents a purchasable product from the catalog."""

    id: str = Field(min_length=1, description="Unique, stable product identifier")
    title: str = Field(description="Product title")
    description: str = Field(default="", description="Product description")
    price: Money = Field(ge=0, description="Unit price")
    image: str = Field(default="", description="Image reference (URL or path)")
    stock: int = Field(ge=0, description="Units currently in stock")


class CartSnapshot(BaseModel):
    """Title and price captured when a product first enters the cart."""

    title: str
    price: Money = Field(ge=0)


class CartLine(BaseModel):
    """Represents a line in the shopping cart."""

    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(alias="id", description="Product identifier")
    quantity: int = Field(gt=0, alias="qty", description="Units of the product in the cart")
    snapshot: CartSnapshot


class CartView(BaseModel):
    """Read-only view of the cart for presentation."""

    lines: list[CartLine] = Field(default_factory=list, description="Cart lines in insertion order")
    total_units: int = Field(default=0, description="Sum of all line quantities")
    estimated_total: Money = Field(
        default=Decimal("0"), description="Total at snapshot prices; checkout uses live prices"
    )


class Customer(BaseModel):
    """Buyer details collected for a single checkout."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""
    address: str = ""

    @field_validator("name", "email", "address", mode="before")
    @classmethod
    def strip_whitespace(cls, value: Optional[str]) -> str:
        return (value or "").strip()

    def missing_fields(self) -> list[str]:
        """Return the names of required fields that are blank."""
        return [name for name in ("name", "email") if not getattr(self, name)]


class ReceiptLine(BaseModel):
    """Represents a purchased line on a receipt."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    product_id: str = Field(alias="id")
    title: str
    quantity: int = Field(gt=0, alias="qty")
    price: Money = Field(ge=0, description="Unit price charged")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def subtotal(self) -> Money:
        return self.price * self.quantity


class Receipt(BaseModel):
    """Immutable record of a completed purchase."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    transaction_id: str = Field(alias="transactionId", description="Unique, time-ordered transaction ID")
    created_at: datetime = Field(alias="date", description="ISO-8601 creation timestamp")
    customer: Customer
    items: tuple[ReceiptLine, ...] = Field(default=())

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> Money:
        return sum((line.subtotal for line in self.items), Decimal("0"))

    def to_json(self) -> str:
        """Serialize the receipt with its persisted field names."""
        return self.model_dump_json(by_alias=True, indent=2)


class CheckoutStatus(str, Enum):
    """Terminal outcome of one pass through the checkout workflow."""

    COMMITTED = "committed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class RejectionReason(str, Enum):
    """Why a checkout did not commit."""

    EMPTY_CART = "EmptyCart"
    MISSING_CUSTOMER_INFO = "MissingCustomerInfo"
    INSUFFICIENT_STOCK = "InsufficientStock"


class StockShortage(BaseModel):
    """A cart line whose quantity exceeds live stock."""

    product_id: str
    title: str
    requested: int
    available: int


class CheckoutResult(BaseModel):
    """Outcome of a checkout attempt."""

    status: CheckoutStatus
    reason: Optional[RejectionReason] = None
    receipt: Optional[Receipt] = None
    missing_fields: list[str] = Field(default_factory=list)
    shortages: list[StockShortage] = Field(default_factory=list)
    exported_to: Optional[str] = Field(None, description="Path of the exported receipt, if any")

    @property
    def committed(self) -> bool:
        return self.status is CheckoutStatus.COMMITTED
