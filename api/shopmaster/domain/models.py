"""Products, sale lines and sales.

Money is kept to 2 decimal places and quantities to 3, both rounded half-up
at the point where the value is produced.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    computed_field,
    field_validator,
    model_validator,
)

from shopmaster.domain.errors import InvalidQuantityError

CENT = Decimal("0.01")
MILLI = Decimal("0.001")

Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ShopType(str, Enum):
    STATIONERY = "STATIONERY"
    GENERAL_STORE = "GENERAL_STORE"


class UnitType(str, Enum):
    UNIT = "UNIT"
    KG = "KG"


class PaymentMode(str, Enum):
    CASH = "CASH"
    DIGITAL = "DIGITAL"


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_quantity(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MILLI, rounding=ROUND_HALF_UP)


def to_decimal(raw: Any) -> Decimal:
    """Parse a user-entered quantity. Raises InvalidQuantityError when it is not a finite number."""
    if isinstance(raw, bool) or raw is None:
        raise InvalidQuantityError("Quantity must be a number", raw)
    try:
        if isinstance(raw, Decimal):
            value = raw
        elif isinstance(raw, float):
            value = Decimal(repr(raw))
        elif isinstance(raw, str):
            value = Decimal(raw.strip())
        else:
            value = Decimal(raw)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidQuantityError("Quantity must be a number", raw) from exc
    if not value.is_finite():
        raise InvalidQuantityError("Quantity must be a number", raw)
    return value


def is_whole(value: Decimal) -> bool:
    return value == value.to_integral_value()


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    shop_type: ShopType
    name: str = Field(min_length=1)
    category: str = ""
    sku: str = ""
    purchase_price: Amount = Field(ge=0)
    selling_price: Amount = Field(ge=0)
    unit_type: UnitType
    stock: Amount = Field(default=Decimal("0"), ge=0)
    low_stock_threshold: Amount = Field(default=Decimal("0"), ge=0)

    @field_validator("purchase_price", "selling_price")
    @classmethod
    def _round_price(cls, value: Decimal) -> Decimal:
        return round_money(value)

    @field_validator("stock", "low_stock_threshold")
    @classmethod
    def _round_stock(cls, value: Decimal) -> Decimal:
        return round_quantity(value)

    @model_validator(mode="after")
    def _whole_units(self):
        if self.unit_type is UnitType.UNIT and not is_whole(self.stock):
            raise ValueError("stock of a UNIT product must be a whole number")
        return self

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.low_stock_threshold

    @property
    def margin(self) -> Decimal:
        return self.selling_price - self.purchase_price

    def with_stock(self, stock: Decimal) -> "Product":
        return self.model_copy(update={"stock": round_quantity(stock)})


class SaleLineItem(BaseModel):
    """One product on a cart or sale, with the name and price it was sold under.

    The subtotal is derived from quantity and unit price every time it is read,
    so a line can never carry a stale or unrounded subtotal.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str = Field(min_length=1)
    product_name: str
    quantity: Amount
    unit_price: Amount = Field(ge=0)

    @field_validator("quantity")
    @classmethod
    def _positive_quantity(cls, value: Decimal) -> Decimal:
        value = round_quantity(value)
        if value <= 0:
            raise ValueError("quantity must be greater than zero")
        return value

    @field_validator("unit_price")
    @classmethod
    def _round_price(cls, value: Decimal) -> Decimal:
        return round_money(value)

    @computed_field
    @property
    def subtotal(self) -> Amount:
        return round_money(self.quantity * self.unit_price)

    @classmethod
    def for_product(cls, product: Product, quantity: Decimal) -> "SaleLineItem":
        if round_quantity(quantity) <= 0:
            raise InvalidQuantityError("Quantity must be greater than zero", quantity)
        return cls(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price=product.selling_price,
        )

    def with_quantity(self, quantity: Decimal) -> "SaleLineItem":
        return SaleLineItem(
            product_id=self.product_id,
            product_name=self.product_name,
            quantity=quantity,
            unit_price=self.unit_price,
        )


class Sale(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    shop_type: ShopType
    timestamp: datetime = Field(default_factory=utcnow)
    customer_name: str | None = None
    customer_phone: str | None = None
    items: tuple[SaleLineItem, ...] = ()
    total_amount: Amount = Decimal("0")
    payment_mode: PaymentMode = PaymentMode.CASH
    total_profit: Amount = Decimal("0")

    @field_validator("customer_name", "customer_phone")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("total_amount", "total_profit")
    @classmethod
    def _round_totals(cls, value: Decimal) -> Decimal:
        return round_money(value)


@dataclass(frozen=True)
class ShopState:
    """Authoritative catalog plus the sales history, most recent sale first."""

    catalog: dict[str, Product] = field(default_factory=dict)
    sales: tuple[Sale, ...] = ()

    def product(self, product_id: str) -> Product | None:
        return self.catalog.get(product_id)

    def products_for(self, shop_type: ShopType) -> list[Product]:
        return [p for p in self.catalog.values() if p.shop_type == shop_type]

    def sales_for(self, shop_type: ShopType) -> list[Sale]:
        return [s for s in self.sales if s.shop_type == shop_type]
