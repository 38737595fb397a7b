"""In-progress checkout lines, checked against live stock as they are added."""

import logging
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal
from typing import Any, Mapping

from shopmaster.domain.committer import derive_totals
from shopmaster.domain.errors import (
    EmptyCartError,
    InsufficientStockError,
    InvalidQuantityError,
    LineNotFoundError,
    OutOfStockError,
    WeightRequiredError,
)
from shopmaster.domain.models import (
    PaymentMode,
    Product,
    Sale,
    SaleLineItem,
    ShopType,
    UnitType,
    new_id,
    round_money,
    round_quantity,
    to_decimal,
    utcnow,
)

logger = logging.getLogger(__name__)


class Cart:
    """Line items for one sale being assembled.

    The cart only reads products; stock is never changed here. Every failed
    operation leaves the lines exactly as they were.
    """

    def __init__(self, shop_type: ShopType, cart_id: str | None = None):
        self.id = cart_id or new_id()
        self.shop_type = shop_type
        self._lines: list[SaleLineItem] = []

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> tuple[SaleLineItem, ...]:
        return tuple(self._lines)

    def quantity_of(self, product_id: str) -> Decimal:
        return sum((line.quantity for line in self._lines if line.product_id == product_id), Decimal("0"))

    def add_item(self, product: Product, requested_quantity: Any = None) -> SaleLineItem:
        if product.stock <= 0:
            raise OutOfStockError(product.name)

        if product.unit_type == UnitType.KG:
            if requested_quantity is None:
                raise WeightRequiredError(product.name)
            return self.add_weighed_item(product, requested_quantity)

        raw = 1 if requested_quantity is None else requested_quantity
        quantity = to_decimal(raw).to_integral_value(rounding=ROUND_FLOOR)
        if quantity <= 0:
            raise InvalidQuantityError("Quantity must be at least 1", raw)

        prospective = self.quantity_of(product.id) + quantity
        if prospective > product.stock:
            raise InsufficientStockError(product.name, prospective, product.stock)

        for index, line in enumerate(self._lines):
            if line.product_id == product.id:
                merged = line.with_quantity(line.quantity + quantity)
                self._lines[index] = merged
                logger.debug("cart_line_merged", extra={"cart_id": self.id, "product_id": product.id})
                return merged

        line = SaleLineItem.for_product(product, quantity)
        self._lines.append(line)
        logger.debug("cart_line_added", extra={"cart_id": self.id, "product_id": product.id})
        return line

    def add_weighed_item(self, product: Product, weight: Any) -> SaleLineItem:
        if product.unit_type != UnitType.KG:
            raise InvalidQuantityError(f"{product.name} is sold by the unit, not by weight", weight)
        if product.stock <= 0:
            raise OutOfStockError(product.name)

        weight = round_quantity(to_decimal(weight))
        if weight <= 0:
            raise InvalidQuantityError("Weight must be greater than zero", weight)

        # Each weighing is checked on its own; the commit checks the cumulative weight.
        if weight > product.stock:
            raise InsufficientStockError(product.name, weight, product.stock)

        line = SaleLineItem.for_product(product, weight)
        self._lines.append(line)
        logger.debug("cart_weight_added", extra={"cart_id": self.id, "product_id": product.id})
        return line

    def remove_line(self, index: int) -> SaleLineItem:
        if not 0 <= index < len(self._lines):
            raise LineNotFoundError(index)
        return self._lines.pop(index)

    def clear(self) -> None:
        self._lines.clear()

    def total(self) -> Decimal:
        return round_money(sum((line.subtotal for line in self._lines), Decimal("0")))

    def build_sale(
        self,
        catalog: Mapping[str, Product],
        payment_mode: PaymentMode = PaymentMode.CASH,
        customer_name: str | None = None,
        customer_phone: str | None = None,
        timestamp: datetime | None = None,
    ) -> Sale:
        """Turn the cart into a candidate sale for the committer."""
        if not self._lines:
            raise EmptyCartError()

        total_amount, total_profit = derive_totals(self._lines, catalog)
        return Sale(
            shop_type=self.shop_type,
            timestamp=timestamp or utcnow(),
            customer_name=customer_name,
            customer_phone=customer_phone,
            items=tuple(self._lines),
            total_amount=total_amount,
            payment_mode=payment_mode,
            total_profit=total_profit,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_type": self.shop_type.value,
            "items": [line.model_dump(mode="json") for line in self._lines],
            "total": float(self.total()),
        }
