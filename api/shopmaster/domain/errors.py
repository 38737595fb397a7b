"""Sale and cart errors.

Every ``ShopError`` is a recoverable, user-facing rejection: the operation that
raised it left the cart and the catalog exactly as they were.
"""

from decimal import Decimal
from typing import Any


class ShopError(Exception):
    code = "SHOP_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        for key, value in self.details.items():
            payload[key] = float(value) if isinstance(value, Decimal) else value
        return payload


class OutOfStockError(ShopError):
    code = "OUT_OF_STOCK"

    def __init__(self, product_name: str):
        super().__init__(f"Out of stock: {product_name}", product_name=product_name, available=Decimal("0"))
        self.product_name = product_name
        self.available = Decimal("0")


class InsufficientStockError(ShopError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str, requested: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}, Requested: {requested}",
            product_name=product_name,
            requested=requested,
            available=available,
        )
        self.product_name = product_name
        self.requested = requested
        self.available = available


class InvalidQuantityError(ShopError):
    code = "INVALID_QUANTITY"

    def __init__(self, message: str, quantity: Any = None):
        super().__init__(message, quantity=None if quantity is None else str(quantity))


class WeightRequiredError(ShopError):
    """Raised for weight-based products added without a weight."""

    code = "WEIGHT_REQUIRED"

    def __init__(self, product_name: str):
        super().__init__(f"Enter a weight for {product_name}", product_name=product_name)
        self.product_name = product_name


class ProductNotFoundError(ShopError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}", product_id=product_id)
        self.product_id = product_id


class LineNotFoundError(ShopError):
    code = "NOT_FOUND"

    def __init__(self, index: int):
        super().__init__(f"Cart has no line at position {index}", index=index)
        self.index = index


class CartNotFoundError(ShopError):
    code = "NOT_FOUND"

    def __init__(self, cart_id: str):
        super().__init__(f"Cart not found: {cart_id}", cart_id=cart_id)
        self.cart_id = cart_id


class EmptyCartError(ShopError):
    code = "EMPTY_CART"

    def __init__(self):
        super().__init__("Cart is empty")


class DuplicateProductError(ShopError):
    code = "DUPLICATE_PRODUCT"

    def __init__(self, field: str, value: str):
        super().__init__(f"A product with {field} {value!r} already exists", field=field, value=value)


class DuplicateSaleError(ShopError):
    code = "DUPLICATE_SALE"

    def __init__(self, sale_id: str):
        super().__init__(f"Sale {sale_id} was already recorded", sale_id=sale_id)
        self.sale_id = sale_id


class InvalidProductError(ShopError):
    code = "INVALID_PRODUCT"

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message, errors=errors or [])


class StockInvariantError(RuntimeError):
    """Stock went negative. Indicates a bug, not a user error."""
