"""The shop's single owner of catalog, sales history and open carts.

All state changes go through one re-entrant lock, so a commit's validation,
application and persistence can never interleave with another commit or with
a catalog edit. Persistence runs after the new state is computed and before it
is published; if the database write fails the published state is unchanged.
"""

import logging
import threading
from typing import Any, Callable

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from shopmaster.db import repository
from shopmaster.domain import committer
from shopmaster.domain.cart import Cart
from shopmaster.domain.errors import (
    CartNotFoundError,
    DuplicateProductError,
    InvalidProductError,
    InvalidQuantityError,
    ProductNotFoundError,
    ShopError,
)
from shopmaster.domain.models import (
    PaymentMode,
    Product,
    Sale,
    SaleLineItem,
    ShopState,
    ShopType,
    UnitType,
    is_whole,
    new_id,
    round_quantity,
    to_decimal,
)
from shopmaster.domain.seed import default_products

logger = logging.getLogger(__name__)


def _validation_errors(exc: ValidationError) -> list[dict]:
    return exc.errors(include_url=False, include_context=False, include_input=False)


class ShopService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        state: ShopState | None = None,
        max_open_carts: int = 1000,
    ):
        self._session_factory = session_factory
        self._state = state or ShopState()
        # Insertion ordered, oldest first.
        self._carts: dict[str, Cart] = {}
        self._max_open_carts = max_open_carts
        self._lock = threading.RLock()

    @classmethod
    def load(
        cls,
        session_factory: sessionmaker[Session],
        seed_default_catalog: bool = True,
        max_open_carts: int = 1000,
    ) -> "ShopService":
        with session_factory() as db:
            if seed_default_catalog and repository.count_products(db) == 0:
                try:
                    for position, product in enumerate(default_products()):
                        repository.insert_product(db, product, position)
                    db.commit()
                except SQLAlchemyError:
                    db.rollback()
                    raise
                logger.info("catalog_seeded")

            products = repository.load_products(db)
            sales = repository.load_sales(db)

        logger.info("shop_state_loaded", extra={"products": len(products), "sales": len(sales)})
        return cls(
            session_factory,
            ShopState(catalog={p.id: p for p in products}, sales=tuple(sales)),
            max_open_carts=max_open_carts,
        )

    @property
    def state(self) -> ShopState:
        return self._state

    def _persist(self, write: Callable[[Session], None]) -> None:
        with self._session_factory() as db:
            try:
                write(db)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                logger.exception("persist_failed")
                raise

    # Catalog

    def list_products(self, shop_type: ShopType, query: str | None = None) -> list[Product]:
        products = self._state.products_for(shop_type)
        if not query:
            return products
        needle = query.strip().lower()
        return [p for p in products if needle in p.name.lower() or needle in p.sku.lower()]

    def get_product(self, product_id: str) -> Product:
        product = self._state.product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def low_stock(self, shop_type: ShopType | None = None) -> list[Product]:
        products = self._state.catalog.values() if shop_type is None else self._state.products_for(shop_type)
        return sorted((p for p in products if p.is_low_stock), key=lambda p: (p.stock, p.name))

    def _check_unique_sku(self, sku: str, ignore_id: str | None = None) -> None:
        if not sku:
            return
        for product in self._state.catalog.values():
            if product.id != ignore_id and product.sku.lower() == sku.lower():
                raise DuplicateProductError("sku", sku)

    def add_product(self, data: dict[str, Any]) -> Product:
        with self._lock:
            data = {**data, "id": data.get("id") or new_id()}
            try:
                product = Product.model_validate(data)
            except ValidationError as exc:
                raise InvalidProductError("Invalid product", _validation_errors(exc)) from exc

            if product.id in self._state.catalog:
                raise DuplicateProductError("id", product.id)
            self._check_unique_sku(product.sku)

            self._persist(
                lambda db: repository.insert_product(db, product, repository.next_head_position(db))
            )
            self._state = ShopState(
                catalog={product.id: product, **self._state.catalog},
                sales=self._state.sales,
            )
            logger.info("product_added", extra={"product_id": product.id, "shop_type": product.shop_type.value})
            return product

    def _replace_product(self, product: Product) -> None:
        catalog = dict(self._state.catalog)
        catalog[product.id] = product
        self._state = ShopState(catalog=catalog, sales=self._state.sales)

    def update_product(self, product_id: str, changes: dict[str, Any]) -> Product:
        with self._lock:
            existing = self.get_product(product_id)
            data = {**existing.model_dump(), **changes, "id": existing.id, "shop_type": existing.shop_type}
            try:
                product = Product.model_validate(data)
            except ValidationError as exc:
                raise InvalidProductError("Invalid product", _validation_errors(exc)) from exc
            self._check_unique_sku(product.sku, ignore_id=product.id)

            self._persist(lambda db: repository.update_product(db, product))
            self._replace_product(product)
            logger.info("product_updated", extra={"product_id": product.id})
            return product

    def restock(self, product_id: str, quantity: Any) -> Product:
        with self._lock:
            existing = self.get_product(product_id)
            amount = round_quantity(to_decimal(quantity))
            if amount <= 0:
                raise InvalidQuantityError("Restock quantity must be greater than zero", quantity)
            if existing.unit_type == UnitType.UNIT and not is_whole(amount):
                raise InvalidQuantityError(f"{existing.name} is stocked in whole units", quantity)

            product = existing.with_stock(existing.stock + amount)
            self._persist(lambda db: repository.update_product(db, product))
            self._replace_product(product)
            logger.info("product_restocked", extra={"product_id": product.id, "quantity": str(amount)})
            return product

    # Carts

    def open_cart(self, shop_type: ShopType) -> Cart:
        with self._lock:
            while self._carts and len(self._carts) >= self._max_open_carts:
                stale_id = next(iter(self._carts))
                del self._carts[stale_id]
                logger.info("cart_evicted", extra={"cart_id": stale_id})
            cart = Cart(shop_type)
            self._carts[cart.id] = cart
            return cart

    def get_cart(self, cart_id: str) -> Cart:
        cart = self._carts.get(cart_id)
        if cart is None:
            raise CartNotFoundError(cart_id)
        return cart

    def _shop_product(self, cart: Cart, product_id: str) -> Product:
        product = self.get_product(product_id)
        if product.shop_type != cart.shop_type:
            raise ProductNotFoundError(product_id)
        return product

    def add_to_cart(self, cart_id: str, product_id: str, quantity: Any = None) -> Cart:
        with self._lock:
            cart = self.get_cart(cart_id)
            cart.add_item(self._shop_product(cart, product_id), quantity)
            return cart

    def add_weight_to_cart(self, cart_id: str, product_id: str, weight: Any) -> Cart:
        with self._lock:
            cart = self.get_cart(cart_id)
            cart.add_weighed_item(self._shop_product(cart, product_id), weight)
            return cart

    def remove_cart_line(self, cart_id: str, index: int) -> Cart:
        with self._lock:
            cart = self.get_cart(cart_id)
            cart.remove_line(index)
            return cart

    def clear_cart(self, cart_id: str) -> Cart:
        with self._lock:
            cart = self.get_cart(cart_id)
            cart.clear()
            return cart

    def discard_cart(self, cart_id: str) -> None:
        with self._lock:
            if self._carts.pop(cart_id, None) is None:
                raise CartNotFoundError(cart_id)

    def checkout(
        self,
        cart_id: str,
        payment_mode: PaymentMode = PaymentMode.CASH,
        customer_name: str | None = None,
        customer_phone: str | None = None,
    ) -> Sale:
        """Commit the cart as a sale. The cart is kept if the commit is rejected."""
        with self._lock:
            cart = self.get_cart(cart_id)
            candidate = cart.build_sale(
                self._state.catalog,
                payment_mode=payment_mode,
                customer_name=customer_name,
                customer_phone=customer_phone,
            )
            sale = self.commit(candidate)
            del self._carts[cart_id]
            return sale

    # Sales

    def commit(self, candidate: Sale) -> Sale:
        with self._lock:
            try:
                new_state = committer.commit(candidate, self._state)
            except ShopError as exc:
                logger.warning(
                    "sale_rejected",
                    extra={"sale_id": candidate.id, "code": exc.code, "reason": exc.message},
                )
                raise

            sale = new_state.sales[0]
            touched = [new_state.catalog[product_id] for product_id in dict.fromkeys(i.product_id for i in sale.items)]
            self._persist(lambda db: repository.record_sale(db, sale, touched))
            self._state = new_state

            logger.info(
                "sale_committed",
                extra={
                    "sale_id": sale.id,
                    "shop_type": sale.shop_type.value,
                    "lines": len(sale.items),
                    "total_amount": str(sale.total_amount),
                },
            )
            for product in touched:
                if product.is_low_stock:
                    logger.info(
                        "low_stock",
                        extra={"product_id": product.id, "stock": str(product.stock)},
                    )
            return sale

    def submit_sale(self, candidate: Sale) -> Sale:
        """Commit a sale built outside a cart. Names and prices are taken from the catalog, not the caller."""
        with self._lock:
            items = []
            for line in candidate.items:
                product = self._state.product(line.product_id)
                items.append(line if product is None else SaleLineItem.for_product(product, line.quantity))
            return self.commit(candidate.model_copy(update={"items": tuple(items)}))

    def list_sales(self, shop_type: ShopType | None = None) -> list[Sale]:
        if shop_type is None:
            return list(self._state.sales)
        return self._state.sales_for(shop_type)
