"""Sale commit.

A commit is two phases run back to back: ``validate`` reads every line against
the catalog and raises on the first problem, then ``apply`` builds the new
state. ``apply`` never runs unless every line validated, and neither phase
mutates the state it was given, so a rejected sale leaves nothing behind.
Callers that share a state between threads must hold one lock around both
phases and around publishing the result.
"""

import logging
from decimal import Decimal
from typing import Iterable, Mapping

from shopmaster.domain.errors import (
    DuplicateSaleError,
    EmptyCartError,
    InsufficientStockError,
    InvalidQuantityError,
    ProductNotFoundError,
    StockInvariantError,
)
from shopmaster.domain.models import (
    Product,
    Sale,
    SaleLineItem,
    ShopState,
    UnitType,
    is_whole,
    round_money,
    round_quantity,
)

logger = logging.getLogger(__name__)


def derive_totals(items: Iterable[SaleLineItem], catalog: Mapping[str, Product]) -> tuple[Decimal, Decimal]:
    total_amount = Decimal("0")
    total_profit = Decimal("0")
    for line in items:
        total_amount += line.subtotal
        product = catalog.get(line.product_id)
        if product is not None:
            total_profit += line.quantity * product.margin
    return round_money(total_amount), round_money(total_profit)


def validate(candidate: Sale, catalog: Mapping[str, Product]) -> None:
    if not candidate.items:
        raise EmptyCartError()

    requested: dict[str, Decimal] = {}
    for line in candidate.items:
        product = catalog.get(line.product_id)
        if product is None or product.shop_type != candidate.shop_type:
            raise ProductNotFoundError(line.product_id)
        if product.unit_type == UnitType.UNIT and not is_whole(line.quantity):
            raise InvalidQuantityError(f"{product.name} is sold in whole units", line.quantity)

        # Weighed lines are never merged, so one product can appear on several lines.
        cumulative = requested.get(product.id, Decimal("0")) + line.quantity
        if cumulative > product.stock:
            raise InsufficientStockError(product.name, cumulative, product.stock)
        requested[product.id] = cumulative


def apply(candidate: Sale, state: ShopState) -> ShopState:
    total_amount, total_profit = derive_totals(candidate.items, state.catalog)
    supplied = candidate.model_fields_set
    if ("total_amount" in supplied and candidate.total_amount != total_amount) or (
        "total_profit" in supplied and candidate.total_profit != total_profit
    ):
        logger.warning(
            "sale_totals_rederived",
            extra={
                "sale_id": candidate.id,
                "supplied_total": str(candidate.total_amount),
                "derived_total": str(total_amount),
                "supplied_profit": str(candidate.total_profit),
                "derived_profit": str(total_profit),
            },
        )
    sale = candidate.model_copy(update={"total_amount": total_amount, "total_profit": total_profit})

    catalog = dict(state.catalog)
    for line in sale.items:
        product = catalog[line.product_id]
        remaining = round_quantity(product.stock - line.quantity)
        if remaining < 0:
            logger.critical(
                "stock_invariant_violated",
                extra={"sale_id": sale.id, "product_id": product.id, "stock": str(remaining)},
            )
            raise StockInvariantError(f"Stock of {product.id} would become {remaining}")
        catalog[line.product_id] = product.with_stock(remaining)

    return ShopState(catalog=catalog, sales=(sale,) + state.sales)


def commit(candidate: Sale, state: ShopState) -> ShopState:
    if any(sale.id == candidate.id for sale in state.sales):
        raise DuplicateSaleError(candidate.id)
    validate(candidate, state.catalog)
    return apply(candidate, state)
