"""
Tests for the two-phase sale commit.
"""

import logging
from decimal import Decimal

import pytest

from shopmaster.domain import committer
from shopmaster.domain.errors import (
    DuplicateSaleError,
    EmptyCartError,
    InsufficientStockError,
    InvalidQuantityError,
    ProductNotFoundError,
    StockInvariantError,
)
from shopmaster.domain.models import Sale, SaleLineItem, ShopType


def make_sale(*lines, shop_type=ShopType.GENERAL_STORE, **fields):
    items = tuple(
        SaleLineItem(product_id=product.id, product_name=product.name, quantity=quantity, unit_price=product.selling_price)
        for product, quantity in lines
    )
    return Sale(shop_type=shop_type, items=items, **fields)


def test_weighed_sale_decrements_stock_and_records_totals(state, rice):
    candidate = make_sale((rice, Decimal("10")))

    new_state = committer.commit(candidate, state)

    sale = new_state.sales[0]
    assert sale.items[0].subtotal == Decimal("1200.00")
    assert sale.total_amount == Decimal("1200.00")
    assert sale.total_profit == Decimal("400.00")
    assert new_state.catalog["g1"].stock == Decimal("40.000")
    assert state.catalog["g1"].stock == Decimal("50")
    assert state.sales == ()


def test_unknown_product_rejects_the_whole_sale(state, rice, make_product):
    ghost = make_product(id="zz", name="Ghost", shop_type=ShopType.GENERAL_STORE)
    candidate = make_sale((rice, Decimal("1")), (ghost, Decimal("1")))

    with pytest.raises(ProductNotFoundError):
        committer.commit(candidate, state)

    assert state.catalog["g1"].stock == Decimal("50")
    assert state.sales == ()


def test_partial_failure_leaves_earlier_lines_untouched(state, rice, chocolate):
    candidate = make_sale((rice, Decimal("5")), (chocolate, Decimal("31")))

    with pytest.raises(InsufficientStockError) as exc_info:
        committer.commit(candidate, state)

    assert exc_info.value.product_name == "Milk Chocolate Bar"
    assert exc_info.value.available == Decimal("30")
    assert state.catalog["g1"].stock == Decimal("50")
    assert state.catalog["g2"].stock == Decimal("30")


def test_rejection_is_repeatable(state, chocolate):
    candidate = make_sale((chocolate, Decimal("40")))
    before = dict(state.catalog)

    for _ in range(3):
        with pytest.raises(InsufficientStockError):
            committer.commit(candidate, state)

    assert state.catalog == before
    assert state.sales == ()


def test_lines_for_the_same_product_are_checked_together(state, rice):
    candidate = make_sale((rice, Decimal("30")), (rice, Decimal("30")))

    with pytest.raises(InsufficientStockError) as exc_info:
        committer.validate(candidate, state.catalog)

    assert exc_info.value.requested == Decimal("60")


def test_every_line_of_a_product_is_decremented(state, rice):
    candidate = make_sale((rice, Decimal("0.25")), (rice, Decimal("1.5")))

    new_state = committer.commit(candidate, state)

    assert new_state.catalog["g1"].stock == Decimal("48.250")


def test_fractional_quantity_of_unit_product_is_rejected(state, chocolate):
    candidate = make_sale((chocolate, Decimal("1.5")))

    with pytest.raises(InvalidQuantityError):
        committer.commit(candidate, state)


def test_sale_without_items_is_rejected(state):
    with pytest.raises(EmptyCartError):
        committer.commit(Sale(shop_type=ShopType.STATIONERY), state)


def test_newest_sale_is_first(state, pen, chocolate):
    first = make_sale((chocolate, Decimal("1")))
    second = make_sale((pen, Decimal("1")), shop_type=ShopType.STATIONERY)

    after_first = committer.commit(first, state)
    after_second = committer.commit(second, after_first)

    assert [s.id for s in after_second.sales] == [second.id, first.id]
    assert len(after_first.sales) == 1


def test_supplied_totals_are_replaced(state, chocolate, caplog):
    candidate = make_sale(
        (chocolate, Decimal("2")),
        total_amount=Decimal("1"),
        total_profit=Decimal("999"),
    )

    with caplog.at_level(logging.WARNING, logger="shopmaster.domain.committer"):
        new_state = committer.commit(candidate, state)

    sale = new_state.sales[0]
    assert sale.total_amount == Decimal("40.00")
    assert sale.total_profit == Decimal("10.00")
    assert sale.id == candidate.id
    assert any(record.message == "sale_totals_rederived" for record in caplog.records)


def test_matching_totals_do_not_warn(state, chocolate, caplog):
    candidate = make_sale(
        (chocolate, Decimal("2")),
        total_amount=Decimal("40"),
        total_profit=Decimal("10"),
    )

    with caplog.at_level(logging.WARNING, logger="shopmaster.domain.committer"):
        committer.commit(candidate, state)

    assert not caplog.records


def test_products_not_in_the_sale_are_untouched(state, chocolate):
    new_state = committer.commit(make_sale((chocolate, Decimal("3"))), state)

    assert new_state.catalog["s1"] is state.catalog["s1"]
    assert new_state.catalog["g1"] is state.catalog["g1"]
    assert new_state.catalog["g2"].stock == Decimal("27")


def test_stock_never_goes_negative(state, rice, chocolate):
    current = state
    attempts = [
        make_sale((rice, Decimal("20")), (chocolate, Decimal("10"))),
        make_sale((rice, Decimal("20")), (chocolate, Decimal("10"))),
        make_sale((rice, Decimal("20"))),
        make_sale((chocolate, Decimal("10"))),
        make_sale((chocolate, Decimal("1"))),
    ]

    committed = 0
    for candidate in attempts:
        try:
            current = committer.commit(candidate, current)
            committed += 1
        except InsufficientStockError:
            pass
        assert all(p.stock >= 0 for p in current.catalog.values())

    assert committed == 3
    assert current.catalog["g1"].stock == Decimal("10.000")
    assert current.catalog["g2"].stock == Decimal("0")


def test_apply_guards_against_negative_stock(state, chocolate):
    candidate = make_sale((chocolate, Decimal("31")))

    with pytest.raises(StockInvariantError):
        committer.apply(candidate, state)

    assert state.catalog["g2"].stock == Decimal("30")


def test_derive_totals_uses_margin_per_unit(rice, chocolate):
    lines = [
        SaleLineItem.for_product(rice, Decimal("0.256")),
        SaleLineItem.for_product(chocolate, Decimal("2")),
    ]

    total, profit = committer.derive_totals(lines, {"g1": rice, "g2": chocolate})

    assert total == Decimal("70.72")
    assert profit == Decimal("20.24")


def test_product_from_another_shop_is_not_found(state, rice):
    candidate = make_sale((rice, Decimal("1")), shop_type=ShopType.STATIONERY)

    with pytest.raises(ProductNotFoundError) as exc_info:
        committer.commit(candidate, state)

    assert exc_info.value.product_id == "g1"
    assert state.catalog["g1"].stock == Decimal("50")


def test_sale_id_already_recorded_is_rejected(state, chocolate):
    candidate = make_sale((chocolate, Decimal("1")), id="dup")
    after_first = committer.commit(candidate, state)

    with pytest.raises(DuplicateSaleError):
        committer.commit(make_sale((chocolate, Decimal("2")), id="dup"), after_first)

    assert after_first.catalog["g2"].stock == Decimal("29")
    assert len(after_first.sales) == 1
