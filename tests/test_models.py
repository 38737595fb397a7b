"""
Tests for product and sale line normalization.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from shopmaster.domain.errors import InvalidQuantityError
from shopmaster.domain.models import Sale, SaleLineItem, ShopType, UnitType, to_decimal


def test_weighed_line_keeps_three_decimals_and_rounds_subtotal(rice):
    line = SaleLineItem.for_product(rice, Decimal("0.256"))

    assert line.quantity == Decimal("0.256")
    assert line.subtotal == Decimal("30.72")
    assert line.product_name == "Basmati Rice"
    assert line.unit_price == Decimal("120.00")


def test_subtotal_is_recomputed_from_quantity_and_price():
    line = SaleLineItem.model_validate(
        {"product_id": "s1", "product_name": "Pen", "quantity": 3, "unit_price": "10", "subtotal": 999}
    )

    assert line.subtotal == Decimal("30.00")


def test_subtotal_rounds_half_up():
    line = SaleLineItem(product_id="x", product_name="X", quantity=Decimal("0.005"), unit_price=Decimal("1"))

    assert line.subtotal == Decimal("0.01")


def test_repeated_decimal_prices_do_not_drift():
    line = SaleLineItem(product_id="x", product_name="X", quantity=Decimal("3"), unit_price=Decimal("0.1"))

    assert line.subtotal == Decimal("0.30")


def test_float_quantity_is_read_as_written():
    line = SaleLineItem(product_id="g1", product_name="Rice", quantity=0.256, unit_price=120)

    assert line.quantity == Decimal("0.256")
    assert line.model_dump(mode="json")["subtotal"] == 30.72


@pytest.mark.parametrize("quantity", [0, -1, "0.0001"])
def test_line_rejects_non_positive_quantity(quantity):
    with pytest.raises(ValidationError):
        SaleLineItem(product_id="x", product_name="X", quantity=quantity, unit_price=1)


def test_for_product_rejects_zero_quantity(pen):
    with pytest.raises(InvalidQuantityError):
        SaleLineItem.for_product(pen, Decimal("0"))


def test_unit_product_stock_must_be_whole(make_product):
    with pytest.raises(ValidationError):
        make_product(stock=Decimal("2.5"))


def test_kg_product_stock_may_be_fractional(make_product):
    product = make_product(unit_type=UnitType.KG, stock=Decimal("2.5"))

    assert product.stock == Decimal("2.5")


def test_negative_stock_is_rejected(make_product):
    with pytest.raises(ValidationError):
        make_product(stock=Decimal("-1"))


def test_low_stock_includes_threshold(make_product):
    assert make_product(stock=Decimal("2"), low_stock_threshold=Decimal("2")).is_low_stock
    assert not make_product(stock=Decimal("3"), low_stock_threshold=Decimal("2")).is_low_stock


def test_sale_blank_customer_fields_become_none():
    sale = Sale(shop_type=ShopType.STATIONERY, customer_name="  ", customer_phone="")

    assert sale.customer_name is None
    assert sale.customer_phone is None


@pytest.mark.parametrize(
    "raw, expected",
    [("0.25", Decimal("0.25")), (" 2 ", Decimal("2")), (1.5, Decimal("1.5")), (3, Decimal("3"))],
)
def test_to_decimal_parses_numbers(raw, expected):
    assert to_decimal(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", None, True, "nan", "inf"])
def test_to_decimal_rejects_non_numbers(raw):
    with pytest.raises(InvalidQuantityError):
        to_decimal(raw)
