from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from shopmaster.domain.models import ShopState, ShopType, round_money, round_quantity


def _sum_money(values) -> Decimal:
    return round_money(sum(values, Decimal("0")))


def shop_summary(state: ShopState, shop_type: ShopType, today: date | None = None, days: int = 7) -> dict:
    """Dashboard figures for one shop."""
    products = state.products_for(shop_type)
    sales = state.sales_for(shop_type)
    today = today or datetime.now(timezone.utc).date()

    by_day: dict[date, Decimal] = {}
    for sale in sales:
        day = sale.timestamp.date()
        by_day[day] = by_day.get(day, Decimal("0")) + sale.total_amount

    daily_sales = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        daily_sales.append({"date": day.isoformat(), "sales": float(round_money(by_day.get(day, Decimal("0"))))})

    categories = {p.id: p.category for p in products}
    quantity_by_category: dict[str, Decimal] = {}
    for sale in sales:
        for item in sale.items:
            category = categories.get(item.product_id)
            if category is None:
                continue
            quantity_by_category[category] = quantity_by_category.get(category, Decimal("0")) + item.quantity

    return {
        "shop_type": shop_type.value,
        "total_sales": float(_sum_money(s.total_amount for s in sales)),
        "total_profit": float(_sum_money(s.total_profit for s in sales)),
        "stock_value": float(_sum_money(p.stock * p.purchase_price for p in products)),
        "low_stock_count": sum(1 for p in products if p.is_low_stock),
        "sales_count": len(sales),
        "daily_sales": daily_sales,
        "category_quantities": [
            {"category": name, "quantity": float(round_quantity(quantity))}
            for name, quantity in quantity_by_category.items()
            if quantity > 0
        ],
    }


def combined_summary(state: ShopState) -> dict:
    shops = []
    for shop_type in ShopType:
        sales = state.sales_for(shop_type)
        shops.append(
            {
                "shop_type": shop_type.value,
                "sales": float(_sum_money(s.total_amount for s in sales)),
                "profit": float(_sum_money(s.total_profit for s in sales)),
                "sales_count": len(sales),
            }
        )

    return {
        "total_sales": float(_sum_money(s.total_amount for s in state.sales)),
        "total_profit": float(_sum_money(s.total_profit for s in state.sales)),
        "sales_count": len(state.sales),
        "product_count": len(state.catalog),
        "shops": shops,
    }
