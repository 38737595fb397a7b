from decimal import Decimal

from shopmaster.domain.models import Product, ShopType, UnitType

CATEGORIES = {
    ShopType.STATIONERY: ["Pen", "Copy", "Marker", "Register", "File", "Eraser", "Pencil"],
    ShopType.GENERAL_STORE: ["Grains", "Dairy", "Snacks", "Beverages", "Spices", "Soap", "Oil"],
}


def default_products() -> list[Product]:
    return [
        Product(
            id="s1",
            shop_type=ShopType.STATIONERY,
            name="Blue Gel Pen",
            category="Pen",
            sku="PEN001",
            purchase_price=Decimal("5"),
            selling_price=Decimal("10"),
            unit_type=UnitType.UNIT,
            stock=Decimal("100"),
            low_stock_threshold=Decimal("20"),
        ),
        Product(
            id="s2",
            shop_type=ShopType.STATIONERY,
            name="A4 Register 200pg",
            category="Register",
            sku="REG001",
            purchase_price=Decimal("40"),
            selling_price=Decimal("75"),
            unit_type=UnitType.UNIT,
            stock=Decimal("50"),
            low_stock_threshold=Decimal("10"),
        ),
        Product(
            id="g1",
            shop_type=ShopType.GENERAL_STORE,
            name="Basmati Rice",
            category="Grains",
            sku="RIC001",
            purchase_price=Decimal("80"),
            selling_price=Decimal("120"),
            unit_type=UnitType.KG,
            stock=Decimal("50"),
            low_stock_threshold=Decimal("5"),
        ),
        Product(
            id="g2",
            shop_type=ShopType.GENERAL_STORE,
            name="Milk Chocolate Bar",
            category="Snacks",
            sku="SNK001",
            purchase_price=Decimal("15"),
            selling_price=Decimal("20"),
            unit_type=UnitType.UNIT,
            stock=Decimal("30"),
            low_stock_threshold=Decimal("5"),
        ),
    ]
