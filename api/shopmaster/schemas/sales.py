from pydantic import BaseModel, Field

from shopmaster.domain.models import PaymentMode, ShopType


class CartCreateRequest(BaseModel):
    shop_type: ShopType


class CartItemInput(BaseModel):
    product_id: str
    # Unit products default to 1; weight-based products need a weight.
    quantity: float | str | None = None


class WeighedItemInput(BaseModel):
    product_id: str
    weight: float | str


class CheckoutRequest(BaseModel):
    customer_name: str | None = Field(default=None, max_length=250)
    customer_phone: str | None = Field(default=None, max_length=50)
    payment_mode: PaymentMode = PaymentMode.CASH


class CartLine(BaseModel):
    product_id: str
    product_name: str
    quantity: float
    unit_price: float
    subtotal: float


class CartResponse(BaseModel):
    id: str
    shop_type: ShopType
    items: list[CartLine]
    total: float


class DailySales(BaseModel):
    date: str
    sales: float


class CategoryQuantity(BaseModel):
    category: str
    quantity: float


class DashboardSummary(BaseModel):
    shop_type: ShopType
    total_sales: float
    total_profit: float
    stock_value: float
    low_stock_count: int
    sales_count: int
    daily_sales: list[DailySales]
    category_quantities: list[CategoryQuantity]


class ShopBreakdown(BaseModel):
    shop_type: ShopType
    sales: float
    profit: float
    sales_count: int


class CombinedSummary(BaseModel):
    total_sales: float
    total_profit: float
    sales_count: int
    product_count: int
    shops: list[ShopBreakdown]
