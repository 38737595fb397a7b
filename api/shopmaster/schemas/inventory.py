from decimal import Decimal

from pydantic import BaseModel, Field

from shopmaster.domain.models import ShopType, UnitType


class ProductCreateRequest(BaseModel):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    shop_type: ShopType
    name: str = Field(min_length=1, max_length=250)
    category: str = ""
    sku: str = Field(default="", max_length=64)
    purchase_price: Decimal = Field(default=Decimal("0"), ge=0)
    selling_price: Decimal = Field(default=Decimal("0"), ge=0)
    unit_type: UnitType
    stock: Decimal = Field(default=Decimal("0"), ge=0)
    low_stock_threshold: Decimal = Field(default=Decimal("5"), ge=0)


class ProductUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=250)
    category: str | None = None
    sku: str | None = Field(default=None, max_length=64)
    purchase_price: Decimal | None = Field(default=None, ge=0)
    selling_price: Decimal | None = Field(default=None, ge=0)
    unit_type: UnitType | None = None
    stock: Decimal | None = Field(default=None, ge=0)
    low_stock_threshold: Decimal | None = Field(default=None, ge=0)


class RestockRequest(BaseModel):
    quantity: Decimal = Field(gt=0)


class LowStockItem(BaseModel):
    product_id: str
    shop_type: ShopType
    name: str
    sku: str
    unit_type: UnitType
    stock: float
    low_stock_threshold: float


class CategoriesResponse(BaseModel):
    shop_type: ShopType
    categories: list[str]
