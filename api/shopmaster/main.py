import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shopmaster.core.config import Settings, settings as default_settings
from shopmaster.core.logging import configure_logging
from shopmaster.db.session import create_db_engine, create_session_factory, init_db
from shopmaster.domain.cart import Cart
from shopmaster.domain.errors import (
    CartNotFoundError,
    DuplicateProductError,
    DuplicateSaleError,
    EmptyCartError,
    InsufficientStockError,
    InvalidProductError,
    InvalidQuantityError,
    LineNotFoundError,
    OutOfStockError,
    ProductNotFoundError,
    ShopError,
    WeightRequiredError,
)
from shopmaster.domain.models import Product, Sale, ShopType
from shopmaster.domain.seed import CATEGORIES
from shopmaster.schemas.inventory import (
    CategoriesResponse,
    LowStockItem,
    ProductCreateRequest,
    ProductUpdateRequest,
    RestockRequest,
)
from shopmaster.schemas.sales import (
    CartCreateRequest,
    CartItemInput,
    CartResponse,
    CheckoutRequest,
    CombinedSummary,
    DashboardSummary,
    WeighedItemInput,
)
from shopmaster.services.deps import get_settings, get_shop_service
from shopmaster.services.reports import combined_summary, shop_summary
from shopmaster.services.shop import ShopService

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    OutOfStockError: status.HTTP_409_CONFLICT,
    InsufficientStockError: status.HTTP_409_CONFLICT,
    DuplicateProductError: status.HTTP_409_CONFLICT,
    DuplicateSaleError: status.HTTP_409_CONFLICT,
    InvalidQuantityError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    WeightRequiredError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidProductError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ProductNotFoundError: status.HTTP_404_NOT_FOUND,
    LineNotFoundError: status.HTTP_404_NOT_FOUND,
    CartNotFoundError: status.HTTP_404_NOT_FOUND,
    EmptyCartError: status.HTTP_400_BAD_REQUEST,
}

router = APIRouter()


def cart_response(cart: Cart) -> CartResponse:
    return CartResponse.model_validate(cart.to_dict())


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/catalog/categories/{shop_type}", response_model=CategoriesResponse)
def categories(shop_type: ShopType):
    return CategoriesResponse(shop_type=shop_type, categories=CATEGORIES[shop_type])


@router.get("/products", response_model=list[Product])
def list_products(shop: ShopType, q: str | None = None, service: ShopService = Depends(get_shop_service)):
    return service.list_products(shop, q)


@router.get("/products/{product_id}", response_model=Product)
def get_product(product_id: str, service: ShopService = Depends(get_shop_service)):
    return service.get_product(product_id)


@router.post("/products", response_model=Product, status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductCreateRequest, service: ShopService = Depends(get_shop_service)):
    return service.add_product(payload.model_dump(exclude_none=True))


@router.put("/products/{product_id}", response_model=Product)
def update_product(
    product_id: str,
    payload: ProductUpdateRequest,
    service: ShopService = Depends(get_shop_service),
):
    return service.update_product(product_id, payload.model_dump(exclude_none=True))


@router.post("/products/{product_id}/restock", response_model=Product)
def restock_product(
    product_id: str,
    payload: RestockRequest,
    service: ShopService = Depends(get_shop_service),
):
    return service.restock(product_id, payload.quantity)


@router.get("/inventory/alerts/low-stock", response_model=list[LowStockItem])
def low_stock_alerts(shop: ShopType | None = None, service: ShopService = Depends(get_shop_service)):
    return [
        LowStockItem(
            product_id=product.id,
            shop_type=product.shop_type,
            name=product.name,
            sku=product.sku,
            unit_type=product.unit_type,
            stock=float(product.stock),
            low_stock_threshold=float(product.low_stock_threshold),
        )
        for product in service.low_stock(shop)
    ]


@router.post("/carts", response_model=CartResponse, status_code=status.HTTP_201_CREATED)
def open_cart(payload: CartCreateRequest, service: ShopService = Depends(get_shop_service)):
    return cart_response(service.open_cart(payload.shop_type))


@router.get("/carts/{cart_id}", response_model=CartResponse)
def get_cart(cart_id: str, service: ShopService = Depends(get_shop_service)):
    return cart_response(service.get_cart(cart_id))


@router.post("/carts/{cart_id}/items", response_model=CartResponse)
def add_cart_item(cart_id: str, payload: CartItemInput, service: ShopService = Depends(get_shop_service)):
    return cart_response(service.add_to_cart(cart_id, payload.product_id, payload.quantity))


@router.post("/carts/{cart_id}/weighed-items", response_model=CartResponse)
def add_weighed_item(cart_id: str, payload: WeighedItemInput, service: ShopService = Depends(get_shop_service)):
    return cart_response(service.add_weight_to_cart(cart_id, payload.product_id, payload.weight))


@router.delete("/carts/{cart_id}/items/{index}", response_model=CartResponse)
def remove_cart_line(cart_id: str, index: int, service: ShopService = Depends(get_shop_service)):
    return cart_response(service.remove_cart_line(cart_id, index))


@router.delete("/carts/{cart_id}/items", response_model=CartResponse)
def clear_cart(cart_id: str, service: ShopService = Depends(get_shop_service)):
    return cart_response(service.clear_cart(cart_id))


@router.delete("/carts/{cart_id}", status_code=status.HTTP_204_NO_CONTENT)
def discard_cart(cart_id: str, service: ShopService = Depends(get_shop_service)):
    service.discard_cart(cart_id)


@router.post("/carts/{cart_id}/checkout", response_model=Sale, status_code=status.HTTP_201_CREATED)
def checkout(cart_id: str, payload: CheckoutRequest, service: ShopService = Depends(get_shop_service)):
    return service.checkout(
        cart_id,
        payment_mode=payload.payment_mode,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
    )


@router.post("/sales", response_model=Sale, status_code=status.HTTP_201_CREATED)
def commit_sale(payload: Sale, service: ShopService = Depends(get_shop_service)):
    return service.submit_sale(payload)


@router.get("/sales", response_model=list[Sale])
def list_sales(shop: ShopType | None = None, service: ShopService = Depends(get_shop_service)):
    return service.list_sales(shop)


@router.get("/dashboard/summary", response_model=DashboardSummary)
def dashboard_summary(
    shop: ShopType,
    service: ShopService = Depends(get_shop_service),
    app_settings: Settings = Depends(get_settings),
):
    return shop_summary(service.state, shop, days=app_settings.dashboard_days)


@router.get("/dashboard/combined", response_model=CombinedSummary)
def dashboard_combined(service: ShopService = Depends(get_shop_service)):
    return combined_summary(service.state)


async def shop_error_handler(request: Request, exc: ShopError):
    return JSONResponse(
        status_code=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST),
        content={"detail": exc.to_dict()},
    )


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(app_settings)
        engine = create_db_engine(app_settings.database_url)
        init_db(engine)
        app.state.shop = ShopService.load(
            create_session_factory(engine),
            seed_default_catalog=app_settings.seed_default_catalog,
            max_open_carts=app_settings.max_open_carts,
        )
        logger.info("shopmaster_started", extra={"database_url": engine.url.render_as_string(hide_password=True)})
        yield
        engine.dispose()

    app = FastAPI(title="ShopMaster POS API", version="0.1.0", lifespan=lifespan)
    app.state.settings = app_settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(ShopError, shop_error_handler)
    app.include_router(router)
    return app


app = create_app()
