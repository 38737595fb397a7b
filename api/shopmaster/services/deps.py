from fastapi import Request

from shopmaster.core.config import Settings
from shopmaster.services.shop import ShopService


def get_shop_service(request: Request) -> ShopService:
    return request.app.state.shop


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
