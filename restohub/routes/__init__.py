"""
API Routers

Each module owns one APIRouter; main.py includes them all.
"""

from restohub.routes.admin import admin_router
from restohub.routes.cart import cart_router
from restohub.routes.menus import menus_router
from restohub.routes.orders import orders_router
from restohub.routes.payments import payments_router
from restohub.routes.platform import platform_router
from restohub.routes.public import public_router
from restohub.routes.settings import settings_router

__all__ = [
    "admin_router",
    "cart_router",
    "menus_router",
    "orders_router",
    "payments_router",
    "platform_router",
    "public_router",
    "settings_router",
]
