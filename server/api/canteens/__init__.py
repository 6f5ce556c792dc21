# 餐厅模块

from .routes import router as canteens_router
from .models import CanteenInfo, MenuItemInfo

__all__ = [
    "canteens_router",
    "CanteenInfo",
    "MenuItemInfo"
]
