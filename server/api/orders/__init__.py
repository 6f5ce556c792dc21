# 订单模块

from .routes import router as orders_router
from .models import CreateOrderRequest, PaymentRequest, OrderInfo

__all__ = [
    "orders_router",
    "CreateOrderRequest",
    "PaymentRequest",
    "OrderInfo"
]
