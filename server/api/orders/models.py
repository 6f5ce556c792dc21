# 订单相关的数据模型

from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import Field

from api.models import CamelModel
from utils.validators import MAX_QUANTITY

OrderStatus = Literal["WAITING", "COOKING", "READY", "COMPLETED"]


class OrderItemRequest(CamelModel):
    """下单明细：只提交菜品和数量，价格由服务端计算"""
    menu_item_id: str = Field(..., min_length=1, description="菜品ID")
    quantity: int = Field(..., gt=0, le=MAX_QUANTITY, description="数量")


class CreateOrderRequest(CamelModel):
    """创建订单请求模型"""
    items: List[OrderItemRequest] = Field(..., min_length=1, description="菜品列表")


class UpdateOrderStatusRequest(CamelModel):
    status: OrderStatus = Field(..., description="目标状态")


class PaymentRequest(CamelModel):
    """付款请求模型，金额必须与订单总价完全一致"""
    amount: Decimal = Field(..., gt=0, description="付款金额（元）")


class CreateReviewRequest(CamelModel):
    rating: int = Field(..., ge=1, le=5, description="评分 1-5")
    comment: str = Field(..., min_length=10, max_length=500, description="评价内容")


class OrderItemInfo(CamelModel):
    id: str
    menu_item_id: Optional[str] = None
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class PaymentInfo(CamelModel):
    id: str
    order_id: str
    amount: Decimal
    status: str
    created_at: str


class ReviewInfo(CamelModel):
    """评价信息模型"""
    id: str
    order_id: str
    user_id: str
    username: Optional[str] = None
    rating: int
    comment: str
    created_at: str


class OrderInfo(CamelModel):
    """订单信息模型"""
    id: str
    user_id: str
    username: str
    canteen_id: str
    canteen_name: str
    total_price: Decimal
    status: str
    payment_status: str
    created_at: str
    updated_at: str
    items: List[OrderItemInfo] = Field(default_factory=list)
    payment: Optional[PaymentInfo] = None
    review: Optional[ReviewInfo] = None


class PaymentResult(CamelModel):
    """付款响应模型"""
    payment: PaymentInfo
    order: OrderInfo
