# 订单相关API路由：下单、付款、状态流转、评价

import logging
from typing import Dict, Any, Optional
from fastapi import APIRouter, Depends, Path, Query, Request, status

from .models import (
    CreateOrderRequest, UpdateOrderStatusRequest, PaymentRequest, CreateReviewRequest,
    OrderInfo, OrderStatus, PaymentResult, ReviewInfo
)
from api.auth.routes import get_current_user, get_database
from api.auth.models import TokenData
from api.models import dump, dump_page
from db.manager import DatabaseManager
from db.core_operations import CoreOperations
from db.query_operations import QueryOperations
from utils.response import create_success_response
from utils.money import format_amount

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["订单"])


def get_core_operations(
    request: Request,
    db: DatabaseManager = Depends(get_database)
) -> CoreOperations:
    return CoreOperations(db, cache=request.app.state.cache)


def get_query_operations(db: DatabaseManager = Depends(get_database)) -> QueryOperations:
    return QueryOperations(db)


@router.get("", response_model=Dict[str, Any])
async def get_my_orders(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(10, ge=1, le=100, description="每页条数"),
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="订单状态"),
    payment_status: Optional[str] = Query(None, alias="paymentStatus", description="付款状态"),
    current_user: TokenData = Depends(get_current_user),
    query_ops: QueryOperations = Depends(get_query_operations)
):
    """
    分页获取当前用户的订单，按创建时间倒序
    """
    result = query_ops.query_user_orders(
        current_user.user_id,
        page=page,
        limit=limit,
        status=order_status,
        payment_status=payment_status
    )
    return create_success_response(
        data=dump_page(OrderInfo, result["orders"], "orders", result["pagination"]),
        message="Orders retrieved successfully"
    )


@router.get("/canteen/{canteen_id}", response_model=Dict[str, Any])
async def get_canteen_orders(
    canteen_id: str = Path(..., description="餐厅ID"),
    order_status: Optional[OrderStatus] = Query(None, alias="status", description="订单状态"),
    current_user: TokenData = Depends(get_current_user),
    query_ops: QueryOperations = Depends(get_query_operations)
):
    """
    获取餐厅订单（餐厅所有者或管理员）
    """
    orders = query_ops.query_canteen_orders(canteen_id, current_user, status=order_status)
    return create_success_response(
        data=dump(OrderInfo, orders),
        message="Canteen orders retrieved successfully"
    )


@router.get("/canteen/{canteen_id}/reviews", response_model=Dict[str, Any])
async def get_canteen_reviews(
    canteen_id: str = Path(..., description="餐厅ID"),
    query_ops: QueryOperations = Depends(get_query_operations)
):
    """
    获取餐厅评价，公开接口
    """
    reviews = query_ops.query_canteen_reviews(canteen_id)
    return create_success_response(
        data=dump(ReviewInfo, reviews),
        message="Reviews retrieved successfully"
    )


@router.delete("/review/{review_id}", response_model=Dict[str, Any])
async def delete_review(
    review_id: str = Path(..., description="评价ID"),
    current_user: TokenData = Depends(get_current_user),
    core_ops: CoreOperations = Depends(get_core_operations)
):
    """
    删除评价（餐厅所有者或管理员）
    """
    result = core_ops.delete_review(review_id, current_user)
    return create_success_response(message=result["message"])


@router.post("/{canteen_id}", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_order(
    order_request: CreateOrderRequest,
    canteen_id: str = Path(..., description="餐厅ID"),
    current_user: TokenData = Depends(get_current_user),
    core_ops: CoreOperations = Depends(get_core_operations)
):
    """
    创建订单

    总价由服务端按菜品标价计算，库存在同一事务中扣减
    """
    order = core_ops.create_order(
        user_id=current_user.user_id,
        canteen_id=canteen_id,
        items=[
            {"menu_item_id": item.menu_item_id, "quantity": item.quantity}
            for item in order_request.items
        ]
    )
    return create_success_response(
        data=dump(OrderInfo, order),
        message=f"Order created successfully, total {format_amount(order['total_price'])}"
    )


@router.put("/{order_id}/status", response_model=Dict[str, Any])
async def update_order_status(
    status_request: UpdateOrderStatusRequest,
    order_id: str = Path(..., description="订单ID"),
    current_user: TokenData = Depends(get_current_user),
    core_ops: CoreOperations = Depends(get_core_operations)
):
    """
    更新订单状态（餐厅所有者或管理员），订单必须已付款
    """
    order = core_ops.update_order_status(order_id, current_user, status_request.status)
    return create_success_response(
        data=dump(OrderInfo, order),
        message=f"Order status updated to {order['status']}"
    )


@router.post("/{order_id}/payment", response_model=Dict[str, Any])
async def make_payment(
    payment_request: PaymentRequest,
    order_id: str = Path(..., description="订单ID"),
    current_user: TokenData = Depends(get_current_user),
    core_ops: CoreOperations = Depends(get_core_operations)
):
    """
    订单付款（下单用户本人），金额必须与订单总价完全一致
    """
    result = core_ops.make_payment(order_id, current_user.user_id, payment_request.amount)
    return create_success_response(
        data=PaymentResult.model_validate(result).to_json(),
        message="Payment successful"
    )


@router.post("/{order_id}/review", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_review(
    review_request: CreateReviewRequest,
    order_id: str = Path(..., description="订单ID"),
    current_user: TokenData = Depends(get_current_user),
    core_ops: CoreOperations = Depends(get_core_operations)
):
    """
    评价已完成的订单（下单用户本人，每个订单一次）
    """
    review = core_ops.create_review(
        order_id, current_user.user_id, review_request.rating, review_request.comment
    )
    return create_success_response(
        data=dump(ReviewInfo, review),
        message="Review created successfully"
    )
