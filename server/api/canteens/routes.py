# 餐厅与菜单相关API路由

import logging
from typing import Dict, Any
from fastapi import APIRouter, Depends, Path, Request, status

from .models import (
    CreateCanteenRequest, UpdateCanteenRequest, CreateMenuItemRequest,
    UpdateMenuItemRequest, CanteenInfo, MenuItemInfo
)
from api.auth.routes import get_current_user, get_database
from api.auth.models import TokenData
from api.models import dump
from db.manager import DatabaseManager
from db.canteen_operations import CanteenOperations
from utils.response import create_success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/canteens", tags=["餐厅"])


def get_canteen_operations(
    request: Request,
    db: DatabaseManager = Depends(get_database)
) -> CanteenOperations:
    config = request.app.state.config
    return CanteenOperations(
        db,
        cache=request.app.state.cache,
        ttls={
            "canteens": config.get("cache.canteens_ttl", 300),
            "menu_items": config.get("cache.menu_items_ttl", 180)
        }
    )


@router.post("", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_canteen(
    canteen_request: CreateCanteenRequest,
    current_user: TokenData = Depends(get_current_user),
    canteen_ops: CanteenOperations = Depends(get_canteen_operations)
):
    """
    创建餐厅（餐厅所有者或管理员），创建者即所有者
    """
    canteen = canteen_ops.create_canteen(current_user, canteen_request.name, canteen_request.is_open)
    return create_success_response(
        data=dump(CanteenInfo, canteen),
        message="Canteen created successfully"
    )


@router.get("", response_model=Dict[str, Any])
async def get_canteens(canteen_ops: CanteenOperations = Depends(get_canteen_operations)):
    """
    获取全部餐厅（含菜单），公开接口
    """
    canteens = canteen_ops.list_canteens()
    return create_success_response(
        data=dump(CanteenInfo, canteens),
        message="Canteens retrieved successfully"
    )


@router.get("/{canteen_id}", response_model=Dict[str, Any])
async def get_canteen(
    canteen_id: str = Path(..., description="餐厅ID"),
    canteen_ops: CanteenOperations = Depends(get_canteen_operations)
):
    canteen = canteen_ops.get_canteen(canteen_id)
    return create_success_response(
        data=dump(CanteenInfo, canteen),
        message="Canteen retrieved successfully"
    )


@router.put("/{canteen_id}", response_model=Dict[str, Any])
async def update_canteen(
    canteen_request: UpdateCanteenRequest,
    canteen_id: str = Path(..., description="餐厅ID"),
    current_user: TokenData = Depends(get_current_user),
    canteen_ops: CanteenOperations = Depends(get_canteen_operations)
):
    """
    更新餐厅名称或营业状态（餐厅所有者或管理员）
    """
    canteen = canteen_ops.update_canteen(
        canteen_id, current_user,
        name=canteen_request.name,
        is_open=canteen_request.is_open
    )
    return create_success_response(
        data=dump(CanteenInfo, canteen),
        message="Canteen updated successfully"
    )


@router.post("/{canteen_id}/toggle-status", response_model=Dict[str, Any])
async def toggle_canteen_status(
    canteen_id: str = Path(..., description="餐厅ID"),
    current_user: TokenData = Depends(get_current_user),
    canteen_ops: CanteenOperations = Depends(get_canteen_operations)
):
    canteen = canteen_ops.toggle_canteen_status(canteen_id, current_user)
    state_text = "opened" if canteen["is_open"] else "closed"
    return create_success_response(
        data=dump(CanteenInfo, canteen),
        message=f"Canteen {state_text} successfully"
    )


@router.post("/{canteen_id}/menu", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    menu_request: CreateMenuItemRequest,
    canteen_id: str = Path(..., description="餐厅ID"),
    current_user: TokenData = Depends(get_current_user),
    canteen_ops: CanteenOperations = Depends(get_canteen_operations)
):
    """
    添加菜品（餐厅所有者或管理员）
    """
    menu_item = canteen_ops.create_menu_item(
        canteen_id, current_user,
        name=menu_request.name,
        description=menu_request.description,
        price=menu_request.price,
        stock=menu_request.stock
    )
    return create_success_response(
        data=dump(MenuItemInfo, menu_item),
        message="Menu item created successfully"
    )


@router.get("/{canteen_id}/menu", response_model=Dict[str, Any])
async def get_menu_items(
    canteen_id: str = Path(..., description="餐厅ID"),
    canteen_ops: CanteenOperations = Depends(get_canteen_operations)
):
    menu_items = canteen_ops.list_menu_items(canteen_id)
    return create_success_response(
        data=dump(MenuItemInfo, menu_items),
        message="Menu items retrieved successfully"
    )


@router.put("/{canteen_id}/menu/{menu_item_id}", response_model=Dict[str, Any])
async def update_menu_item(
    menu_request: UpdateMenuItemRequest,
    canteen_id: str = Path(..., description="餐厅ID"),
    menu_item_id: str = Path(..., description="菜品ID"),
    current_user: TokenData = Depends(get_current_user),
    canteen_ops: CanteenOperations = Depends(get_canteen_operations)
):
    menu_item = canteen_ops.update_menu_item(
        menu_item_id, canteen_id, current_user,
        **menu_request.model_dump(exclude_none=True)
    )
    return create_success_response(
        data=dump(MenuItemInfo, menu_item),
        message="Menu item updated successfully"
    )


@router.delete("/{canteen_id}/menu/{menu_item_id}", response_model=Dict[str, Any])
async def delete_menu_item(
    canteen_id: str = Path(..., description="餐厅ID"),
    menu_item_id: str = Path(..., description="菜品ID"),
    current_user: TokenData = Depends(get_current_user),
    canteen_ops: CanteenOperations = Depends(get_canteen_operations)
):
    result = canteen_ops.delete_menu_item(menu_item_id, canteen_id, current_user)
    logger.info(f"用户 {current_user.user_id} 删除菜品 {menu_item_id}")
    return create_success_response(message=result["message"])
