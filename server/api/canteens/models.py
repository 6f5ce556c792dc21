# 餐厅与菜单相关的数据模型

from decimal import Decimal
from typing import List, Optional
from pydantic import Field

from api.models import CamelModel
from utils.validators import MAX_PRICE, MAX_STOCK


class CreateCanteenRequest(CamelModel):
    """创建餐厅请求模型"""
    name: str = Field(..., min_length=3, max_length=100, description="餐厅名称")
    is_open: bool = Field(True, description="是否营业")


class UpdateCanteenRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=3, max_length=100, description="餐厅名称")
    is_open: Optional[bool] = Field(None, description="是否营业")


class CreateMenuItemRequest(CamelModel):
    """创建菜品请求模型，价格以字符串或数字提交，最多两位小数"""
    name: str = Field(..., min_length=2, max_length=100, description="菜品名称")
    description: str = Field(..., min_length=10, max_length=500, description="菜品描述")
    price: Decimal = Field(..., gt=0, le=MAX_PRICE, decimal_places=2, description="单价（元）")
    stock: int = Field(..., ge=0, le=MAX_STOCK, description="库存")


class UpdateMenuItemRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=500)
    price: Optional[Decimal] = Field(None, gt=0, le=MAX_PRICE, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0, le=MAX_STOCK)


class MenuItemInfo(CamelModel):
    """菜品信息模型"""
    id: str
    canteen_id: str
    name: str
    description: str
    price: Decimal
    stock: int
    created_at: str
    updated_at: str


class CanteenOwnerInfo(CamelModel):
    id: str
    username: str
    email: str


class CanteenInfo(CamelModel):
    """餐厅信息模型（含菜单）"""
    id: str
    name: str
    owner_id: str
    owner: CanteenOwnerInfo
    is_open: bool
    created_at: str
    updated_at: str
    menu_items: List[MenuItemInfo] = Field(default_factory=list)
