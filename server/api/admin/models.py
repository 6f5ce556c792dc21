# 管理员相关的数据模型

from typing import List, Literal, Optional
from pydantic import Field

from api.models import CamelModel
from api.auth.models import UserInfo

UserRole = Literal["USER", "CANTEEN_OWNER", "ADMIN"]


class CreateUserRequest(CamelModel):
    """管理员创建用户请求模型"""
    username: str = Field(..., description="用户名")
    email: str = Field(..., max_length=254, description="邮箱")
    password: str = Field(..., min_length=1, max_length=128, description="初始密码")
    role: UserRole = Field(..., description="角色")


class UpdateUserRequest(CamelModel):
    username: Optional[str] = None
    email: Optional[str] = Field(None, max_length=254)
    role: Optional[UserRole] = None


class AddDomainRequest(CamelModel):
    domain: str = Field(..., min_length=3, max_length=253, description="邮箱域名，如 campus.edu")


class EmailDomainInfo(CamelModel):
    id: str
    domain: str
    created_at: str


class OwnedCanteenInfo(CamelModel):
    id: str
    name: str
    is_open: bool


class CanteenOwnerInfo(UserInfo):
    """餐厅所有者信息模型（含名下餐厅）"""
    canteens: List[OwnedCanteenInfo] = Field(default_factory=list)
