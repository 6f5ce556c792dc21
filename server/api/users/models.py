# 用户相关的数据模型

from typing import Optional
from pydantic import Field

from api.models import CamelModel


class UpdateProfileRequest(CamelModel):
    """更新个人资料请求模型，至少提供一个字段"""
    username: Optional[str] = Field(None, description="新用户名")
    email: Optional[str] = Field(None, max_length=254, description="新邮箱")


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, description="当前密码")
    new_password: str = Field(..., min_length=1, max_length=128, description="新密码")
