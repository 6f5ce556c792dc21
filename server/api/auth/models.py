# 认证相关的数据模型

from typing import Optional
from pydantic import BaseModel, Field

from api.models import CamelModel


class RegisterRequest(CamelModel):
    """注册请求模型（密码强度和邮箱域名在业务层校验）"""
    username: str = Field(..., description="用户名，3-30位字母数字下划线")
    email: str = Field(..., max_length=254, description="校园邮箱")
    password: str = Field(..., min_length=1, max_length=128, description="密码")


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1, description="邮箱")
    password: str = Field(..., min_length=1, description="密码")


class RefreshTokenRequest(CamelModel):
    """刷新令牌/退出登录请求模型"""
    refresh_token: str = Field(..., min_length=1, description="刷新令牌")


class UserInfo(CamelModel):
    """用户信息模型"""
    id: str
    email: str
    username: str
    role: str
    created_at: str
    updated_at: Optional[str] = None


class LoginResponse(CamelModel):
    """登录响应模型"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class RefreshTokenResponse(CamelModel):
    """刷新Token响应模型"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserInfo


class TokenData(BaseModel):
    """JWT Token数据模型（当前请求的身份）"""
    user_id: str
    email: str
    role: str
