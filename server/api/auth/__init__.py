# 认证模块

from .routes import router as auth_router, get_current_user, get_database, get_admin_user
from .models import RegisterRequest, LoginRequest, LoginResponse, TokenData

__all__ = [
    "auth_router",
    "get_current_user",
    "get_database",
    "get_admin_user",
    "RegisterRequest",
    "LoginRequest",
    "LoginResponse",
    "TokenData"
]
