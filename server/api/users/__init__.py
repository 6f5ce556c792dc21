# 用户模块

from .routes import router as users_router
from .models import UpdateProfileRequest, ChangePasswordRequest

__all__ = [
    "users_router",
    "UpdateProfileRequest",
    "ChangePasswordRequest"
]
