# 管理员模块

from .routes import router as admin_router
from .models import CreateUserRequest, UpdateUserRequest, AddDomainRequest

__all__ = [
    "admin_router",
    "CreateUserRequest",
    "UpdateUserRequest",
    "AddDomainRequest"
]
