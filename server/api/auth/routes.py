# 认证相关API路由，以及各模块共用的依赖（数据库、当前用户、角色校验）

import logging
from typing import Dict, Any, Optional
from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from .models import (
    RegisterRequest, LoginRequest, RefreshTokenRequest, LoginResponse,
    RefreshTokenResponse, TokenData, UserInfo
)
from db.manager import DatabaseManager
from db.supporting_operations import SupportingOperations
from utils.access_policy import require_admin
from utils.errors import UnauthorizedError
from utils.response import create_success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["认证"])

security = HTTPBearer(auto_error=False)


def get_database(request: Request):
    """获取数据库连接（每个请求独立连接）"""
    config = request.app.state.config
    db_config = config.get_database_config()
    db_manager = DatabaseManager(db_config["path"], auto_connect=True, timeout=db_config.get("timeout", 5.0))
    try:
        yield db_manager
    finally:
        db_manager.close()


def get_supporting_operations(
    request: Request,
    db: DatabaseManager = Depends(get_database)
) -> SupportingOperations:
    state = request.app.state
    return SupportingOperations(
        db,
        cache=state.cache,
        password_manager=state.password_manager,
        jwt_manager=state.jwt_manager,
        refresh_token_expire_days=state.config.get("auth.refresh_token_expire_days", 7),
        domains_ttl=state.config.get("cache.domains_ttl", 300)
    )


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: DatabaseManager = Depends(get_database)
) -> TokenData:
    """
    获取当前用户信息

    令牌有效且用户仍存在时返回身份，角色以数据库中的当前值为准
    """
    if credentials is None:
        raise UnauthorizedError("Authentication required")

    payload = request.app.state.jwt_manager.verify_token(credentials.credentials)
    if not payload or "user_id" not in payload:
        raise UnauthorizedError("Invalid or expired token")

    row = db.fetch_one("SELECT id, email, role FROM users WHERE id = ?", [payload["user_id"]])
    if not row:
        raise UnauthorizedError("User no longer exists")

    return TokenData(user_id=row["id"], email=row["email"], role=row["role"])


def get_admin_user(current_user: TokenData = Depends(get_current_user)) -> TokenData:
    """获取管理员用户（仅管理员可访问）"""
    require_admin(current_user)
    return current_user


@router.post("/register", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def register(
    register_request: RegisterRequest,
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    用户注册，邮箱域名必须在白名单中
    """
    user = support_ops.register_user(
        username=register_request.username,
        email=register_request.email,
        password=register_request.password
    )
    return create_success_response(
        data=UserInfo.model_validate(user).to_json(),
        message="User registered successfully"
    )


@router.post("/login", response_model=Dict[str, Any])
async def login(
    login_request: LoginRequest,
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    登录，返回访问令牌和刷新令牌
    """
    result = support_ops.login_user(login_request.email, login_request.password)
    return create_success_response(
        data=LoginResponse.model_validate(result).to_json(),
        message="Login successful"
    )


@router.post("/refresh", response_model=Dict[str, Any])
async def refresh_token(
    refresh_request: RefreshTokenRequest,
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    使用刷新令牌换取新的访问令牌
    """
    result = support_ops.refresh_access_token(refresh_request.refresh_token)
    return create_success_response(
        data=RefreshTokenResponse.model_validate(result).to_json(),
        message="Token refreshed successfully"
    )


@router.post("/logout", response_model=Dict[str, Any])
async def logout(
    logout_request: RefreshTokenRequest,
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    result = support_ops.logout(logout_request.refresh_token)
    return create_success_response(message=result["message"])


@router.post("/logout-all", response_model=Dict[str, Any])
async def logout_all(
    current_user: TokenData = Depends(get_current_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    退出全部设备（撤销当前用户的所有刷新令牌）
    """
    result = support_ops.logout_all(current_user.user_id)
    return create_success_response(message=result["message"])
