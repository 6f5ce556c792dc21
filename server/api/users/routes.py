# 用户相关API路由

import logging
from typing import Dict, Any
from fastapi import APIRouter, Depends

from .models import UpdateProfileRequest, ChangePasswordRequest
from api.auth.routes import get_current_user, get_supporting_operations
from api.auth.models import TokenData, UserInfo
from db.supporting_operations import SupportingOperations
from utils.response import create_success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/users", tags=["用户"])


@router.get("/profile", response_model=Dict[str, Any])
async def get_user_profile(
    current_user: TokenData = Depends(get_current_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    获取当前用户资料
    """
    user = support_ops.get_user_by_id(current_user.user_id)
    return create_success_response(
        data=UserInfo.model_validate(user).to_json(),
        message="Profile retrieved successfully"
    )


@router.put("/profile", response_model=Dict[str, Any])
async def update_user_profile(
    profile_request: UpdateProfileRequest,
    current_user: TokenData = Depends(get_current_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    更新用户名和/或邮箱，新邮箱同样需要在域名白名单中
    """
    user = support_ops.update_profile(
        current_user.user_id,
        username=profile_request.username,
        email=profile_request.email
    )
    logger.info(f"用户 {current_user.user_id} 更新资料")
    return create_success_response(
        data=UserInfo.model_validate(user).to_json(),
        message="Profile updated successfully"
    )


@router.put("/password", response_model=Dict[str, Any])
async def change_password(
    password_request: ChangePasswordRequest,
    current_user: TokenData = Depends(get_current_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    修改密码，成功后所有刷新令牌失效
    """
    result = support_ops.change_password(
        current_user.user_id,
        password_request.current_password,
        password_request.new_password
    )
    return create_success_response(message=result["message"])
