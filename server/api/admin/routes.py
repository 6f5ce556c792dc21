# 管理员相关API路由：用户管理、餐厅所有者、邮箱域名白名单

import logging
from typing import Dict, Any
from fastapi import APIRouter, Depends, Query, Path, status

from .models import (
    CreateUserRequest, UpdateUserRequest, AddDomainRequest,
    EmailDomainInfo, CanteenOwnerInfo
)
from api.auth.routes import get_admin_user, get_supporting_operations
from api.auth.models import TokenData, UserInfo
from api.models import dump, dump_page
from db.supporting_operations import SupportingOperations
from utils.response import create_success_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["管理员"])


# ===== 用户管理 =====

@router.post("/users", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_user(
    user_request: CreateUserRequest,
    current_admin: TokenData = Depends(get_admin_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    创建用户（可指定角色），邮箱域名同样需要在白名单中
    """
    user = support_ops.create_user(
        username=user_request.username,
        email=user_request.email,
        password=user_request.password,
        role=user_request.role
    )
    logger.info(f"管理员 {current_admin.user_id} 创建用户 {user['id']}")
    return create_success_response(data=dump(UserInfo, user), message="User created successfully")


@router.get("/users", response_model=Dict[str, Any])
async def get_users(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(10, ge=1, le=100, description="每页条数"),
    current_admin: TokenData = Depends(get_admin_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    result = support_ops.list_users(page=page, limit=limit)
    return create_success_response(
        data=dump_page(UserInfo, result["users"], "users", result["pagination"]),
        message="Users retrieved successfully"
    )


@router.get("/users/{user_id}", response_model=Dict[str, Any])
async def get_user(
    user_id: str = Path(..., description="用户ID"),
    current_admin: TokenData = Depends(get_admin_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    user = support_ops.get_user_by_id(user_id)
    return create_success_response(data=dump(UserInfo, user), message="User retrieved successfully")


@router.put("/users/{user_id}", response_model=Dict[str, Any])
async def update_user(
    user_request: UpdateUserRequest,
    user_id: str = Path(..., description="用户ID"),
    current_admin: TokenData = Depends(get_admin_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    更新用户名、邮箱或角色
    """
    user = support_ops.update_user(
        user_id,
        username=user_request.username,
        email=user_request.email,
        role=user_request.role
    )
    return create_success_response(data=dump(UserInfo, user), message="User updated successfully")


@router.delete("/users/{user_id}", response_model=Dict[str, Any])
async def delete_user(
    user_id: str = Path(..., description="用户ID"),
    current_admin: TokenData = Depends(get_admin_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    """
    删除用户，级联删除其餐厅、订单和评价
    """
    result = support_ops.delete_user(user_id)
    logger.info(f"管理员 {current_admin.user_id} 删除用户 {user_id}")
    return create_success_response(message=result["message"])


@router.get("/canteen-owners", response_model=Dict[str, Any])
async def get_canteen_owners(
    page: int = Query(1, ge=1, description="页码"),
    limit: int = Query(10, ge=1, le=100, description="每页条数"),
    current_admin: TokenData = Depends(get_admin_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    result = support_ops.list_canteen_owners(page=page, limit=limit)
    return create_success_response(
        data=dump_page(CanteenOwnerInfo, result["owners"], "owners", result["pagination"]),
        message="Canteen owners retrieved successfully"
    )


# ===== 邮箱域名白名单 =====

@router.get("/email-domains", response_model=Dict[str, Any])
async def get_email_domains(
    current_admin: TokenData = Depends(get_admin_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    domains = support_ops.list_email_domains()
    return create_success_response(
        data=dump(EmailDomainInfo, domains),
        message="Email domains retrieved successfully"
    )


@router.post("/email-domains", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def add_email_domain(
    domain_request: AddDomainRequest,
    current_admin: TokenData = Depends(get_admin_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    domain = support_ops.add_email_domain(domain_request.domain)
    return create_success_response(
        data=dump(EmailDomainInfo, domain),
        message="Email domain added successfully"
    )


@router.delete("/email-domains/{domain_id}", response_model=Dict[str, Any])
async def delete_email_domain(
    domain_id: str = Path(..., description="域名ID"),
    current_admin: TokenData = Depends(get_admin_user),
    support_ops: SupportingOperations = Depends(get_supporting_operations)
):
    result = support_ops.delete_email_domain(domain_id)
    return create_success_response(message=result["message"])
