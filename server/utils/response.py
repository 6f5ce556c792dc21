# 统一API响应格式工具

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def create_success_response(
    data: Any = None,
    message: str = "Success"
) -> Dict[str, Any]:
    """
    创建成功响应

    Args:
        data: 响应数据
        message: 成功消息

    Returns:
        标准格式的成功响应
    """
    return {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _timestamp()
    }


def create_error_response(
    message: str,
    errors: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """
    创建错误响应

    Args:
        message: 错误描述信息
        errors: 可选的字段级错误列表
    """
    response = {
        "success": False,
        "message": message,
        "timestamp": _timestamp()
    }
    if errors:
        response["errors"] = errors
    return response


def build_pagination(total_count: int, current_page: int, per_page: int) -> Dict[str, Any]:
    """分页元数据"""
    total_pages = (total_count + per_page - 1) // per_page  # 向上取整
    return {
        "total_count": total_count,
        "current_page": current_page,
        "per_page": per_page,
        "total_pages": total_pages,
        "has_next": current_page < total_pages,
        "has_prev": current_page > 1
    }
