# 访问策略
# 纯函数判断 (用户, 角色) 能否操作某个餐厅/订单/评价；require_* 版本在失败时抛出 ForbiddenError
#
# actor 需要提供 user_id 和 role 属性（api.auth.models.TokenData 或同形对象）
# canteen / order 为数据库操作层返回的字典

from collections import namedtuple
from typing import Any, Dict

from utils.errors import ForbiddenError

ROLE_USER = 'USER'
ROLE_CANTEEN_OWNER = 'CANTEEN_OWNER'
ROLE_ADMIN = 'ADMIN'

CANTEEN_CREATOR_ROLES = (ROLE_CANTEEN_OWNER, ROLE_ADMIN)

# 数据库操作层直接使用的最小身份对象
Actor = namedtuple('Actor', ['user_id', 'role'])


def is_admin(actor: Any) -> bool:
    return actor.role == ROLE_ADMIN


def can_manage_canteen(actor: Any, canteen: Dict[str, Any]) -> bool:
    """餐厅所有者或管理员"""
    return actor.user_id == canteen['owner_id'] or is_admin(actor)


def is_order_owner(actor: Any, order: Dict[str, Any]) -> bool:
    """下单用户本人（付款、评价）"""
    return actor.user_id == order['user_id']


def can_manage_order(actor: Any, order: Dict[str, Any], canteen: Dict[str, Any]) -> bool:
    """
    订单的店家侧操作（更新状态、删除评价）只看餐厅归属
    """
    return order['canteen_id'] == canteen['id'] and can_manage_canteen(actor, canteen)


def can_create_canteen(actor: Any) -> bool:
    return actor.role in CANTEEN_CREATOR_ROLES


def require_admin(actor: Any, message: str = "Admin access required") -> None:
    if not is_admin(actor):
        raise ForbiddenError(message)


def require_canteen_manager(actor: Any, canteen: Dict[str, Any], action: str = "manage this canteen") -> None:
    if not can_manage_canteen(actor, canteen):
        raise ForbiddenError(f"Only the canteen owner or admin can {action}")


def require_order_owner(actor: Any, order: Dict[str, Any], action: str = "access this order") -> None:
    if not is_order_owner(actor, order):
        raise ForbiddenError(f"You can only {action} your own orders")


def require_order_manager(actor: Any, order: Dict[str, Any], canteen: Dict[str, Any],
                          action: str = "manage this order") -> None:
    if not can_manage_order(actor, order, canteen):
        raise ForbiddenError(f"Only the canteen owner or admin can {action}")


def require_canteen_creator(actor: Any) -> None:
    if not can_create_canteen(actor):
        raise ForbiddenError("Only canteen owners or admins can create canteens")
