# 数据验证器

import re
from decimal import Decimal
from typing import Any, Optional

USER_ROLES = ('USER', 'CANTEEN_OWNER', 'ADMIN')
ORDER_STATUSES = ('WAITING', 'COOKING', 'READY', 'COMPLETED')
PAYMENT_STATUSES = ('UNPAID', 'PAID')

# 数值上限：SQLite INTEGER 为64位，超出会在写库时抛 OverflowError
MAX_QUANTITY = 1_000_000
MAX_STOCK = 1_000_000
MAX_PRICE = Decimal('100000.00')

EMAIL_PATTERN = re.compile(r'^[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$')
USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_]+$')
DOMAIN_PATTERN = re.compile(r'^[a-zA-Z0-9][a-zA-Z0-9-]*\.[a-zA-Z]{2,}(\.[a-zA-Z]{2,})?$')


def validate_email(email: str) -> bool:
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_PATTERN.match(email))


def email_domain(email: str) -> Optional[str]:
    """
    提取邮箱域名（小写）

    Returns:
        域名，格式不正确时返回None
    """
    parts = email.lower().split('@')
    if len(parts) != 2 or not parts[1]:
        return None
    return parts[1]


def validate_username(username: str) -> bool:
    """
    用户名: 3-30位字母、数字、下划线
    """
    if not validate_string_length(username, 3, 30):
        return False
    return bool(USERNAME_PATTERN.match(username))


def password_problems(password: str) -> list:
    """
    检查密码强度

    Returns:
        不满足的规则描述列表，为空表示通过
    """
    problems = []
    if len(password) < 8:
        problems.append('Password must be at least 8 characters')
    if not re.search(r'[A-Z]', password):
        problems.append('Password must contain at least one uppercase letter')
    if not re.search(r'[a-z]', password):
        problems.append('Password must contain at least one lowercase letter')
    if not re.search(r'[0-9]', password):
        problems.append('Password must contain at least one number')
    return problems


def validate_domain(domain: str) -> bool:
    if not validate_string_length(domain, 3, 253):
        return False
    return bool(DOMAIN_PATTERN.match(domain))


def validate_price(price: Any) -> bool:
    """
    价格必须为正数、不超过 MAX_PRICE 且最多两位小数
    """
    try:
        value = Decimal(str(price))
    except Exception:
        return False
    if not value.is_finite() or value <= 0 or value > MAX_PRICE:
        return False
    return value == value.quantize(Decimal('0.01'))


def validate_quantity(value: Any) -> bool:
    """下单数量: 1..MAX_QUANTITY 的整数"""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 0 < value <= MAX_QUANTITY


def validate_non_negative_integer(value: Any, maximum: Optional[int] = None) -> bool:
    if isinstance(value, bool):
        return False
    try:
        if int(value) < 0 or int(value) != value:
            return False
    except (ValueError, TypeError, OverflowError):
        return False
    return maximum is None or int(value) <= maximum


def validate_string_length(value: str, min_length: int = 0, max_length: Optional[int] = None) -> bool:
    if not isinstance(value, str):
        return False

    if len(value) < min_length:
        return False

    if max_length is not None and len(value) > max_length:
        return False

    return True


def validate_user_role(role: str) -> bool:
    return role in USER_ROLES


def validate_order_status(status: str) -> bool:
    return status in ORDER_STATUSES


def validate_payment_status(status: str) -> bool:
    return status in PAYMENT_STATUSES


def validate_rating(rating: Any) -> bool:
    if not validate_positive_integer(rating):
        return False
    return 1 <= int(rating) <= 5
