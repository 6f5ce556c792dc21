# 金额工具
# 数据库中金额以整数"分"存储，业务层统一使用 Decimal，禁止浮点运算

from decimal import Decimal, InvalidOperation
from typing import Any

CENT = Decimal('0.01')


def to_decimal(value: Any) -> Decimal:
    """
    转换为 Decimal；float 先转字符串，避免二进制误差被带入
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value}")


def to_cents(amount: Any) -> int:
    """
    元 -> 分。金额小数位超过两位时无法精确表示，直接报错而不是四舍五入

    Raises:
        ValueError: 金额非法或精度超过分
    """
    amount = to_decimal(amount)
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {amount}")

    cents = amount * 100
    if cents != cents.to_integral_value():
        raise ValueError(f"Amount {amount} has more than two decimal places")
    return int(cents)


def from_cents(cents: int) -> Decimal:
    """分 -> 元，固定两位小数"""
    return Decimal(int(cents)).scaleb(-2).quantize(CENT)


def format_amount(amount: Decimal) -> str:
    return str(amount.quantize(CENT))
