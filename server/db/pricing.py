# 订单计价
# 只使用同一事务内读取的菜品标价计算，从不接受客户端提交的价格

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Sequence, Tuple

from utils.errors import ValidationError
from utils.money import from_cents


@dataclass(frozen=True)
class PricedLine:
    """一行订单明细的冻结价格"""
    menu_item_id: str
    name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


@dataclass(frozen=True)
class PricedOrder:
    lines: Tuple[PricedLine, ...]
    total: Decimal


class PricingCalculator:
    """
    小计 = 标价 × 数量，总价 = 小计之和，全程 Decimal 精确计算
    """

    def price_lines(self, requested: Sequence[Tuple[str, int]],
                    menu_items: Dict[str, Dict[str, Any]]) -> PricedOrder:
        """
        Args:
            requested: [(menu_item_id, quantity), ...]，保持请求顺序
            menu_items: {menu_item_id: 菜品行}，菜品行需含 name、price_cents

        Returns:
            PricedOrder
        """
        lines: List[PricedLine] = []
        total = Decimal('0.00')

        for menu_item_id, quantity in requested:
            if quantity <= 0:
                raise ValidationError("Quantity must be greater than 0")

            item = menu_items.get(menu_item_id)
            if item is None:
                raise ValidationError(f"Menu item {menu_item_id} not found")

            unit_price = from_cents(item['price_cents'])
            subtotal = unit_price * quantity
            total += subtotal

            lines.append(PricedLine(
                menu_item_id=menu_item_id,
                name=item['name'],
                quantity=quantity,
                unit_price=unit_price,
                subtotal=subtotal
            ))

        return PricedOrder(lines=tuple(lines), total=total)
