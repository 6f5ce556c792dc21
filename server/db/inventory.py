# 库存台账
# 菜品库存只通过条件更新扣减：检查与扣减在同一条SQL中完成，不加显式锁

import logging

from .manager import DatabaseManager
from utils.errors import InsufficientStockError, NotFoundError, ValidationError
from utils.validators import MAX_QUANTITY, validate_quantity

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    菜品库存扣减

    reserve() 必须在调用方的事务中执行；失败时抛出异常，由 DatabaseManager
    回滚整个事务，因此一个订单不会只扣掉部分菜品的库存。
    没有释放库存的操作：下单即永久消耗。
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def reserve(self, menu_item_id: str, quantity: int) -> None:
        """
        条件扣减库存: stock = stock - quantity WHERE stock >= quantity

        Raises:
            ValidationError: quantity 不是 1..MAX_QUANTITY 的整数
            InsufficientStockError: 没有行被更新（库存不足）
            NotFoundError: 菜品不存在
        """
        if not validate_quantity(quantity):
            raise ValidationError(f"Quantity must be between 1 and {MAX_QUANTITY}")

        cursor = self.db.conn.execute("""
            UPDATE menu_items
            SET stock = stock - ?,
                updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
            WHERE id = ? AND stock >= ?
        """, [quantity, menu_item_id, quantity])

        if cursor.rowcount == 1:
            logger.debug(f"菜品 {menu_item_id} 库存扣减 {quantity}")
            return

        # 条件更新未命中：此时读到的库存仅用于错误信息
        row = self.db.conn.execute(
            "SELECT name, stock FROM menu_items WHERE id = ?", [menu_item_id]
        ).fetchone()

        if row is None:
            raise NotFoundError(f"Menu item {menu_item_id} not found")

        logger.info(f"菜品 {menu_item_id} 库存不足: 需要 {quantity}, 剩余 {row['stock']}")
        raise InsufficientStockError(f"Insufficient stock for {row['name']}. Available: {row['stock']}")

    def get_stock(self, menu_item_id: str) -> int:
        row = self.db.conn.execute(
            "SELECT stock FROM menu_items WHERE id = ?", [menu_item_id]
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Menu item {menu_item_id} not found")
        return row['stock']
