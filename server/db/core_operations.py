# 核心业务操作：下单、付款、订单状态流转、评价
# 组合操作均在单个事务中完成；库存扣减与付款状态切换依赖条件更新保证并发正确性

import logging
import sqlite3
import uuid
from typing import Any, Dict, List, Optional

from .manager import DatabaseManager
from .inventory import InventoryLedger
from .pricing import PricingCalculator
from .query_operations import QueryOperations
from utils.access_policy import Actor, require_order_manager, require_order_owner
from utils.cache import CacheKeys, CacheService
from utils.errors import (
    AlreadyPaidError, AlreadyReviewedError, AmountMismatchError, BusinessRuleViolation,
    CanteenClosedError, InvalidStatusTransitionError, NotFoundError, OrderNotCompletedError,
    PaymentIncompleteError, ValidationError
)
from utils.money import format_amount, from_cents, to_cents, to_decimal
from utils.validators import (
    MAX_QUANTITY, validate_order_status, validate_quantity, validate_rating, validate_string_length
)

logger = logging.getLogger(__name__)

# 订单状态只能逐级前进
NEXT_STATUS = {
    'WAITING': 'COOKING',
    'COOKING': 'READY',
    'READY': 'COMPLETED'
}

NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


def _new_id() -> str:
    return str(uuid.uuid4())


class CoreOperations:
    """
    订单生命周期管理
    """
    def __init__(self, db_manager: DatabaseManager, cache: Optional[CacheService] = None):
        self.db = db_manager
        self.cache = cache
        self.inventory = InventoryLedger(db_manager)
        self.pricing = PricingCalculator()
        self.query = QueryOperations(db_manager)

    # 公共验证函数
    def _get_canteen(self, canteen_id: str) -> Optional[Dict[str, Any]]:
        row = self.db.conn.execute(
            "SELECT id, name, owner_id, is_open FROM canteens WHERE id = ?",
            [canteen_id]
        ).fetchone()
        return dict(row) if row else None

    def _get_order_row(self, order_id: str) -> Optional[Dict[str, Any]]:
        row = self.db.conn.execute("""
            SELECT id, user_id, canteen_id, total_price_cents, status, payment_status
            FROM orders WHERE id = ?
        """, [order_id]).fetchone()
        return dict(row) if row else None

    def _verify_order_exists(self, order_id: str) -> Dict[str, Any]:
        order = self._get_order_row(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def _normalize_items(self, items: List[Any]) -> List[tuple]:
        """
        接受 [{'menu_item_id': ..., 'quantity': ...}] 或 [(menu_item_id, quantity)]
        """
        if not items:
            raise ValidationError("At least one item must be ordered")

        normalized = []
        for item in items:
            if isinstance(item, dict):
                menu_item_id, quantity = item.get('menu_item_id'), item.get('quantity')
            else:
                menu_item_id, quantity = item

            if not menu_item_id:
                raise ValidationError("Menu item ID is required")
            if not validate_quantity(quantity):
                raise ValidationError(f"Quantity must be between 1 and {MAX_QUANTITY}")

            normalized.append((menu_item_id, quantity))
        return normalized

    def _load_menu_items(self, menu_item_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """一次查询批量读取菜品"""
        unique_ids = list(dict.fromkeys(menu_item_ids))
        placeholders = ','.join(['?' for _ in unique_ids])
        rows = self.db.conn.execute(f"""
            SELECT id, canteen_id, name, price_cents, stock
            FROM menu_items WHERE id IN ({placeholders})
        """, unique_ids).fetchall()
        return {row['id']: dict(row) for row in rows}

    def _invalidate(self, keys: List[str]):
        if self.cache is not None:
            self.cache.delete_keys(keys)

    # 用户下单
    def create_order(self, user_id: str, canteen_id: str, items: List[Any]) -> Dict[str, Any]:
        """
        创建订单：校验餐厅、批量读取菜品、计价、逐项扣减库存、写入订单与明细

        Args:
            user_id: 下单用户ID
            canteen_id: 餐厅ID
            items: 菜品及数量列表

        Returns:
            订单详情（status=WAITING, payment_status=UNPAID）
        """
        requested = self._normalize_items(items)

        def create_order_operation():
            canteen = self._get_canteen(canteen_id)
            if not canteen:
                raise BusinessRuleViolation("Canteen not found")
            if not canteen['is_open']:
                raise CanteenClosedError("Canteen is currently closed")

            menu_items = self._load_menu_items([menu_item_id for menu_item_id, _ in requested])
            for menu_item_id, _ in requested:
                item = menu_items.get(menu_item_id)
                if item is None:
                    raise BusinessRuleViolation(f"Menu item {menu_item_id} not found")
                if item['canteen_id'] != canteen_id:
                    raise BusinessRuleViolation(f"Menu item {menu_item_id} does not belong to this canteen")

            priced = self.pricing.price_lines(requested, menu_items)

            for line in priced.lines:
                self.inventory.reserve(line.menu_item_id, line.quantity)

            order_id = _new_id()
            self.db.conn.execute("""
                INSERT INTO orders (id, user_id, canteen_id, total_price_cents, status, payment_status)
                VALUES (?, ?, ?, ?, 'WAITING', 'UNPAID')
            """, [order_id, user_id, canteen_id, to_cents(priced.total)])

            self.db.conn.executemany("""
                INSERT INTO order_items (id, order_id, menu_item_id, name, quantity,
                                         unit_price_cents, subtotal_cents)
                VALUES (?, ?, ?, ?, ?, ?, ?)
            """, [
                [_new_id(), order_id, line.menu_item_id, line.name, line.quantity,
                 to_cents(line.unit_price), to_cents(line.subtotal)]
                for line in priced.lines
            ])

            logger.info(f"订单 {order_id} 创建成功: 用户 {user_id}, 餐厅 {canteen_id}, "
                        f"金额 {format_amount(priced.total)}")
            return order_id

        order_id = self.db.execute_transaction([create_order_operation])[0]

        # 库存变化，提交后失效菜单相关缓存
        self._invalidate(CacheKeys.for_canteen(canteen_id))

        return self.query.get_order(order_id)

    # 用户付款
    def make_payment(self, order_id: str, payer_id: str, amount: Any) -> Dict[str, Any]:
        """
        订单付款：金额必须与订单总价精确相等，订单只能付款一次

        Args:
            order_id: 订单ID
            payer_id: 付款用户ID（必须是下单用户）
            amount: 付款金额（Decimal/字符串）

        Returns:
            {'payment': 付款记录, 'order': 更新后的订单}
        """
        try:
            amount = to_decimal(amount)
        except ValueError:
            raise ValidationError("Invalid amount")
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("Amount must be greater than 0")

        def payment_operation():
            order = self._get_order_row(order_id)
            if not order:
                raise BusinessRuleViolation("Order not found")

            require_order_owner(Actor(payer_id, None), order, "pay for")

            if order['payment_status'] == 'PAID':
                raise AlreadyPaidError("Order has already been paid")

            expected = from_cents(order['total_price_cents'])
            if amount != expected:
                raise AmountMismatchError(
                    f"Amount mismatch. Expected: {format_amount(expected)}, Received: {amount}"
                )

            # 条件更新：并发付款只有一个能把 UNPAID 改为 PAID
            cursor = self.db.conn.execute(f"""
                UPDATE orders
                SET payment_status = 'PAID', updated_at = {NOW_SQL}
                WHERE id = ? AND payment_status = 'UNPAID'
            """, [order_id])
            if cursor.rowcount != 1:
                raise AlreadyPaidError("Order has already been paid")

            payment_id = _new_id()
            self.db.conn.execute("""
                INSERT INTO payments (id, order_id, amount_cents, status)
                VALUES (?, ?, ?, 'PAID')
            """, [payment_id, order_id, order['total_price_cents']])

            logger.info(f"订单 {order_id} 付款成功，金额 {format_amount(expected)}")
            return payment_id

        self.db.execute_transaction([payment_operation])

        order = self.query.get_order(order_id)
        return {
            'payment': order['payment'],
            'order': order
        }

    # 店家更新订单状态
    def update_order_status(self, order_id: str, actor: Any, new_status: str) -> Dict[str, Any]:
        """
        更新订单状态：仅餐厅所有者或管理员，订单必须已付款，且只能前进到下一个状态

        Args:
            order_id: 订单ID
            actor: 操作者（user_id, role）
            new_status: 目标状态
        """
        if not validate_order_status(new_status):
            raise ValidationError("Invalid order status")

        def update_status_operation():
            order = self._verify_order_exists(order_id)
            canteen = self._get_canteen(order['canteen_id'])

            require_order_manager(actor, order, canteen, "update order status")

            if order['payment_status'] != 'PAID':
                raise PaymentIncompleteError("Cannot update status: Order payment is not completed")

            current = order['status']
            if NEXT_STATUS.get(current) != new_status:
                raise InvalidStatusTransitionError(
                    f"Invalid status transition from {current} to {new_status}"
                )

            cursor = self.db.conn.execute(f"""
                UPDATE orders
                SET status = ?, updated_at = {NOW_SQL}
                WHERE id = ? AND status = ? AND payment_status = 'PAID'
            """, [new_status, order_id, current])
            if cursor.rowcount != 1:
                raise InvalidStatusTransitionError(
                    f"Invalid status transition from {current} to {new_status}"
                )

            logger.info(f"订单 {order_id} 状态 {current} -> {new_status}，操作者 {actor.user_id}")

        self.db.execute_transaction([update_status_operation])
        return self.query.get_order(order_id)

    # 用户评价
    def create_review(self, order_id: str, reviewer_id: str, rating: int, comment: str) -> Dict[str, Any]:
        """
        评价订单：仅下单用户、仅已完成订单、每个订单一条
        """
        if not validate_rating(rating):
            raise ValidationError("Rating must be an integer between 1 and 5")
        if not validate_string_length(comment, 10, 500):
            raise ValidationError("Comment must be between 10 and 500 characters")

        def create_review_operation():
            order = self._verify_order_exists(order_id)

            require_order_owner(Actor(reviewer_id, None), order, "review")

            if order['status'] != 'COMPLETED':
                raise OrderNotCompletedError("You can only review completed orders")

            existing = self.db.conn.execute(
                "SELECT id FROM reviews WHERE order_id = ?", [order_id]
            ).fetchone()
            if existing:
                raise AlreadyReviewedError("You have already reviewed this order")

            review_id = _new_id()
            try:
                self.db.conn.execute("""
                    INSERT INTO reviews (id, order_id, user_id, rating, comment)
                    VALUES (?, ?, ?, ?, ?)
                """, [review_id, order_id, reviewer_id, int(rating), comment])
            except sqlite3.IntegrityError:
                raise AlreadyReviewedError("You have already reviewed this order")

            return review_id

        review_id = self.db.execute_transaction([create_review_operation])[0]
        return self.query.get_review(review_id)

    # 店家/管理员删除评价
    def delete_review(self, review_id: str, actor: Any) -> Dict[str, Any]:
        """
        删除评价：仅订单所属餐厅的所有者或管理员
        """
        def delete_review_operation():
            review = self.db.conn.execute(
                "SELECT id, order_id FROM reviews WHERE id = ?", [review_id]
            ).fetchone()
            if not review:
                raise NotFoundError("Review not found")

            order = self._verify_order_exists(review['order_id'])
            canteen = self._get_canteen(order['canteen_id'])
            require_order_manager(actor, order, canteen, "delete reviews")

            self.db.conn.execute("DELETE FROM reviews WHERE id = ?", [review_id])
            logger.info(f"评价 {review_id} 已被 {actor.user_id} 删除")

            return {
                'review_id': review_id,
                'order_id': review['order_id'],
                'message': 'Review deleted successfully'
            }

        return self.db.execute_transaction([delete_review_operation])[0]
