# 查询业务操作：订单详情、用户订单分页、餐厅订单与评价
# 返回字典中的金额字段均为 Decimal，由API层序列化为字符串

from typing import List, Optional, Dict, Any
from .manager import DatabaseManager
from utils.access_policy import require_canteen_manager
from utils.errors import NotFoundError, ValidationError
from utils.money import from_cents
from utils.response import build_pagination
from utils.validators import validate_order_status, validate_payment_status

ORDER_COLUMNS = """
    o.id, o.user_id, o.canteen_id, o.total_price_cents, o.status, o.payment_status,
    o.created_at, o.updated_at, c.name AS canteen_name, u.username AS username
"""

ORDER_FROM = """
    FROM orders o
    JOIN canteens c ON c.id = o.canteen_id
    JOIN users u ON u.id = o.user_id
"""


class QueryOperations:
    """
    查询业务操作类
    """
    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def _validate_pagination(self, page: int, limit: int, max_limit: int):
        """验证分页参数"""
        if page < 1:
            raise ValidationError("Page must be at least 1")
        if limit <= 0 or limit > max_limit:
            raise ValidationError(f"Limit must be between 1 and {max_limit}")

    def _placeholders(self, values: List[Any]) -> str:
        return ','.join(['?' for _ in values])

    def _format_item(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": row['id'],
            "menu_item_id": row['menu_item_id'],
            "name": row['name'],
            "quantity": row['quantity'],
            "unit_price": from_cents(row['unit_price_cents']),
            "subtotal": from_cents(row['subtotal_cents'])
        }

    def _format_payment(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": row['id'],
            "order_id": row['order_id'],
            "amount": from_cents(row['amount_cents']),
            "status": row['status'],
            "created_at": row['created_at']
        }

    def _format_review(self, row: Dict[str, Any]) -> Dict[str, Any]:
        review = {
            "id": row['id'],
            "order_id": row['order_id'],
            "user_id": row['user_id'],
            "rating": row['rating'],
            "comment": row['comment'],
            "created_at": row['created_at']
        }
        if 'username' in row.keys():
            review["username"] = row['username']
        return review

    def _format_order(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": row['id'],
            "user_id": row['user_id'],
            "username": row['username'],
            "canteen_id": row['canteen_id'],
            "canteen_name": row['canteen_name'],
            "total_price": from_cents(row['total_price_cents']),
            "status": row['status'],
            "payment_status": row['payment_status'],
            "created_at": row['created_at'],
            "updated_at": row['updated_at'],
            "items": [],
            "payment": None,
            "review": None
        }

    def _attach_details(self, orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """批量加载订单明细、付款记录和评价，避免逐单查询"""
        if not orders:
            return orders

        by_id = {order['id']: order for order in orders}
        order_ids = list(by_id.keys())
        placeholders = self._placeholders(order_ids)

        items = self.db.conn.execute(f"""
            SELECT id, order_id, menu_item_id, name, quantity, unit_price_cents, subtotal_cents
            FROM order_items
            WHERE order_id IN ({placeholders})
            ORDER BY rowid
        """, order_ids).fetchall()
        for row in items:
            by_id[row['order_id']]['items'].append(self._format_item(row))

        payments = self.db.conn.execute(f"""
            SELECT id, order_id, amount_cents, status, created_at
            FROM payments WHERE order_id IN ({placeholders})
        """, order_ids).fetchall()
        for row in payments:
            by_id[row['order_id']]['payment'] = self._format_payment(row)

        reviews = self.db.conn.execute(f"""
            SELECT id, order_id, user_id, rating, comment, created_at
            FROM reviews WHERE order_id IN ({placeholders})
        """, order_ids).fetchall()
        for row in reviews:
            by_id[row['order_id']]['review'] = self._format_review(row)

        return orders

    def _verify_canteen_exists(self, canteen_id: str) -> Dict[str, Any]:
        canteen = self.db.fetch_one(
            "SELECT id, name, owner_id, is_open FROM canteens WHERE id = ?", [canteen_id]
        )
        if not canteen:
            raise NotFoundError("Canteen not found")
        return canteen

    # 1. 订单详情
    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        """
        查询单个订单，包含明细、付款记录和评价

        Returns:
            订单字典，不存在时返回None
        """
        row = self.db.conn.execute(f"""
            SELECT {ORDER_COLUMNS} {ORDER_FROM}
            WHERE o.id = ?
        """, [order_id]).fetchone()

        if not row:
            return None

        return self._attach_details([self._format_order(row)])[0]

    # 2. 评价详情
    def get_review(self, review_id: str) -> Optional[Dict[str, Any]]:
        row = self.db.conn.execute("""
            SELECT r.id, r.order_id, r.user_id, r.rating, r.comment, r.created_at,
                   u.username AS username
            FROM reviews r
            JOIN users u ON u.id = r.user_id
            WHERE r.id = ?
        """, [review_id]).fetchone()
        return self._format_review(row) if row else None

    # 3. 用户订单列表
    def query_user_orders(self, user_id: str, page: int = 1, limit: int = 10,
                          status: Optional[str] = None,
                          payment_status: Optional[str] = None) -> Dict[str, Any]:
        """
        分页查询用户自己的订单，按创建时间倒序

        Args:
            user_id: 用户ID
            page: 页码，从1开始
            limit: 每页条数，最大100
            status: 可选，按订单状态过滤
            payment_status: 可选，按付款状态过滤

        Returns:
            {'orders': [...], 'pagination': {...}}
        """
        self._validate_pagination(page, limit, 100)

        conditions = ["o.user_id = ?"]
        params: List[Any] = [user_id]

        if status is not None:
            if not validate_order_status(status):
                raise ValidationError("Invalid order status")
            conditions.append("o.status = ?")
            params.append(status)

        if payment_status is not None:
            if not validate_payment_status(payment_status):
                raise ValidationError("Invalid payment status")
            conditions.append("o.payment_status = ?")
            params.append(payment_status)

        where_clause = " AND ".join(conditions)

        total_count = self.db.conn.execute(
            f"SELECT COUNT(*) FROM orders o WHERE {where_clause}", params
        ).fetchone()[0]

        rows = self.db.conn.execute(f"""
            SELECT {ORDER_COLUMNS} {ORDER_FROM}
            WHERE {where_clause}
            ORDER BY o.created_at DESC, o.rowid DESC
            LIMIT ? OFFSET ?
        """, params + [limit, (page - 1) * limit]).fetchall()

        orders = self._attach_details([self._format_order(row) for row in rows])

        return {
            "orders": orders,
            "pagination": build_pagination(total_count, page, limit)
        }

    # 4. 餐厅订单列表（店家视角）
    def query_canteen_orders(self, canteen_id: str, actor: Any,
                             status: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        查询餐厅的全部订单，仅餐厅所有者或管理员可见
        """
        canteen = self._verify_canteen_exists(canteen_id)
        require_canteen_manager(actor, canteen, "view canteen orders")

        params: List[Any] = [canteen_id]
        status_clause = ""
        if status is not None:
            if not validate_order_status(status):
                raise ValidationError("Invalid order status")
            status_clause = "AND o.status = ?"
            params.append(status)

        rows = self.db.conn.execute(f"""
            SELECT {ORDER_COLUMNS} {ORDER_FROM}
            WHERE o.canteen_id = ? {status_clause}
            ORDER BY o.created_at DESC, o.rowid DESC
        """, params).fetchall()

        return self._attach_details([self._format_order(row) for row in rows])

    # 5. 餐厅评价列表（公开）
    def query_canteen_reviews(self, canteen_id: str) -> List[Dict[str, Any]]:
        self._verify_canteen_exists(canteen_id)

        rows = self.db.conn.execute("""
            SELECT r.id, r.order_id, r.user_id, r.rating, r.comment, r.created_at,
                   u.username AS username
            FROM reviews r
            JOIN orders o ON o.id = r.order_id
            JOIN users u ON u.id = r.user_id
            WHERE o.canteen_id = ?
            ORDER BY r.created_at DESC, r.rowid DESC
        """, [canteen_id]).fetchall()

        return [self._format_review(row) for row in rows]
