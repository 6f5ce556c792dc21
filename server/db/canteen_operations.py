# 餐厅与菜单管理
# 读操作走缓存（get_or_set），写操作提交后失效相关key

import logging
import uuid
from typing import Any, Dict, List, Optional

from .manager import DatabaseManager
from utils.access_policy import require_canteen_creator, require_canteen_manager
from utils.cache import CacheKeys, CacheService
from utils.errors import BusinessRuleViolation, NotFoundError, ValidationError
from utils.money import from_cents, to_cents, to_decimal
from utils.validators import (
    MAX_PRICE, MAX_STOCK, validate_non_negative_integer, validate_price, validate_string_length
)

logger = logging.getLogger(__name__)

DEFAULT_TTLS = {
    'canteens': 300,
    'menu_items': 180
}

NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


class CanteenOperations:
    """
    餐厅CRUD、营业状态切换、菜单CRUD
    """
    def __init__(self, db_manager: DatabaseManager, cache: Optional[CacheService] = None,
                 ttls: Optional[Dict[str, int]] = None):
        self.db = db_manager
        self.cache = cache if cache is not None else CacheService()
        self.ttls = dict(DEFAULT_TTLS, **(ttls or {}))

    # 输入验证
    def _validate_canteen_name(self, name: str):
        if not validate_string_length(name, 3, 100):
            raise ValidationError("Canteen name must be between 3 and 100 characters")

    def _validate_menu_fields(self, name=None, description=None, price=None, stock=None):
        if name is not None and not validate_string_length(name, 2, 100):
            raise ValidationError("Menu item name must be between 2 and 100 characters")
        if description is not None and not validate_string_length(description, 10, 500):
            raise ValidationError("Description must be between 10 and 500 characters")
        if price is not None and not validate_price(price):
            raise ValidationError(f"Price must be between 0.01 and {MAX_PRICE} with at most two decimal places")
        if stock is not None and not validate_non_negative_integer(stock, MAX_STOCK):
            raise ValidationError(f"Stock must be an integer between 0 and {MAX_STOCK}")

    # 行 -> 字典
    def _format_menu_item(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": row['id'],
            "canteen_id": row['canteen_id'],
            "name": row['name'],
            "description": row['description'],
            "price": from_cents(row['price_cents']),
            "stock": row['stock'],
            "created_at": row['created_at'],
            "updated_at": row['updated_at']
        }

    def _format_canteen(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": row['id'],
            "name": row['name'],
            "owner_id": row['owner_id'],
            "owner": {
                "id": row['owner_id'],
                "username": row['owner_username'],
                "email": row['owner_email']
            },
            "is_open": bool(row['is_open']),
            "created_at": row['created_at'],
            "updated_at": row['updated_at']
        }

    def _load_canteens(self, canteen_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """读取餐厅（含所有者和菜单），canteen_id 为空时读取全部"""
        where_clause = "WHERE c.id = ?" if canteen_id else ""
        params = [canteen_id] if canteen_id else []

        rows = self.db.fetch_all(f"""
            SELECT c.id, c.name, c.owner_id, c.is_open, c.created_at, c.updated_at,
                   u.username AS owner_username, u.email AS owner_email
            FROM canteens c
            JOIN users u ON u.id = c.owner_id
            {where_clause}
            ORDER BY c.created_at ASC, c.rowid ASC
        """, params)

        canteens = [self._format_canteen(row) for row in rows]
        if not canteens:
            return canteens

        by_id = {canteen['id']: canteen for canteen in canteens}
        for canteen in canteens:
            canteen['menu_items'] = []

        placeholders = ','.join(['?' for _ in by_id])
        items = self.db.fetch_all(f"""
            SELECT id, canteen_id, name, description, price_cents, stock, created_at, updated_at
            FROM menu_items
            WHERE canteen_id IN ({placeholders})
            ORDER BY created_at ASC, rowid ASC
        """, list(by_id.keys()))
        for row in items:
            by_id[row['canteen_id']]['menu_items'].append(self._format_menu_item(row))

        return canteens

    def _get_canteen_row(self, canteen_id: str) -> Dict[str, Any]:
        canteen = self.db.fetch_one(
            "SELECT id, name, owner_id, is_open FROM canteens WHERE id = ?", [canteen_id]
        )
        if not canteen:
            raise NotFoundError("Canteen not found")
        return canteen

    def _get_menu_item_row(self, menu_item_id: str, canteen_id: str) -> Dict[str, Any]:
        item = self.db.fetch_one(
            "SELECT id, canteen_id FROM menu_items WHERE id = ?", [menu_item_id]
        )
        if not item:
            raise NotFoundError("Menu item not found")
        if item['canteen_id'] != canteen_id:
            raise BusinessRuleViolation("Menu item does not belong to this canteen")
        return item

    def _invalidate_canteen(self, canteen_id: str):
        self.cache.delete_keys(CacheKeys.for_canteen(canteen_id))

    # 餐厅
    def create_canteen(self, actor: Any, name: str, is_open: bool = True) -> Dict[str, Any]:
        require_canteen_creator(actor)
        self._validate_canteen_name(name)

        canteen_id = str(uuid.uuid4())

        def create_canteen_operation():
            self.db.conn.execute("""
                INSERT INTO canteens (id, name, owner_id, is_open)
                VALUES (?, ?, ?, ?)
            """, [canteen_id, name, actor.user_id, 1 if is_open else 0])

        self.db.execute_transaction([create_canteen_operation])
        self.cache.delete_keys(CacheKeys.CANTEENS_LIST)

        logger.info(f"餐厅 {canteen_id} ({name}) 已创建，所有者 {actor.user_id}")
        return self._load_canteens(canteen_id)[0]

    def list_canteens(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(
            CacheKeys.CANTEENS_LIST,
            lambda: self._load_canteens(),
            self.ttls['canteens']
        )

    def get_canteen(self, canteen_id: str) -> Dict[str, Any]:
        def load():
            canteens = self._load_canteens(canteen_id)
            if not canteens:
                raise NotFoundError("Canteen not found")
            return canteens[0]

        return self.cache.get_or_set(CacheKeys.canteen(canteen_id), load, self.ttls['canteens'])

    def update_canteen(self, canteen_id: str, actor: Any, name: Optional[str] = None,
                       is_open: Optional[bool] = None) -> Dict[str, Any]:
        """
        更新餐厅名称和/或营业状态，仅所有者或管理员
        """
        if name is not None:
            self._validate_canteen_name(name)

        def update_canteen_operation():
            canteen = self._get_canteen_row(canteen_id)
            require_canteen_manager(actor, canteen, "update this canteen")

            fields, params = [], []
            if name is not None:
                fields.append("name = ?")
                params.append(name)
            if is_open is not None:
                fields.append("is_open = ?")
                params.append(1 if is_open else 0)

            if fields:
                fields.append(f"updated_at = {NOW_SQL}")
                self.db.conn.execute(
                    f"UPDATE canteens SET {', '.join(fields)} WHERE id = ?",
                    params + [canteen_id]
                )

        self.db.execute_transaction([update_canteen_operation])
        self._invalidate_canteen(canteen_id)

        return self._load_canteens(canteen_id)[0]

    def toggle_canteen_status(self, canteen_id: str, actor: Any) -> Dict[str, Any]:
        """切换营业状态：开 <-> 关"""
        def toggle_operation():
            canteen = self._get_canteen_row(canteen_id)
            require_canteen_manager(actor, canteen, "update this canteen")

            self.db.conn.execute(f"""
                UPDATE canteens
                SET is_open = 1 - is_open, updated_at = {NOW_SQL}
                WHERE id = ?
            """, [canteen_id])

        self.db.execute_transaction([toggle_operation])
        self._invalidate_canteen(canteen_id)

        canteen = self._load_canteens(canteen_id)[0]
        logger.info(f"餐厅 {canteen_id} 营业状态切换为 {'营业' if canteen['is_open'] else '休息'}")
        return canteen

    # 菜单
    def create_menu_item(self, canteen_id: str, actor: Any, name: str, description: str,
                         price: Any, stock: int) -> Dict[str, Any]:
        self._validate_menu_fields(name, description, price, stock)
        menu_item_id = str(uuid.uuid4())

        def create_menu_item_operation():
            canteen = self._get_canteen_row(canteen_id)
            require_canteen_manager(actor, canteen, "create menu items")

            self.db.conn.execute("""
                INSERT INTO menu_items (id, canteen_id, name, description, price_cents, stock)
                VALUES (?, ?, ?, ?, ?, ?)
            """, [menu_item_id, canteen_id, name, description, to_cents(to_decimal(price)), int(stock)])

        self.db.execute_transaction([create_menu_item_operation])
        self._invalidate_canteen(canteen_id)

        return self.get_menu_item(menu_item_id)

    def get_menu_item(self, menu_item_id: str) -> Dict[str, Any]:
        row = self.db.fetch_one("""
            SELECT id, canteen_id, name, description, price_cents, stock, created_at, updated_at
            FROM menu_items WHERE id = ?
        """, [menu_item_id])
        if not row:
            raise NotFoundError("Menu item not found")
        return self._format_menu_item(row)

    def list_menu_items(self, canteen_id: str) -> List[Dict[str, Any]]:
        self._get_canteen_row(canteen_id)

        def load():
            rows = self.db.fetch_all("""
                SELECT id, canteen_id, name, description, price_cents, stock, created_at, updated_at
                FROM menu_items
                WHERE canteen_id = ?
                ORDER BY created_at ASC, rowid ASC
            """, [canteen_id])
            return [self._format_menu_item(row) for row in rows]

        return self.cache.get_or_set(CacheKeys.menu_items(canteen_id), load, self.ttls['menu_items'])

    def update_menu_item(self, menu_item_id: str, canteen_id: str, actor: Any,
                         **changes: Any) -> Dict[str, Any]:
        """
        更新菜品，可更新字段: name, description, price, stock
        """
        allowed = {'name', 'description', 'price', 'stock'}
        changes = {k: v for k, v in changes.items() if k in allowed and v is not None}
        self._validate_menu_fields(**changes)

        def update_menu_item_operation():
            canteen = self._get_canteen_row(canteen_id)
            require_canteen_manager(actor, canteen, "update menu items")
            self._get_menu_item_row(menu_item_id, canteen_id)

            fields, params = [], []
            for column in ('name', 'description'):
                if column in changes:
                    fields.append(f"{column} = ?")
                    params.append(changes[column])
            if 'price' in changes:
                fields.append("price_cents = ?")
                params.append(to_cents(to_decimal(changes['price'])))
            if 'stock' in changes:
                fields.append("stock = ?")
                params.append(int(changes['stock']))

            if fields:
                fields.append(f"updated_at = {NOW_SQL}")
                self.db.conn.execute(
                    f"UPDATE menu_items SET {', '.join(fields)} WHERE id = ?",
                    params + [menu_item_id]
                )

        self.db.execute_transaction([update_menu_item_operation])
        self._invalidate_canteen(canteen_id)

        return self.get_menu_item(menu_item_id)

    def delete_menu_item(self, menu_item_id: str, canteen_id: str, actor: Any) -> Dict[str, Any]:
        """
        删除菜品；历史订单明细保留冻结的名称和价格，menu_item_id 置空
        """
        def delete_menu_item_operation():
            canteen = self._get_canteen_row(canteen_id)
            require_canteen_manager(actor, canteen, "delete menu items")
            self._get_menu_item_row(menu_item_id, canteen_id)

            self.db.conn.execute("DELETE FROM menu_items WHERE id = ?", [menu_item_id])

        self.db.execute_transaction([delete_menu_item_operation])
        self._invalidate_canteen(canteen_id)

        logger.info(f"菜品 {menu_item_id} 已从餐厅 {canteen_id} 删除")
        return {
            'menu_item_id': menu_item_id,
            'message': 'Menu item deleted successfully'
        }
