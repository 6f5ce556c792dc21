# 数据表结构定义
# 金额统一以整数"分"存储（*_cents），业务层用 Decimal 换算

from .manager import DatabaseManager

NOW = "(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"

TABLES = {
    'users': f"""
        CREATE TABLE IF NOT EXISTS users (
            id TEXT PRIMARY KEY,
            email TEXT UNIQUE NOT NULL,
            username TEXT UNIQUE NOT NULL,
            password_hash TEXT NOT NULL,
            role TEXT NOT NULL DEFAULT 'USER'
                CHECK (role IN ('USER', 'CANTEEN_OWNER', 'ADMIN')),
            created_at TEXT NOT NULL DEFAULT {NOW},
            updated_at TEXT NOT NULL DEFAULT {NOW}
        )
    """,
    'refresh_tokens': f"""
        CREATE TABLE IF NOT EXISTS refresh_tokens (
            id TEXT PRIMARY KEY,
            token TEXT UNIQUE NOT NULL,
            user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            expires_at TEXT NOT NULL,
            revoked INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL DEFAULT {NOW}
        )
    """,
    'allowed_email_domains': f"""
        CREATE TABLE IF NOT EXISTS allowed_email_domains (
            id TEXT PRIMARY KEY,
            domain TEXT UNIQUE NOT NULL,
            created_at TEXT NOT NULL DEFAULT {NOW}
        )
    """,
    'canteens': f"""
        CREATE TABLE IF NOT EXISTS canteens (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            owner_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            is_open INTEGER NOT NULL DEFAULT 1,
            created_at TEXT NOT NULL DEFAULT {NOW},
            updated_at TEXT NOT NULL DEFAULT {NOW}
        )
    """,
    'menu_items': f"""
        CREATE TABLE IF NOT EXISTS menu_items (
            id TEXT PRIMARY KEY,
            canteen_id TEXT NOT NULL REFERENCES canteens(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            description TEXT NOT NULL,
            price_cents INTEGER NOT NULL CHECK (price_cents > 0),
            stock INTEGER NOT NULL DEFAULT 0 CHECK (stock >= 0),
            created_at TEXT NOT NULL DEFAULT {NOW},
            updated_at TEXT NOT NULL DEFAULT {NOW}
        )
    """,
    'orders': f"""
        CREATE TABLE IF NOT EXISTS orders (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            canteen_id TEXT NOT NULL REFERENCES canteens(id) ON DELETE CASCADE,
            total_price_cents INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'WAITING'
                CHECK (status IN ('WAITING', 'COOKING', 'READY', 'COMPLETED')),
            payment_status TEXT NOT NULL DEFAULT 'UNPAID'
                CHECK (payment_status IN ('UNPAID', 'PAID')),
            created_at TEXT NOT NULL DEFAULT {NOW},
            updated_at TEXT NOT NULL DEFAULT {NOW}
        )
    """,
    'order_items': """
        CREATE TABLE IF NOT EXISTS order_items (
            id TEXT PRIMARY KEY,
            order_id TEXT NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            menu_item_id TEXT REFERENCES menu_items(id) ON DELETE SET NULL,
            name TEXT NOT NULL,
            quantity INTEGER NOT NULL CHECK (quantity > 0),
            unit_price_cents INTEGER NOT NULL,
            subtotal_cents INTEGER NOT NULL
        )
    """,
    'payments': f"""
        CREATE TABLE IF NOT EXISTS payments (
            id TEXT PRIMARY KEY,
            order_id TEXT UNIQUE NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            amount_cents INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'PAID' CHECK (status IN ('UNPAID', 'PAID')),
            created_at TEXT NOT NULL DEFAULT {NOW}
        )
    """,
    'reviews': f"""
        CREATE TABLE IF NOT EXISTS reviews (
            id TEXT PRIMARY KEY,
            order_id TEXT UNIQUE NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
            comment TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT {NOW}
        )
    """
}

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_canteens_owner ON canteens(owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_menu_items_canteen ON menu_items(canteen_id)",
    "CREATE INDEX IF NOT EXISTS idx_orders_user ON orders(user_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_orders_canteen ON orders(canteen_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_order_items_order ON order_items(order_id)",
    "CREATE INDEX IF NOT EXISTS idx_refresh_tokens_user ON refresh_tokens(user_id)"
]

CORE_TABLES = list(TABLES.keys())


def create_tables(db: DatabaseManager):
    """
    创建所有数据表和索引（幂等）
    """
    with db.transaction() as conn:
        for table_name, ddl in TABLES.items():
            conn.execute(ddl)
            db.logger.debug(f"数据表 {table_name} 已就绪")

        for ddl in INDEXES:
            conn.execute(ddl)
