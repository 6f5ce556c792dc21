#!/usr/bin/env python3
# 数据库初始化脚本
#
# 用法（在 server 目录下）:
#   CONFIG_ENV=development python scripts/init_db.py                 建表 + 域名白名单 + 初始管理员
#   CONFIG_ENV=development python scripts/init_db.py --sample-data   额外写入示例餐厅和菜单

import sys
import logging
from pathlib import Path

# 添加项目根目录到Python路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from db.manager import DatabaseManager
from db.schema import CORE_TABLES, create_tables
from db.canteen_operations import CanteenOperations
from db.supporting_operations import SupportingOperations
from utils.access_policy import Actor, ROLE_CANTEEN_OWNER
from utils.cache import CacheService
from utils.config import Config
from utils.security import PasswordManager

SAMPLE_OWNER = {
    "username": "demo_owner",
    "password": "OwnerPass123"
}

SAMPLE_MENU = [
    ("Chicken Rice", "Steamed chicken with fragrant rice and soup", "10.99", 50),
    ("Beef Noodles", "Hand-pulled noodles in slow-cooked beef broth", "12.50", 30),
    ("Vegetable Curry", "Mixed seasonal vegetables in mild curry sauce", "8.75", 40),
    ("Iced Lemon Tea", "Freshly brewed black tea with lemon", "2.50", 100)
]


def insert_sample_data(db_manager: DatabaseManager, support_ops: SupportingOperations, domain: str):
    """
    写入示例餐厅所有者、餐厅和菜单（已存在时跳过）
    """
    email = f"{SAMPLE_OWNER['username']}@{domain}"
    owner = db_manager.fetch_one("SELECT id FROM users WHERE email = ?", [email])
    if owner:
        logging.info("示例数据已存在，跳过")
        return

    owner = support_ops.create_user(
        username=SAMPLE_OWNER["username"],
        email=email,
        password=SAMPLE_OWNER["password"],
        role=ROLE_CANTEEN_OWNER
    )
    actor = Actor(owner["id"], owner["role"])

    canteen_ops = CanteenOperations(db_manager, cache=support_ops.cache)
    canteen = canteen_ops.create_canteen(actor, "Central Canteen")

    for name, description, price, stock in SAMPLE_MENU:
        canteen_ops.create_menu_item(canteen["id"], actor, name, description, price, stock)

    logging.info(f"示例数据已写入: 餐厅所有者 {email} / {SAMPLE_OWNER['password']}, "
                 f"餐厅 {canteen['name']}, {len(SAMPLE_MENU)} 个菜品")


def main():
    """
    主函数：初始化数据库
    """

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    config = Config()
    db_path = config.get_database_config()["path"]

    logging.info(f"开始初始化数据库: {db_path}")
    logging.info(f"配置环境: {config.env}")

    try:
        with DatabaseManager(db_path) as db_manager:
            logging.info("创建数据表...")
            create_tables(db_manager)

            support_ops = SupportingOperations(
                db_manager,
                cache=CacheService(),
                password_manager=PasswordManager(rounds=config.get("auth.bcrypt_rounds", 12))
            )

            logging.info("写入邮箱域名白名单...")
            domains = config.get("auth.allowed_email_domains", [])
            support_ops.seed_email_domains(domains)

            logging.info("创建初始管理员...")
            admin = support_ops.bootstrap_admin(
                email=config.get("admin.bootstrap_email"),
                username=config.get("admin.bootstrap_username", "admin"),
                password=config.get("admin.bootstrap_password")
            )
            if admin is None:
                logging.info("已存在管理员，跳过")

            if "--sample-data" in sys.argv[1:]:
                if not domains:
                    raise ValueError("写入示例数据需要至少配置一个邮箱域名")
                insert_sample_data(db_manager, support_ops, domains[0])

            db_manager.check_integrity(CORE_TABLES)

            logging.info("数据库初始化完成!")
            logging.info("数据表状态:")
            for table_name in CORE_TABLES:
                info = db_manager.get_table_info(table_name)
                logging.info(f"  - {table_name}: {info['record_count']} 条记录")

    except Exception as e:
        logging.error(f"数据库初始化失败: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
