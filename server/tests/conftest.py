# 测试配置和固定装置

import pytest
import os
import sys
from pathlib import Path
from fastapi.testclient import TestClient

# 添加项目路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# 设置测试环境
os.environ['CONFIG_ENV'] = 'test'

from api.main import create_app
from db.manager import DatabaseManager
from db.schema import create_tables
from db.core_operations import CoreOperations
from db.canteen_operations import CanteenOperations
from db.query_operations import QueryOperations
from db.supporting_operations import SupportingOperations
from utils.access_policy import Actor
from utils.cache import CacheService
from utils.config import Config
from utils.security import JWTManager, PasswordManager

TEST_DOMAIN = "campus.edu"
TEST_PASSWORD = "Password123"

ADMIN_EMAIL = "admin@campus.edu"
ADMIN_PASSWORD = "AdminPass123"


# ===== 数据库操作层 =====

@pytest.fixture
def db_path(tmp_path):
    """临时数据库文件（多个连接需要共享同一个库，不能用内存数据库）"""
    return str(tmp_path / "canteen_test.db")


@pytest.fixture
def test_db(db_path):
    """测试数据库实例"""
    db = DatabaseManager(db_path, auto_connect=True)
    create_tables(db)

    yield db
    db.close()


@pytest.fixture
def cache():
    return CacheService(default_ttl=300)


@pytest.fixture
def password_manager():
    """测试环境使用最小bcrypt rounds"""
    return PasswordManager(rounds=4)


@pytest.fixture
def jwt_manager():
    return JWTManager(secret_key="test-secret-key", algorithm="HS256", access_token_expire_minutes=15)


@pytest.fixture
def support_ops(test_db, cache, password_manager, jwt_manager):
    """支持业务操作实例（已写入测试域名白名单）"""
    ops = SupportingOperations(
        test_db,
        cache=cache,
        password_manager=password_manager,
        jwt_manager=jwt_manager
    )
    ops.seed_email_domains([TEST_DOMAIN])
    return ops


@pytest.fixture
def core_ops(test_db, cache):
    """核心业务操作实例"""
    return CoreOperations(test_db, cache=cache)


@pytest.fixture
def query_ops(test_db):
    """查询业务操作实例"""
    return QueryOperations(test_db)


@pytest.fixture
def canteen_ops(test_db, cache):
    """餐厅与菜单操作实例"""
    return CanteenOperations(test_db, cache=cache)


def _create_actor(support_ops, username, role):
    user = support_ops.create_user(
        username=username,
        email=f"{username}@{TEST_DOMAIN}",
        password=TEST_PASSWORD,
        role=role
    )
    return Actor(user['id'], user['role'])


@pytest.fixture
def sample_admin(support_ops):
    """测试管理员"""
    return _create_actor(support_ops, "test_admin", "ADMIN")


@pytest.fixture
def sample_owner(support_ops):
    """测试餐厅所有者"""
    return _create_actor(support_ops, "test_owner", "CANTEEN_OWNER")


@pytest.fixture
def other_owner(support_ops):
    """另一个餐厅的所有者"""
    return _create_actor(support_ops, "other_owner", "CANTEEN_OWNER")


@pytest.fixture
def sample_user(support_ops):
    """测试普通用户（顾客）"""
    return _create_actor(support_ops, "test_user", "USER")


@pytest.fixture
def other_user(support_ops):
    return _create_actor(support_ops, "other_user", "USER")


@pytest.fixture
def sample_canteen(canteen_ops, sample_owner):
    """测试餐厅（营业中）"""
    return canteen_ops.create_canteen(sample_owner, "Test Canteen")


@pytest.fixture
def sample_menu_item(canteen_ops, sample_canteen, sample_owner):
    """测试菜品：单价 10.99，库存 20"""
    return canteen_ops.create_menu_item(
        sample_canteen['id'], sample_owner,
        name="Chicken Rice",
        description="Steamed chicken with fragrant rice",
        price="10.99",
        stock=20
    )


@pytest.fixture
def second_menu_item(canteen_ops, sample_canteen, sample_owner):
    """测试菜品：单价 2.50，库存 5"""
    return canteen_ops.create_menu_item(
        sample_canteen['id'], sample_owner,
        name="Iced Lemon Tea",
        description="Freshly brewed black tea with lemon",
        price="2.50",
        stock=5
    )


@pytest.fixture
def sample_order(core_ops, sample_user, sample_canteen, sample_menu_item):
    """未付款订单：Chicken Rice x 2 = 21.98"""
    return core_ops.create_order(
        sample_user.user_id,
        sample_canteen['id'],
        [{"menu_item_id": sample_menu_item['id'], "quantity": 2}]
    )


@pytest.fixture
def paid_order(core_ops, sample_user, sample_order):
    """已付款订单（WAITING/PAID）"""
    return core_ops.make_payment(sample_order['id'], sample_user.user_id, "21.98")['order']


@pytest.fixture
def completed_order(core_ops, sample_owner, paid_order):
    """已完成订单"""
    for status in ("COOKING", "READY", "COMPLETED"):
        order = core_ops.update_order_status(paid_order['id'], sample_owner, status)
    return order


# ===== API层 =====

@pytest.fixture
def api_config(tmp_path, monkeypatch):
    """测试配置，数据库指向临时文件"""
    monkeypatch.setenv("CANTEEN_DB_PATH", str(tmp_path / "canteen_api_test.db"))
    return Config("test")


@pytest.fixture
def client(api_config):
    """FastAPI测试客户端（进入上下文以触发启动时的建表和初始管理员创建）"""
    app = create_app(api_config)
    with TestClient(app) as test_client:
        yield test_client


def _login(client, email, password):
    """登录并返回认证请求头"""
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    token = response.json()["data"]["accessToken"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def login(client):
    """按邮箱和密码登录，返回认证请求头"""
    return lambda email, password=TEST_PASSWORD: _login(client, email, password)


@pytest.fixture
def admin_headers(login):
    """启动时创建的初始管理员"""
    return login(ADMIN_EMAIL, ADMIN_PASSWORD)
