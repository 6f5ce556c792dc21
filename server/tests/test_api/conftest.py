# API测试共享固定装置
# 所有数据都通过HTTP接口创建，依赖根目录conftest中的 client / login / admin_headers

import pytest

USER_EMAIL = "alice@campus.edu"
OWNER_EMAIL = "chef@campus.edu"
PASSWORD = "Password123"

MENU_ITEM = {
    "name": "Chicken Rice",
    "description": "Steamed chicken with fragrant rice",
    "price": "10.99",
    "stock": 20
}


@pytest.fixture
def registered_user(client):
    """通过注册接口创建的普通用户"""
    response = client.post("/api/auth/register", json={
        "username": "alice",
        "email": USER_EMAIL,
        "password": PASSWORD
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def user_headers(registered_user, login):
    return login(USER_EMAIL)


@pytest.fixture
def owner(client, admin_headers):
    """管理员创建的餐厅所有者"""
    response = client.post("/api/admin/users", headers=admin_headers, json={
        "username": "chef",
        "email": OWNER_EMAIL,
        "password": PASSWORD,
        "role": "CANTEEN_OWNER"
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def owner_headers(owner, login):
    return login(OWNER_EMAIL)


@pytest.fixture
def canteen(client, owner_headers):
    response = client.post("/api/canteens", headers=owner_headers, json={"name": "Main Canteen"})
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def menu_item(client, owner_headers, canteen):
    """单价 10.99，库存 20"""
    response = client.post(f"/api/canteens/{canteen['id']}/menu", headers=owner_headers, json=MENU_ITEM)
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def order(client, user_headers, canteen, menu_item):
    """未付款订单：Chicken Rice x 2 = 21.98"""
    response = client.post(f"/api/orders/{canteen['id']}", headers=user_headers, json={
        "items": [{"menuItemId": menu_item["id"], "quantity": 2}]
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]


@pytest.fixture
def paid_order(client, user_headers, order):
    response = client.post(f"/api/orders/{order['id']}/payment", headers=user_headers,
                           json={"amount": "21.98"})
    assert response.status_code == 200, response.text
    return response.json()["data"]["order"]


@pytest.fixture
def completed_order(client, owner_headers, paid_order):
    for status in ("COOKING", "READY", "COMPLETED"):
        response = client.put(f"/api/orders/{paid_order['id']}/status", headers=owner_headers,
                              json={"status": status})
        assert response.status_code == 200, response.text
    return response.json()["data"]
