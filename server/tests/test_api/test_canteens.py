# 餐厅与菜单API测试

import pytest

NEW_ITEM = {
    "name": "Iced Lemon Tea",
    "description": "Freshly brewed black tea with lemon",
    "price": "2.50",
    "stock": 5
}


class TestCanteenRoutes:
    """餐厅接口测试"""

    def test_create_canteen(self, client, owner, canteen):
        assert canteen["name"] == "Main Canteen"
        assert canteen["ownerId"] == owner["id"]
        assert canteen["isOpen"] is True
        assert canteen["menuItems"] == []

    def test_customer_cannot_create(self, client, user_headers):
        response = client.post("/api/canteens", headers=user_headers, json={"name": "My Canteen"})

        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_create_requires_auth(self, client):
        assert client.post("/api/canteens", json={"name": "My Canteen"}).status_code == 401

    def test_short_name_rejected(self, client, owner_headers):
        response = client.post("/api/canteens", headers=owner_headers, json={"name": "ab"})
        assert response.status_code == 400

    def test_list_is_public(self, client, canteen, menu_item):
        """测试餐厅列表公开，并包含菜单和所有者信息"""
        response = client.get("/api/canteens")

        assert response.status_code == 200
        canteens = response.json()["data"]
        assert len(canteens) == 1
        assert canteens[0]["owner"]["username"] == "chef"
        assert canteens[0]["menuItems"][0]["price"] == "10.99"

    def test_get_unknown_canteen(self, client):
        response = client.get("/api/canteens/no-such-canteen")

        assert response.status_code == 404
        assert response.json()["message"] == "Canteen not found"

    def test_update_canteen(self, client, owner_headers, canteen):
        response = client.put(f"/api/canteens/{canteen['id']}", headers=owner_headers,
                              json={"name": "Renamed Canteen", "isOpen": False})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Renamed Canteen"
        assert data["isOpen"] is False

    def test_update_by_other_owner(self, client, admin_headers, login, canteen):
        client.post("/api/admin/users", headers=admin_headers, json={
            "username": "rival",
            "email": "rival@campus.edu",
            "password": "Password123",
            "role": "CANTEEN_OWNER"
        })
        rival_headers = login("rival@campus.edu")

        response = client.put(f"/api/canteens/{canteen['id']}", headers=rival_headers,
                              json={"name": "Stolen Canteen"})
        assert response.status_code == 403

    def test_admin_can_update(self, client, admin_headers, canteen):
        response = client.put(f"/api/canteens/{canteen['id']}", headers=admin_headers,
                              json={"isOpen": False})
        assert response.status_code == 200

    def test_toggle_status(self, client, owner_headers, canteen):
        closed = client.post(f"/api/canteens/{canteen['id']}/toggle-status", headers=owner_headers)
        assert closed.status_code == 200
        assert closed.json()["message"] == "Canteen closed successfully"
        assert closed.json()["data"]["isOpen"] is False

        opened = client.post(f"/api/canteens/{canteen['id']}/toggle-status", headers=owner_headers)
        assert opened.json()["data"]["isOpen"] is True


class TestMenuRoutes:
    """菜单接口测试"""

    def test_create_menu_item(self, menu_item, canteen):
        assert menu_item["canteenId"] == canteen["id"]
        assert menu_item["price"] == "10.99"
        assert menu_item["stock"] == 20

    def test_list_menu(self, client, canteen, menu_item):
        response = client.get(f"/api/canteens/{canteen['id']}/menu")

        assert response.status_code == 200
        assert [item["name"] for item in response.json()["data"]] == ["Chicken Rice"]

    def test_price_with_three_decimals_rejected(self, client, owner_headers, canteen):
        response = client.post(f"/api/canteens/{canteen['id']}/menu", headers=owner_headers,
                               json=dict(NEW_ITEM, price="2.505"))
        assert response.status_code == 400

    def test_negative_stock_rejected(self, client, owner_headers, canteen):
        response = client.post(f"/api/canteens/{canteen['id']}/menu", headers=owner_headers,
                               json=dict(NEW_ITEM, stock=-1))
        assert response.status_code == 400

    @pytest.mark.parametrize("field,value", [("stock", 10 ** 20), ("price", "1000000.00")])
    def test_values_out_of_range_rejected(self, client, owner_headers, canteen, field, value):
        response = client.post(f"/api/canteens/{canteen['id']}/menu", headers=owner_headers,
                               json=dict(NEW_ITEM, **{field: value}))
        assert response.status_code == 400

    def test_update_with_huge_stock_rejected(self, client, owner_headers, canteen, menu_item):
        response = client.put(f"/api/canteens/{canteen['id']}/menu/{menu_item['id']}",
                              headers=owner_headers, json={"stock": 10 ** 20})

        assert response.status_code == 400
        menu = client.get(f"/api/canteens/{canteen['id']}/menu").json()["data"]
        assert menu[0]["stock"] == 20

    def test_customer_forbidden_for_unknown_item(self, client, user_headers, canteen):
        """非所有者操作别人餐厅的菜品，菜品不存在时同样返回 403"""
        update = client.put(f"/api/canteens/{canteen['id']}/menu/no-such-item",
                            headers=user_headers, json={"stock": 1})
        delete = client.delete(f"/api/canteens/{canteen['id']}/menu/no-such-item", headers=user_headers)

        assert update.status_code == 403
        assert delete.status_code == 403

    def test_customer_cannot_add(self, client, user_headers, canteen):
        response = client.post(f"/api/canteens/{canteen['id']}/menu", headers=user_headers, json=NEW_ITEM)
        assert response.status_code == 403

    def test_update_menu_item(self, client, owner_headers, canteen, menu_item):
        response = client.put(f"/api/canteens/{canteen['id']}/menu/{menu_item['id']}",
                              headers=owner_headers, json={"price": "11.50", "stock": 40})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["price"] == "11.50"
        assert data["stock"] == 40

        menu = client.get(f"/api/canteens/{canteen['id']}/menu").json()["data"]
        assert menu[0]["stock"] == 40

    def test_delete_menu_item(self, client, owner_headers, canteen, menu_item):
        response = client.delete(f"/api/canteens/{canteen['id']}/menu/{menu_item['id']}",
                                 headers=owner_headers)

        assert response.status_code == 200
        assert client.get(f"/api/canteens/{canteen['id']}/menu").json()["data"] == []

    def test_delete_unknown_menu_item(self, client, owner_headers, canteen):
        response = client.delete(f"/api/canteens/{canteen['id']}/menu/no-such-item", headers=owner_headers)
        assert response.status_code == 404
