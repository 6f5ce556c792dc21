# 订单API测试

import pytest

REVIEW = {"rating": 5, "comment": "Great food and fast service!"}


class TestOrderCreation:
    """订单创建测试"""

    def test_create_order_success(self, order, canteen):
        """测试成功创建订单，总价由服务端计算"""
        assert order["status"] == "WAITING"
        assert order["paymentStatus"] == "UNPAID"
        assert order["totalPrice"] == "21.98"
        assert order["canteenId"] == canteen["id"]
        assert order["items"][0]["unitPrice"] == "10.99"
        assert order["items"][0]["subtotal"] == "21.98"

    def test_create_order_message(self, client, user_headers, canteen, menu_item):
        response = client.post(f"/api/orders/{canteen['id']}", headers=user_headers, json={
            "items": [{"menuItemId": menu_item["id"], "quantity": 1}]
        })

        assert response.status_code == 201
        assert response.json()["message"] == "Order created successfully, total 10.99"

    def test_create_order_ignores_client_prices(self, client, user_headers, canteen, menu_item):
        """客户端提交的价格字段被忽略，总价按菜单单价计算"""
        response = client.post(f"/api/orders/{canteen['id']}", headers=user_headers, json={
            "items": [{"menuItemId": menu_item["id"], "quantity": 2, "price": "0.01"}],
            "totalPrice": "0.01"
        })

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["totalPrice"] == "21.98"
        assert data["items"][0]["unitPrice"] == "10.99"

    @pytest.mark.parametrize("quantity", [1_000_001, 10 ** 20])
    def test_create_order_quantity_too_large(self, client, user_headers, canteen, menu_item, quantity):
        response = client.post(f"/api/orders/{canteen['id']}", headers=user_headers, json={
            "items": [{"menuItemId": menu_item["id"], "quantity": quantity}]
        })

        assert response.status_code == 400
        menu = client.get(f"/api/canteens/{canteen['id']}/menu").json()["data"]
        assert menu[0]["stock"] == 20

    def test_create_order_reduces_stock(self, client, canteen, menu_item, order):
        menu = client.get(f"/api/canteens/{canteen['id']}/menu").json()["data"]
        assert menu[0]["stock"] == 18

    def test_create_order_insufficient_stock(self, client, user_headers, canteen, menu_item):
        response = client.post(f"/api/orders/{canteen['id']}", headers=user_headers, json={
            "items": [{"menuItemId": menu_item["id"], "quantity": 21}]
        })

        assert response.status_code == 400
        assert response.json()["message"] == "Insufficient stock for Chicken Rice. Available: 20"

    def test_create_order_closed_canteen(self, client, owner_headers, user_headers, canteen, menu_item):
        client.post(f"/api/canteens/{canteen['id']}/toggle-status", headers=owner_headers)

        response = client.post(f"/api/orders/{canteen['id']}", headers=user_headers, json={
            "items": [{"menuItemId": menu_item["id"], "quantity": 1}]
        })

        assert response.status_code == 400
        assert response.json()["message"] == "Canteen is currently closed"

    def test_create_order_unknown_canteen(self, client, user_headers, menu_item):
        response = client.post("/api/orders/no-such-canteen", headers=user_headers, json={
            "items": [{"menuItemId": menu_item["id"], "quantity": 1}]
        })

        assert response.status_code == 400
        assert response.json()["message"] == "Canteen not found"

    @pytest.mark.parametrize("items", [[], [{"menuItemId": "x", "quantity": 0}]])
    def test_create_order_invalid_items(self, client, user_headers, canteen, items):
        response = client.post(f"/api/orders/{canteen['id']}", headers=user_headers, json={"items": items})
        assert response.status_code == 400

    def test_create_order_unauthorized(self, client, canteen, menu_item):
        response = client.post(f"/api/orders/{canteen['id']}", json={
            "items": [{"menuItemId": menu_item["id"], "quantity": 1}]
        })
        assert response.status_code == 401


class TestPayment:
    """付款测试"""

    def test_payment_success(self, client, user_headers, order):
        response = client.post(f"/api/orders/{order['id']}/payment", headers=user_headers,
                               json={"amount": "21.98"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["payment"]["amount"] == "21.98"
        assert data["order"]["paymentStatus"] == "PAID"

    def test_payment_amount_mismatch(self, client, user_headers, order):
        response = client.post(f"/api/orders/{order['id']}/payment", headers=user_headers,
                               json={"amount": "21.97"})

        assert response.status_code == 400
        assert response.json()["message"] == "Amount mismatch. Expected: 21.98, Received: 21.97"

    def test_payment_twice(self, client, user_headers, paid_order):
        response = client.post(f"/api/orders/{paid_order['id']}/payment", headers=user_headers,
                               json={"amount": "21.98"})

        assert response.status_code == 400
        assert response.json()["message"] == "Order has already been paid"

    def test_payment_by_other_user(self, client, owner_headers, order):
        response = client.post(f"/api/orders/{order['id']}/payment", headers=owner_headers,
                               json={"amount": "21.98"})
        assert response.status_code == 403

    def test_payment_unknown_order(self, client, user_headers):
        response = client.post("/api/orders/no-such-order/payment", headers=user_headers,
                               json={"amount": "1.00"})

        assert response.status_code == 400
        assert response.json()["message"] == "Order not found"


class TestOrderStatus:
    """订单状态流转测试"""

    def test_progression(self, completed_order):
        assert completed_order["status"] == "COMPLETED"

    def test_unpaid_rejected(self, client, owner_headers, order):
        response = client.put(f"/api/orders/{order['id']}/status", headers=owner_headers,
                              json={"status": "COOKING"})

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot update status: Order payment is not completed"

    def test_skip_rejected(self, client, owner_headers, paid_order):
        response = client.put(f"/api/orders/{paid_order['id']}/status", headers=owner_headers,
                              json={"status": "READY"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid status transition from WAITING to READY"

    def test_unknown_status_value(self, client, owner_headers, paid_order):
        response = client.put(f"/api/orders/{paid_order['id']}/status", headers=owner_headers,
                              json={"status": "DELIVERED"})
        assert response.status_code == 400

    def test_customer_forbidden(self, client, user_headers, paid_order):
        response = client.put(f"/api/orders/{paid_order['id']}/status", headers=user_headers,
                              json={"status": "COOKING"})
        assert response.status_code == 403

    def test_unknown_order(self, client, owner_headers):
        response = client.put("/api/orders/no-such-order/status", headers=owner_headers,
                              json={"status": "COOKING"})
        assert response.status_code == 404


class TestOrderQueries:
    """订单查询测试"""

    def test_my_orders(self, client, user_headers, order):
        response = client.get("/api/orders", headers=user_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert [o["id"] for o in data["orders"]] == [order["id"]]
        assert data["pagination"] == {
            "totalCount": 1,
            "currentPage": 1,
            "perPage": 10,
            "totalPages": 1,
            "hasNext": False,
            "hasPrev": False
        }

    def test_my_orders_filter(self, client, user_headers, paid_order):
        unpaid = client.get("/api/orders", headers=user_headers, params={"paymentStatus": "UNPAID"})
        paid = client.get("/api/orders", headers=user_headers, params={"paymentStatus": "PAID"})

        assert unpaid.json()["data"]["orders"] == []
        assert len(paid.json()["data"]["orders"]) == 1

    def test_my_orders_invalid_limit(self, client, user_headers):
        response = client.get("/api/orders", headers=user_headers, params={"limit": 101})
        assert response.status_code == 400

    def test_canteen_orders_for_owner(self, client, owner_headers, canteen, paid_order):
        response = client.get(f"/api/orders/canteen/{canteen['id']}", headers=owner_headers)

        assert response.status_code == 200
        assert [o["id"] for o in response.json()["data"]] == [paid_order["id"]]

    def test_canteen_orders_status_filter(self, client, owner_headers, canteen, paid_order):
        response = client.get(f"/api/orders/canteen/{canteen['id']}", headers=owner_headers,
                              params={"status": "COOKING"})
        assert response.json()["data"] == []

    def test_canteen_orders_forbidden_for_customer(self, client, user_headers, canteen):
        response = client.get(f"/api/orders/canteen/{canteen['id']}", headers=user_headers)
        assert response.status_code == 403


class TestReviews:
    """评价测试"""

    def test_create_review(self, client, user_headers, completed_order):
        response = client.post(f"/api/orders/{completed_order['id']}/review",
                               headers=user_headers, json=REVIEW)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["rating"] == 5
        assert data["username"] == "alice"

    def test_review_twice(self, client, user_headers, completed_order):
        client.post(f"/api/orders/{completed_order['id']}/review", headers=user_headers, json=REVIEW)

        response = client.post(f"/api/orders/{completed_order['id']}/review",
                               headers=user_headers, json=REVIEW)

        assert response.status_code == 400
        assert "already reviewed" in response.json()["message"]

    def test_review_before_completion(self, client, user_headers, paid_order):
        response = client.post(f"/api/orders/{paid_order['id']}/review", headers=user_headers, json=REVIEW)

        assert response.status_code == 400
        assert response.json()["message"] == "You can only review completed orders"

    @pytest.mark.parametrize("payload", [
        {"rating": 6, "comment": "Great food and fast service!"},
        {"rating": 4, "comment": "short"},
    ])
    def test_invalid_review(self, client, user_headers, completed_order, payload):
        response = client.post(f"/api/orders/{completed_order['id']}/review",
                               headers=user_headers, json=payload)
        assert response.status_code == 400

    def test_public_reviews_and_delete(self, client, owner_headers, user_headers, canteen, completed_order):
        review = client.post(f"/api/orders/{completed_order['id']}/review",
                             headers=user_headers, json=REVIEW).json()["data"]

        reviews = client.get(f"/api/orders/canteen/{canteen['id']}/reviews")
        assert [r["id"] for r in reviews.json()["data"]] == [review["id"]]

        forbidden = client.delete(f"/api/orders/review/{review['id']}", headers=user_headers)
        assert forbidden.status_code == 403

        deleted = client.delete(f"/api/orders/review/{review['id']}", headers=owner_headers)
        assert deleted.status_code == 200
        assert client.get(f"/api/orders/canteen/{canteen['id']}/reviews").json()["data"] == []
