# 用户API测试


class TestProfile:
    """个人资料接口测试"""

    def test_get_profile(self, client, user_headers):
        response = client.get("/api/users/profile", headers=user_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["username"] == "alice"
        assert data["email"] == "alice@campus.edu"

    def test_update_profile(self, client, user_headers):
        response = client.put("/api/users/profile", headers=user_headers, json={"username": "alice_w"})

        assert response.status_code == 200
        assert response.json()["data"]["username"] == "alice_w"

    def test_update_profile_empty(self, client, user_headers):
        response = client.put("/api/users/profile", headers=user_headers, json={})
        assert response.status_code == 400

    def test_update_email_outside_whitelist(self, client, user_headers):
        response = client.put("/api/users/profile", headers=user_headers,
                              json={"email": "alice@gmail.com"})
        assert response.status_code == 400

    def test_update_username_taken(self, client, user_headers, owner):
        response = client.put("/api/users/profile", headers=user_headers, json={"username": "chef"})
        assert response.status_code == 409

    def test_profile_requires_auth(self, client):
        assert client.get("/api/users/profile").status_code == 401


class TestChangePassword:

    def test_change_password(self, client, user_headers, login):
        response = client.put("/api/users/password", headers=user_headers, json={
            "currentPassword": "Password123",
            "newPassword": "NewPassword456"
        })

        assert response.status_code == 200
        assert login("alice@campus.edu", "NewPassword456")

    def test_wrong_current_password(self, client, user_headers):
        response = client.put("/api/users/password", headers=user_headers, json={
            "currentPassword": "WrongPass123",
            "newPassword": "NewPassword456"
        })

        assert response.status_code == 400
        assert response.json()["message"] == "Current password is incorrect"

    def test_weak_new_password(self, client, user_headers):
        response = client.put("/api/users/password", headers=user_headers, json={
            "currentPassword": "Password123",
            "newPassword": "weakpass"
        })
        assert response.status_code == 400
