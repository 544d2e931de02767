from fastapi.testclient import TestClient


def test_create_user(client: TestClient, admin_headers):
    response = client.post(
        "/api/users",
        json={"username": "Nurse_Kim", "pin": "0042", "displayName": "Kim", "role": "user"},
        headers=admin_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["id"] == "nurse_kim"
    assert data["username"] == "nurse_kim"
    assert data["displayName"] == "Kim"
    assert data["role"] == "user"
    assert data["isActive"] is True
    assert data["failedAttempts"] == 0
    assert data["createdBy"] == "boss"
    assert "pinHash" not in data

    login = client.post("/api/auth/login", json={"username": "nurse_kim", "pin": "0042"})
    assert login.status_code == 200


def test_create_user_duplicate(client: TestClient, admin_headers, make_user):
    make_user("alice")
    response = client.post(
        "/api/users",
        json={"username": "ALICE", "pin": "1111", "displayName": "Alice 2", "role": "user"},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Username already exists"


def test_create_user_validation(client: TestClient, admin_headers):
    for body in (
        {"username": "al ice", "pin": "1234", "displayName": "A", "role": "user"},
        {"username": "alice", "pin": "12345", "displayName": "A", "role": "user"},
        {"username": "alice", "pin": "1234", "displayName": "", "role": "user"},
        {"username": "alice", "pin": "1234", "displayName": "A", "role": "owner"},
    ):
        response = client.post("/api/users", json=body, headers=admin_headers)
        assert response.status_code == 400, body


def test_list_users_hides_pin_hash_and_deactivated(client: TestClient, admin_headers, make_user, user_admin):
    make_user("alice")
    make_user("carol")
    user_admin.deactivate_user("carol")

    response = client.get("/api/users", headers=admin_headers)

    assert response.status_code == 200
    assert [u["username"] for u in response.json()] == ["alice", "boss"]
    assert "pinHash" not in response.text
    assert "pin_hash" not in response.text


def test_get_user(client: TestClient, admin_headers, make_user):
    make_user("alice")
    response = client.get("/api/users/alice", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["username"] == "alice"


def test_get_unknown_user(client: TestClient, admin_headers):
    response = client.get("/api/users/ghost", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_change_role(client: TestClient, admin_headers, make_user, token_authority):
    make_user("alice")

    response = client.put("/api/users/alice/role", json={"role": "admin"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"id": "alice", "role": "admin"}
    assert token_authority.synced[-1] == ("alice", {"role": "admin", "username": "alice"})

    token = client.post("/api/auth/login", json={"username": "alice", "pin": "1234"}).json()["token"]
    assert client.get("/api/users", headers={"Authorization": f"Bearer {token}"}).status_code == 200


def test_change_role_rejects_unknown_role(client: TestClient, admin_headers, make_user):
    make_user("alice")
    response = client.put("/api/users/alice/role", json={"role": "root"}, headers=admin_headers)
    assert response.status_code == 400


def test_change_role_unknown_user(client: TestClient, admin_headers):
    response = client.put("/api/users/ghost/role", json={"role": "admin"}, headers=admin_headers)
    assert response.status_code == 404


def test_reset_pin_unlocks_account(client: TestClient, admin_headers, make_user):
    make_user("alice")
    for _ in range(5):
        client.post("/api/auth/login", json={"username": "alice", "pin": "9999"})
    assert client.post("/api/auth/login", json={"username": "alice", "pin": "1234"}).status_code == 401

    response = client.put("/api/users/alice/reset-pin", json={"pin": "8642"}, headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"id": "alice", "pinReset": True}
    assert client.post("/api/auth/login", json={"username": "alice", "pin": "8642"}).status_code == 200


def test_reset_pin_validation(client: TestClient, admin_headers, make_user):
    make_user("alice")
    response = client.put("/api/users/alice/reset-pin", json={"pin": "12"}, headers=admin_headers)
    assert response.status_code == 400


def test_deactivate_user(client: TestClient, admin_headers, make_user):
    make_user("alice")

    response = client.delete("/api/users/alice", headers=admin_headers)

    assert response.status_code == 200
    assert response.json() == {"id": "alice", "isActive": False}
    assert [u["username"] for u in client.get("/api/users", headers=admin_headers).json()] == ["boss"]
    assert client.get("/api/users/alice", headers=admin_headers).json()["isActive"] is False

    login = client.post("/api/auth/login", json={"username": "alice", "pin": "1234"})
    assert login.status_code == 401
    assert login.json()["detail"] == "Account is disabled. Contact an administrator."


def test_admin_cannot_deactivate_self(client: TestClient, admin_headers):
    response = client.delete("/api/users/boss", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot deactivate your own account"


def test_deactivate_unknown_user(client: TestClient, admin_headers):
    response = client.delete("/api/users/ghost", headers=admin_headers)
    assert response.status_code == 404


def test_user_management_is_audited(client: TestClient, admin_headers, admin):
    client.post(
        "/api/users",
        json={"username": "alice", "pin": "1234", "displayName": "Alice", "role": "user"},
        headers=admin_headers,
    )
    client.put("/api/users/alice/role", json={"role": "admin"}, headers=admin_headers)
    client.put("/api/users/alice/reset-pin", json={"pin": "2222"}, headers=admin_headers)
    client.delete("/api/users/alice", headers=admin_headers)

    logs = client.get("/api/audit-logs", params={"targetId": "alice"}, headers=admin_headers).json()

    assert [entry["action"] for entry in logs] == [
        "USER_DELETE",
        "USER_PIN_RESET",
        "USER_ROLE_CHANGE",
        "USER_CREATE",
    ]
    assert all(entry["userId"] == "boss" for entry in logs)
    assert logs[2]["details"] == {"newRole": "admin"}
    assert logs[3]["details"] == {"newUsername": "alice", "role": "user"}
