"""
Integration tests for the Action Bank API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from action_bank.api import create_app


@pytest.fixture
def client(make_bank):
    """Test client over a fresh in-memory bank; the context runs startup/shutdown"""
    app = create_app(make_bank())
    with TestClient(app) as client:
        yield client


def auth_headers(client, username="admin", password="password"):
    r = client.post("/api/user/login", json={"username": username, "password": password})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}


def run(client, operation, headers=None, **args):
    return client.post(f"/api/operations/{operation}", json={"args": args}, headers=headers)


def add_user(client, headers, username, user_type="basic"):
    r = client.post("/api/user/add", json={"newUser": {
        "username": username,
        "email": f"{username}@example.com",
        "password": "password123",
        "userType": user_type,
    }}, headers=headers)
    assert r.status_code == 200
    return r.json()


class TestHealthEndpoints:
    """Test basic health and root endpoints"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "Action Bank API"
        assert "endpoints" in data


class TestAuthentication:

    def test_login(self, client):
        r = client.post("/api/user/login", json={"username": "admin", "password": "password"})
        assert r.status_code == 200
        assert r.json()["token"]

    def test_bad_login(self, client):
        r = client.post("/api/user/login", json={"username": "admin", "password": "nope"})
        assert r.status_code == 401
        assert r.json() == {"error": "UNAUTHENTICATED", "message": "Invalid Credentials"}

    def test_missing_token_forbidden(self, client):
        r = run(client, "addExchange", name="Fitness")
        assert r.status_code == 403
        assert r.json()["error"] == "FORBIDDEN"

    def test_garbage_token_forbidden(self, client):
        r = run(client, "addExchange", headers={"Authorization": "Bearer garbage"},
                name="Fitness")
        assert r.status_code == 403


class TestOperations:

    def test_list_operations(self, client):
        r = client.get("/api/operations")
        assert r.status_code == 200
        data = r.json()
        assert "getExchangeById" in data["queries"]
        assert "addDeposit" in data["mutations"]

    def test_unknown_operation(self, client):
        r = run(client, "mintMoney", headers=auth_headers(client))
        assert r.status_code == 400
        assert r.json()["error"] == "INVALID_INPUT"

    def test_invalid_arguments(self, client):
        r = run(client, "addExchange", headers=auth_headers(client), name=3)
        assert r.status_code == 400
        assert r.json()["error"] == "INVALID_INPUT"

    def test_correlation_id_accepted(self, client):
        headers = auth_headers(client)
        headers["X-Correlation-ID"] = "req-123"
        r = run(client, "addExchange", headers=headers, name="Fitness")
        assert r.status_code == 200


class TestBankFlow:
    """End-to-end exchange workflow"""

    def test_exchange_balance(self, client):
        admin = auth_headers(client)
        add_user(client, admin, "alice")
        alice = auth_headers(client, "alice", "password123")

        exchange = run(client, "addExchange", headers=alice, name="Fitness").json()["data"]
        deposit_action = run(client, "addDepositAction", headers=alice,
                             exchangeId=exchange["id"], name="Bike", uom="minutes",
                             uomQuantity=30, depositQuantity=1).json()["data"]
        withdrawal_action = run(client, "addWithdrawalAction", headers=alice,
                                exchangeId=exchange["id"], name="TV", uom="episodes",
                                uomQuantity=1, withdrawalQuantity=2).json()["data"]

        r = run(client, "addDeposit", headers=alice,
                depositActionId=deposit_action["id"], quantity=90)
        assert r.status_code == 200
        assert r.json()["data"]["quantity"] == "90"

        run(client, "addWithdrawal", headers=alice,
            withdrawalActionId=withdrawal_action["id"], quantity=1)

        r = client.get(f"/api/bank/exchanges/{exchange['id']}", headers=alice)
        assert r.status_code == 200
        assert r.json()["totalCurrency"] == "1"

        r = client.get("/api/bank/exchanges", headers=alice)
        assert [e["id"] for e in r.json()["exchanges"]] == [exchange["id"]]

    def test_other_users_exchange_hidden(self, client):
        admin = auth_headers(client)
        add_user(client, admin, "alice")
        add_user(client, admin, "bob")
        alice = auth_headers(client, "alice", "password123")
        bob = auth_headers(client, "bob", "password123")

        exchange = run(client, "addExchange", headers=alice, name="Fitness").json()["data"]

        r = client.get(f"/api/bank/exchanges/{exchange['id']}", headers=bob)
        assert r.status_code == 400
        assert r.json() == {"error": "QUERY_DATA_EXCEPTION",
                            "message": "Exchange Does Not Exist"}

        r = client.get("/api/bank/exchanges", headers=bob)
        assert r.json()["exchanges"] == []

    def test_list_exchanges_requires_login(self, client):
        r = client.get("/api/bank/exchanges")
        assert r.status_code == 403


class TestUserEndpoints:

    def test_lookup(self, client):
        admin = auth_headers(client)
        alice = add_user(client, admin, "alice")

        r = client.get("/api/user/id", params={"id": alice["id"]}, headers=admin)
        assert r.status_code == 200
        assert r.json()["username"] == "alice"

        r = client.get("/api/user/username", params={"username": "alice"}, headers=admin)
        assert r.json()["id"] == alice["id"]

        r = client.get("/api/user/id", params={"id": "nobody"}, headers=admin)
        assert r.status_code == 400

        r = client.get("/api/user", params={"pagination": 10, "page": 1}, headers=admin)
        assert len(r.json()["users"]) == 2

    def test_basic_user_cannot_list_users(self, client):
        admin = auth_headers(client)
        add_user(client, admin, "alice")
        alice = auth_headers(client, "alice", "password123")

        r = client.get("/api/user", headers=alice)
        assert r.status_code == 403

    def test_edit_and_delete(self, client):
        admin = auth_headers(client)
        alice_record = add_user(client, admin, "alice")
        alice = auth_headers(client, "alice", "password123")

        r = client.post("/api/user/edit", json={"user": {
            "id": alice_record["id"], "firstName": "Alice",
        }}, headers=alice)
        assert r.status_code == 200
        assert r.json()["firstName"] == "Alice"

        r = client.post("/api/user/adminEdit", json={"user": {
            "id": alice_record["id"], "userType": "editor",
        }}, headers=admin)
        assert r.json()["userType"] == "editor"

        r = client.post("/api/user/delete", json={"user": {"id": alice_record["id"]}},
                        headers=admin)
        assert r.json() == {"id": alice_record["id"]}

    def test_update_password(self, client):
        admin = auth_headers(client)
        alice_record = add_user(client, admin, "alice")
        alice = auth_headers(client, "alice", "password123")

        r = client.post("/api/user/updatePassword", json={"user": {
            "id": alice_record["id"],
            "oldPassword": "password123",
            "newPassword": "new-password-1",
        }}, headers=alice)
        assert r.status_code == 200

        auth_headers(client, "alice", "new-password-1")

    def test_password_reset(self, client):
        admin = auth_headers(client)
        alice_record = add_user(client, admin, "alice")

        r = client.post("/api/user/passwordResetToken",
                        json={"user": {"id": alice_record["id"]}}, headers=admin)
        assert r.status_code == 200
        token = r.json()["passwordToken"]

        r = client.post("/api/user/resetPassword", json={"user": {
            "id": alice_record["id"],
            "passwordToken": token,
            "newPassword": "reset-password-1",
        }})
        assert r.status_code == 200

        auth_headers(client, "alice", "reset-password-1")

        r = client.post("/api/user/resetPassword", json={"user": {
            "id": alice_record["id"],
            "passwordToken": token,
            "newPassword": "reset-password-2",
        }})
        assert r.status_code == 400
