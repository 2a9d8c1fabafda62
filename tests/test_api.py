"""
End-to-end tests for the HTTP API.
"""

from fastapi.testclient import TestClient

from conftest import ADMIN_EMAIL, StaticConfigProvider
from usermanagement.main import create_app


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_register_and_login(client, register_user):
    """Test registering a user then logging in with the same credentials."""
    response = register_user()

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "john@example.com"
    assert body["role"] == "USER"
    assert body["token_type"] == "Bearer"
    assert body["expires_in"] == 3600
    assert "password" not in body
    assert "password_hash" not in body

    response = client.post(
        "/api/auth/login", json={"email": "john@example.com", "password": "secret1"}
    )
    assert response.status_code == 200
    assert response.json()["user_id"] == body["user_id"]

    me = client.get("/api/users/me", headers=auth_header(response.json()["token"]))
    assert me.status_code == 200
    assert me.json()["email"] == "john@example.com"


def test_register_duplicate_email(register_user):
    """Test a second registration for the same email is a validation error."""
    assert register_user().status_code == 201

    response = register_user(email="JOHN@example.com")

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Error"
    assert body["field_errors"] == {"email": "Email already registered"}
    assert body["path"] == "/api/auth/register"


def test_register_invalid_payload(register_user):
    """Test request validation failures list the offending fields."""
    response = register_user(email="not-an-email", password="123", first_name="J0hn")

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation Failed"
    assert {"email", "password", "first_name"} <= set(body["field_errors"])


def test_login_failures_look_the_same(client, register_user):
    """Test unknown email and wrong password produce identical responses."""
    register_user()

    unknown = client.post(
        "/api/auth/login", json={"email": "nobody@example.com", "password": "secret1"}
    )
    wrong = client.post(
        "/api/auth/login", json={"email": "john@example.com", "password": "wrong-password"}
    )

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json()["message"] == wrong.json()["message"] == "Invalid email or password"
    assert unknown.headers["www-authenticate"] == "Bearer"


def test_protected_endpoint_without_token(client):
    """Test missing or garbage tokens are 401, not 403."""
    assert client.get("/api/users/me").status_code == 401
    assert client.get("/api/users/me", headers=auth_header("garbage")).status_code == 401
    assert client.get("/api/audit-logs").status_code == 401


def test_admin_endpoints_forbidden_for_users(client, register_user):
    """Test a USER token on ADMIN endpoints is 403."""
    token = register_user().json()["token"]

    response = client.get("/api/audit-logs", headers=auth_header(token))
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"

    response = client.post(
        "/api/auth/register-admin",
        json={
            "first_name": "Eve",
            "last_name": "Evil",
            "email": "eve@example.com",
            "password": "secret1",
        },
        headers=auth_header(token),
    )
    assert response.status_code == 403


def test_register_admin(client, admin_headers):
    """Test an administrator can create another administrator."""
    response = client.post(
        "/api/auth/register-admin",
        json={
            "first_name": "Grace",
            "last_name": "Hopper",
            "email": "grace@example.com",
            "password": "secret1",
        },
        headers=admin_headers,
    )

    assert response.status_code == 201
    assert response.json()["role"] == "ADMIN"

    token = response.json()["token"]
    assert client.get("/api/audit-logs", headers=auth_header(token)).status_code == 200


def test_users_can_only_update_themselves(client, register_user):
    """Test profile updates by owner and by another user."""
    john = register_user().json()
    jane = register_user(email="jane@example.com", first_name="Jane").json()
    update = {"first_name": "Johnny", "last_name": "Doe", "email": "john@example.com"}

    response = client.put(
        f"/api/users/{john['user_id']}", json=update, headers=auth_header(john["token"])
    )
    assert response.status_code == 200
    assert response.json()["first_name"] == "Johnny"

    response = client.put(
        f"/api/users/{john['user_id']}", json=update, headers=auth_header(jane["token"])
    )
    assert response.status_code == 403


def test_update_email_to_taken_address(client, register_user):
    """Test changing an email to one that is already registered."""
    john = register_user().json()
    register_user(email="jane@example.com", first_name="Jane")

    response = client.put(
        f"/api/users/{john['user_id']}",
        json={"first_name": "John", "last_name": "Doe", "email": "jane@example.com"},
        headers=auth_header(john["token"]),
    )

    assert response.status_code == 400
    assert response.json()["field_errors"] == {"email": "Email already registered"}


def test_email_change_invalidates_old_token(client, register_user):
    """Test a token stops working once its subject email changes."""
    john = register_user().json()

    response = client.put(
        f"/api/users/{john['user_id']}",
        json={"first_name": "John", "last_name": "Doe", "email": "johnny@example.com"},
        headers=auth_header(john["token"]),
    )
    assert response.status_code == 200

    assert client.get("/api/users/me", headers=auth_header(john["token"])).status_code == 401

    login = client.post(
        "/api/auth/login", json={"email": "johnny@example.com", "password": "secret1"}
    )
    assert login.status_code == 200


def test_role_change_takes_effect_immediately(client, register_user, admin_headers):
    """Test promotion and demotion apply to already-issued tokens."""
    john = register_user().json()
    headers = auth_header(john["token"])
    assert client.get("/api/audit-logs", headers=headers).status_code == 403

    response = client.put(
        f"/api/users/{john['user_id']}/role", json={"role": "ADMIN"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["role"] == "ADMIN"
    assert client.get("/api/audit-logs", headers=headers).status_code == 200

    client.put(f"/api/users/{john['user_id']}/role", json={"role": "USER"}, headers=admin_headers)
    assert client.get("/api/audit-logs", headers=headers).status_code == 403


def test_delete_user(client, register_user, admin_headers):
    """Test deletion by an administrator revokes access and 404s afterwards."""
    john = register_user().json()

    response = client.delete(f"/api/users/{john['user_id']}", headers=admin_headers)
    assert response.status_code == 204

    assert client.get("/api/users/me", headers=auth_header(john["token"])).status_code == 401

    response = client.get(f"/api/users/{john['user_id']}", headers=admin_headers)
    assert response.status_code == 404
    assert response.json()["message"] == f"User not found with id: {john['user_id']}"

    assert client.delete(f"/api/users/{john['user_id']}", headers=admin_headers).status_code == 404


def test_get_user_by_email(client, register_user):
    """Test looking a user up by email."""
    token = register_user().json()["token"]

    response = client.get("/api/users/email/John@Example.com", headers=auth_header(token))

    assert response.status_code == 200
    assert response.json()["first_name"] == "John"
    assert "password_hash" not in response.json()

    response = client.get("/api/users/email/nobody@example.com", headers=auth_header(token))
    assert response.status_code == 404


def test_list_users_reflects_changes(client, register_user, admin_headers):
    """Test the cached user list is refreshed after writes."""
    users = client.get("/api/users", headers=admin_headers).json()
    assert [u["email"] for u in users] == [ADMIN_EMAIL]

    john = register_user().json()
    users = client.get("/api/users", headers=admin_headers).json()
    assert [u["email"] for u in users] == [ADMIN_EMAIL, "john@example.com"]

    client.put(
        f"/api/users/{john['user_id']}/role", json={"role": "ADMIN"}, headers=admin_headers
    )

    users = client.get("/api/users", headers=admin_headers).json()
    assert {u["email"]: u["role"] for u in users} == {ADMIN_EMAIL: "ADMIN", "john@example.com": "ADMIN"}


def test_audit_logs(client, register_user, admin_headers):
    """Test audit events are recorded newest first and filterable per user."""
    john = register_user().json()
    client.delete(f"/api/users/{john['user_id']}", headers=admin_headers)

    events = client.get("/api/audit-logs", headers=admin_headers).json()
    assert events[0]["action"] == "USER_DELETED"
    assert "secret1" not in str(events)

    user_events = client.get(
        f"/api/audit-logs/user/{john['user_id']}", headers=admin_headers
    ).json()
    assert [e["action"] for e in user_events] == ["USER_DELETED", "USER_REGISTERED"]


def test_health(client):
    """Test the health endpoint reports Redis status."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["redis"] == "connected"


def test_health_without_redis():
    """Test the API runs on the in-memory store without Redis."""
    app = create_app(StaticConfigProvider())
    with TestClient(app) as client:
        response = client.get("/health")
        assert response.json()["redis"] == "disabled"

        # No seeded admin, but registration still works
        response = client.post(
            "/api/auth/register",
            json={
                "first_name": "John",
                "last_name": "Doe",
                "email": "john@example.com",
                "password": "secret1",
            },
        )
        assert response.status_code == 201
        assert response.json()["user_id"] == 1


def test_redis_backed_store(mock_redis_with_data):
    """Test the full flow against the Redis credential store."""
    app = create_app(StaticConfigProvider(backend="redis"), redis_client=mock_redis_with_data)
    with TestClient(app) as client:
        response = client.post(
            "/api/auth/register",
            json={
                "first_name": "John",
                "last_name": "Doe",
                "email": "john@example.com",
                "password": "secret1",
            },
        )
        assert response.status_code == 201
        assert "user:email:john@example.com" in mock_redis_with_data._storage

        response = client.post(
            "/api/auth/login", json={"email": "john@example.com", "password": "secret1"}
        )
        assert response.status_code == 200


def test_unexpected_error_is_hidden(config_provider, mock_redis_with_data):
    """Test unhandled errors return a generic 500 body."""
    app = create_app(config_provider, redis_client=mock_redis_with_data)

    @app.get("/boom")
    async def boom():
        raise RuntimeError("database password is hunter2")

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.get("/boom")

    assert response.status_code == 500
    assert response.json()["message"] == "An unexpected error occurred"
    assert "hunter2" not in response.text
