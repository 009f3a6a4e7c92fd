import pytest

from backend.auth.jwt import verify_token
from backend.core.errors import Unauthenticated
from backend.models.models import AuditLog, User
from backend.services import accounts
from backend.services.accounts import resolve_self_registered_role


def _register(client, **overrides):
    payload = {
        "full_name": "Rita Resident",
        "email": "rita@example.com",
        "password": "secret1",
        "phone": "555-123-4567",
    }
    payload.update(overrides)
    return client.post("/auth/register", json=payload)


def test_register_returns_token_and_public_user(client, db_session):
    response = _register(client)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["token_type"] == "bearer"
    assert data["expires_in"] == 24 * 60 * 60
    assert data["user"]["email"] == "rita@example.com"
    assert data["user"]["role"] == "resident"
    assert "hashed_password" not in data["user"]

    claims = verify_token(data["token"])
    assert claims == {"subject_id": data["user"]["id"], "role": "resident", "email": "rita@example.com"}
    assert db_session.query(AuditLog).filter(AuditLog.action == "user.register").count() == 1


@pytest.mark.parametrize(
    ("requested", "expected"),
    [(None, "resident"), ("guard", "guard"), ("resident", "resident"), ("admin", "resident"), ("janitor", "resident")],
)
def test_self_registration_never_yields_admin(client, requested, expected):
    response = _register(client, email=f"{requested or 'none'}@example.com", role=requested)
    assert response.status_code == 201
    assert response.json()["data"]["user"]["role"] == expected


def test_resolve_self_registered_role_is_case_insensitive():
    assert resolve_self_registered_role(" Guard ") == "guard"
    assert resolve_self_registered_role("ADMIN") == "resident"


def test_duplicate_email_is_a_conflict_and_creates_nothing(client, db_session):
    assert _register(client).status_code == 201
    response = _register(client, email="RITA@example.com", full_name="Someone Else")
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "CONFLICT"
    assert body["path"] == "/auth/register"
    assert db_session.query(User).count() == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "not-an-email"},
        {"password": "short"},
        {"full_name": "   "},
        {"phone": "abc"},
    ],
)
def test_register_validation_errors(client, overrides):
    response = _register(client, **overrides)
    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION"
    assert body["errors"]


def test_login_success_and_failures(client, create_user):
    user = create_user(email="guard@example.com", role="guard")

    response = client.post("/auth/login", json={"email": "GUARD@example.com", "password": "changeme"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == user.id
    assert data["user"]["role"] == "guard"

    wrong = client.post("/auth/login", json={"email": "guard@example.com", "password": "nope-nope"})
    assert wrong.status_code == 401
    assert wrong.json()["code"] == "UNAUTHENTICATED"

    unknown = client.post("/auth/login", json={"email": "ghost@example.com", "password": "changeme"})
    assert unknown.status_code == 401


def test_inactive_user_cannot_log_in_or_use_token(client, create_user, auth_headers):
    user = create_user(email="gone@example.com", is_active=False)

    response = client.post("/auth/login", json={"email": "gone@example.com", "password": "changeme"})
    assert response.status_code == 401
    assert response.json()["message"] == "User account is inactive"

    assert client.get("/auth/me", headers=auth_headers(user)).status_code == 401


def test_me_requires_a_valid_token(client, create_user, auth_headers):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401

    user = create_user(email="me@example.com")
    response = client.get("/auth/me", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "me@example.com"


def test_verify_token_rejects_garbage():
    with pytest.raises(Unauthenticated):
        verify_token("abc.def.ghi")


def test_logout_acknowledges(client, create_user, auth_headers):
    user = create_user()
    response = client.post("/auth/logout", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged out successfully", "data": None}
    assert client.post("/auth/logout").status_code == 401


def test_residents_listing_is_staff_only(client, create_user, auth_headers):
    guard = create_user(role="guard")
    resident_b = create_user(role="resident", full_name="Bob Resident")
    create_user(role="resident", full_name="Alice Resident")
    create_user(role="resident", full_name="Zed Inactive", is_active=False)

    response = client.get("/auth/residents", headers=auth_headers(guard))
    assert response.status_code == 200
    names = [entry["full_name"] for entry in response.json()["data"]]
    assert names == ["Alice Resident", "Bob Resident"]

    forbidden = client.get("/auth/residents", headers=auth_headers(resident_b))
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "FORBIDDEN"


def test_admin_can_list_and_update_users(client, db_session, create_user, auth_headers):
    admin = create_user(role="admin")
    guard = create_user(role="guard")
    create_user(role="resident")

    listed = client.get("/auth/users", params={"role": "guard"}, headers=auth_headers(admin))
    assert listed.status_code == 200
    assert [entry["id"] for entry in listed.json()["data"]] == [guard.id]

    response = client.patch(f"/auth/users/{guard.id}", json={"is_active": False}, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["data"]["is_active"] is False
    assert db_session.query(AuditLog).filter(AuditLog.action == "user.update").count() == 1

    assert client.get("/auth/users", headers=auth_headers(guard)).status_code == 401


def test_admin_cannot_deactivate_or_demote_self(client, create_user, auth_headers):
    admin = create_user(role="admin")

    response = client.patch(f"/auth/users/{admin.id}", json={"is_active": False}, headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION"

    response = client.patch(f"/auth/users/{admin.id}", json={"role": "guard"}, headers=auth_headers(admin))
    assert response.status_code == 400

    missing = client.patch("/auth/users/9999", json={"role": "guard"}, headers=auth_headers(admin))
    assert missing.status_code == 404


def test_user_management_is_admin_only(client, create_user, auth_headers):
    guard = create_user(role="guard")
    response = client.get("/auth/users", headers=auth_headers(guard))
    assert response.status_code == 403


def test_registration_race_on_email_is_a_conflict(client, db_session, create_user, monkeypatch):
    create_user(email="taken@example.com")
    # Simulate a concurrent registration that committed after the duplicate check ran.
    monkeypatch.setattr(accounts, "get_user_by_email", lambda session, email: None)

    response = _register(client, email="taken@example.com")
    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT"
    assert db_session.query(User).filter(User.email == "taken@example.com").count() == 1


def test_register_normalizes_email_case(client):
    response = _register(client, email="Mixed.Case@Example.COM")
    assert response.status_code == 201
    assert response.json()["data"]["user"]["email"] == "mixed.case@example.com"
