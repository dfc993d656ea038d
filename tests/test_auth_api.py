import pytest

from conftest import register
from core.constants import SESSION_COOKIE_NAME
from domain.schemas import UserProfile
from services.auth_service import auth_service

CREDENTIALS = {"email": "creator@example.com", "password": "correct-horse-battery"}


def test_register_sets_session_cookie(client) -> None:
    user = register(client)

    assert user["email"] == "creator@example.com"
    assert user["first_name"] == "Casey"
    assert "password_hash" not in user
    assert client.cookies.get(SESSION_COOKIE_NAME)

    me = client.get("/api/v1/auth/me")
    assert me.status_code == 200
    assert me.json()["user"]["id"] == user["id"]


def test_register_normalizes_email(client) -> None:
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "  Creator@Example.COM ", "password": "correct-horse-battery"},
    )

    assert response.status_code == 201
    assert response.json()["user"]["email"] == "creator@example.com"


def test_duplicate_email_conflicts(client) -> None:
    register(client)

    response = client.post("/api/v1/auth/register", json=CREDENTIALS)

    assert response.status_code == 409


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "not-an-email", "password": "correct-horse-battery"},
        {"email": "creator@example.com", "password": "short"},
        {"email": "creator@example.com"},
    ],
)
def test_register_validation(client, payload) -> None:
    response = client.post("/api/v1/auth/register", json=payload)

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid input")


def test_login_and_logout(client) -> None:
    register(client)
    client.cookies.clear()
    assert client.get("/api/v1/auth/me").status_code == 401

    login = client.post("/api/v1/auth/login", json=CREDENTIALS)
    assert login.status_code == 200
    assert login.json()["user"]["email"] == CREDENTIALS["email"]
    assert client.get("/api/v1/auth/me").status_code == 200

    logout = client.post("/api/v1/auth/logout")
    assert logout.status_code == 200
    assert logout.json() == {"success": True}
    assert client.get("/api/v1/auth/me").status_code == 401


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "creator@example.com", "password": "wrong-password"},
        {"email": "nobody@example.com", "password": "correct-horse-battery"},
    ],
)
def test_login_rejects_bad_credentials(client, payload) -> None:
    register(client)
    client.cookies.clear()

    response = client.post("/api/v1/auth/login", json=payload)

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"
    assert not client.cookies.get(SESSION_COOKIE_NAME)


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/api/v1/auth/me"),
        ("get", "/api/v1/settings"),
        ("get", "/api/v1/clips"),
        ("delete", "/api/v1/clips/rec1"),
        ("post", "/api/v1/submit-video"),
        ("post", "/api/v1/submit-storage-video"),
        ("post", "/api/v1/objects/upload-url"),
        ("get", "/api/v1/training-videos"),
        ("delete", "/api/v1/training-videos/abc"),
    ],
)
def test_protected_routes_require_a_session(client, method: str, path: str) -> None:
    kwargs = {"json": {}} if method == "post" else {}

    response = getattr(client, method)(path, **kwargs)

    assert response.status_code == 401


def test_tampered_token_is_rejected(client) -> None:
    client.cookies.set(SESSION_COOKIE_NAME, "not.a.jwt")

    assert client.get("/api/v1/auth/me").status_code == 401


def test_token_for_deleted_account_is_rejected(client) -> None:
    ghost = UserProfile(id="00000000-0000-0000-0000-000000000000", email="ghost@example.com")
    client.cookies.set(SESSION_COOKIE_NAME, auth_service.create_jwt_token(ghost))

    assert client.get("/api/v1/auth/me").status_code == 401


def test_jwt_round_trip() -> None:
    profile = UserProfile(id="user-1", email="a@example.com")

    payload = auth_service.verify_jwt_token(auth_service.create_jwt_token(profile))

    assert payload is not None
    assert payload["user_id"] == "user-1"
    assert payload["email"] == "a@example.com"
    assert auth_service.verify_jwt_token(None) is None
