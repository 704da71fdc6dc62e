"""
Tests for login, lockout over HTTP and auth cookies.
"""
from fastapi.testclient import TestClient

from clinic_api.auth.models import User

LOGIN_URL = "/api/v1/auth/login"


def _login(client, email, password):
    return client.post(LOGIN_URL, json={"email": email, "password": password})


def test_login_sets_cookies_and_returns_user(client, register_user):
    register_user("first@example.com")

    response = _login(client, "First@Example.com", "secret123")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Login successful"
    assert body["user"]["email"] == "first@example.com"
    assert body["user"]["last_login"] is not None
    assert body["accessToken"] and body["refreshToken"]

    cookies = response.headers.get_list("set-cookie")
    access = next(c for c in cookies if c.startswith("access_token="))
    refresh = next(c for c in cookies if c.startswith("refresh_token="))
    for cookie in (access, refresh):
        assert "HttpOnly" in cookie
        assert "samesite=lax" in cookie.lower()
        assert "Secure" not in cookie
    assert "Max-Age=300" in access
    assert "Max-Age=259200" in refresh


def test_login_writes_session_snapshot(client, session_cache, register_user):
    user = register_user("first@example.com")

    _login(client, "first@example.com", "secret123")

    assert len(session_cache) == 1
    assert session_cache._entries[f"session:{user['id']}"]


def test_unknown_email_and_wrong_password_look_the_same(client, register_user):
    register_user("first@example.com")

    unknown = _login(client, "nobody@example.com", "secret123")
    wrong = _login(client, "first@example.com", "wrong-password")

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json()["message"] == wrong.json()["message"] == "Invalid credentials"


def test_five_failures_lock_the_account(client, db, register_user):
    register_user("first@example.com")

    for _ in range(5):
        assert _login(client, "first@example.com", "wrong-password").status_code == 401

    # Even the right password is refused while the lock runs
    response = _login(client, "first@example.com", "secret123")
    assert response.status_code == 423
    assert response.json()["message"] == "Account temporarily locked due to too many failed login attempts"

    user = db.query(User).filter(User.email == "first@example.com").one()
    assert user.login_attempts == 5


def test_lock_heals_after_duration(client, db, clock, register_user):
    register_user("first@example.com")
    for _ in range(5):
        _login(client, "first@example.com", "wrong-password")

    clock.advance(minutes=31)
    response = _login(client, "first@example.com", "secret123")

    assert response.status_code == 200
    user = db.query(User).filter(User.email == "first@example.com").one()
    db.refresh(user)
    assert user.login_attempts == 0
    assert user.lock_until is None


def test_successful_login_resets_failed_attempts(client, db, register_user):
    register_user("first@example.com")
    for _ in range(3):
        _login(client, "first@example.com", "wrong-password")

    assert _login(client, "first@example.com", "secret123").status_code == 200

    user = db.query(User).filter(User.email == "first@example.com").one()
    db.refresh(user)
    assert user.login_attempts == 0


def test_production_cookies_are_secure_and_strict(app_factory, register_user):
    register_user("first@example.com")
    app = app_factory(environment="production", access_token_secret="a" * 40, refresh_token_secret="b" * 40)

    with TestClient(app) as client:
        response = _login(client, "first@example.com", "secret123")

    assert response.status_code == 200
    assert "accessToken" not in response.json()
    cookies = response.headers.get_list("set-cookie")
    assert all("Secure" in cookie and "samesite=strict" in cookie.lower() for cookie in cookies)
    assert any("Max-Age=900" in cookie for cookie in cookies)


def test_lockout_walkthrough(client, db, clock):
    for email in ("a@x.com", "b@x.com"):
        client.post("/api/v1/auth/registration",
                    json={"email": email, "password": "Passw0rd!", "confirmPassword": "Passw0rd!"})
    roles = {user.email: user.role.value for user in db.query(User).all()}
    assert roles == {"a@x.com": "admin", "b@x.com": "user"}

    for _ in range(5):
        assert _login(client, "b@x.com", "wrong-password").status_code == 401
    assert _login(client, "b@x.com", "Passw0rd!").status_code == 423

    clock.advance(minutes=30, seconds=1)
    assert _login(client, "b@x.com", "Passw0rd!").status_code == 200

    user = db.query(User).filter(User.email == "b@x.com").one()
    db.refresh(user)
    assert user.login_attempts == 0
