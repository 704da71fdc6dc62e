"""
Tests for profile and user management endpoints.
"""
import json

from clinic_api.auth.models import User


def _snapshot(session_cache, user_id):
    value, _ = session_cache._entries[f"session:{user_id}"]
    return json.loads(value)


def _user_id(client, headers):
    return client.get("/api/v1/users/me", headers=headers).json()["user"]["id"]


def test_me_returns_current_user(client, staff_headers):
    response = client.get("/api/v1/users/me", headers=staff_headers)

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "staff@example.com"
    assert response.json()["user"]["display_name"] == "Staff"


def test_update_info_changes_email_and_session(client, session_cache, staff_headers):
    user_id = _user_id(client, staff_headers)

    response = client.put("/api/v1/users/update-info", headers=staff_headers,
                          json={"email": "New.Staff@example.com"})

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "new.staff@example.com"
    assert _snapshot(session_cache, user_id)["email"] == "new.staff@example.com"


def test_update_info_refuses_taken_email(client, staff_headers):
    response = client.put("/api/v1/users/update-info", headers=staff_headers,
                          json={"email": "admin@example.com"})

    assert response.status_code == 400
    assert response.json()["message"] == "Email already exists"


def test_update_password(client, staff_headers):
    response = client.put("/api/v1/users/update-password", headers=staff_headers,
                          json={"oldPassword": "secret123", "newPassword": "better456"})

    assert response.status_code == 200
    old = client.post("/api/v1/auth/login", json={"email": "staff@example.com", "password": "secret123"})
    new = client.post("/api/v1/auth/login", json={"email": "staff@example.com", "password": "better456"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_update_password_requires_old_password(client, staff_headers):
    response = client.put("/api/v1/users/update-password", headers=staff_headers,
                          json={"oldPassword": "wrong-one", "newPassword": "better456"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid old password"
    login = client.post("/api/v1/auth/login", json={"email": "staff@example.com", "password": "secret123"})
    assert login.status_code == 200


def test_new_password_must_follow_policy(client, staff_headers):
    response = client.put("/api/v1/users/update-password", headers=staff_headers,
                          json={"oldPassword": "secret123", "newPassword": "abc"})

    assert response.status_code == 400
    assert response.json()["errors"] == ["Password must be at least 6 characters long"]


def test_update_password_for_social_account_is_refused(client):
    login = client.post("/api/v1/auth/social-auth", json={"email": "social@example.com"})
    headers = {"access-token": login.json()["accessToken"]}

    response = client.put("/api/v1/users/update-password", headers=headers,
                          json={"oldPassword": "anything", "newPassword": "better456"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid user"


def test_update_avatar_replaces_stored_picture(client, media_store, session_cache, staff_headers):
    user_id = _user_id(client, staff_headers)
    old_public_id = client.get("/api/v1/users/me", headers=staff_headers).json()["user"]["avatar"]["public_id"]

    response = client.put("/api/v1/users/update-avatar", headers=staff_headers,
                          json={"avatar": "data:image/png;base64,AAAA"})

    assert response.status_code == 200
    avatar = response.json()["user"]["avatar"]
    assert avatar["public_id"].startswith("avatars/upload_")
    assert old_public_id in media_store.destroyed
    assert _snapshot(session_cache, user_id)["avatar"] == avatar


def test_update_avatar_survives_failed_cleanup(client, media_store, staff_headers):
    media_store.fail_destroy = True

    response = client.put("/api/v1/users/update-avatar", headers=staff_headers,
                          json={"avatar": "https://img.example.com/me.png"})

    assert response.status_code == 200


def test_update_avatar_upload_failure(client, media_store, staff_headers):
    media_store.fail_uploads = True

    response = client.put("/api/v1/users/update-avatar", headers=staff_headers,
                          json={"avatar": "https://img.example.com/me.png"})

    assert response.status_code == 400
    assert response.json()["message"] == "Avatar upload failed"


def test_admin_lists_users(client, admin_headers, staff_headers):
    response = client.get("/api/v1/users/all-users?page=1&limit=1", headers=admin_headers)

    assert response.status_code == 200
    page = response.json()["data"]
    assert page["pagination"]["total"] == 2
    assert page["pagination"]["total_pages"] == 2
    assert page["pagination"]["has_next_page"] is True
    assert page["pagination"]["has_prev_page"] is False
    assert len(page["users"]) == 1


def test_regular_user_cannot_list_users(client, staff_headers):
    response = client.get("/api/v1/users/all-users", headers=staff_headers)

    assert response.status_code == 403


def test_role_change_reaches_live_session(client, admin_headers, staff_headers):
    assert client.get("/api/v1/users/all-users", headers=staff_headers).status_code == 403

    response = client.put("/api/v1/users/update-role", headers=admin_headers,
                          json={"email": "staff@example.com", "role": "admin"})

    assert response.status_code == 200
    assert response.json()["user"]["role"] == "admin"
    # No new login needed: the session snapshot carries the new role
    assert client.get("/api/v1/users/all-users", headers=staff_headers).status_code == 200


def test_update_role_of_unknown_user(client, admin_headers):
    response = client.put("/api/v1/users/update-role", headers=admin_headers,
                          json={"email": "ghost@example.com", "role": "admin"})

    assert response.status_code == 404


def test_delete_user_revokes_session(client, db, admin_headers, staff_headers):
    user_id = _user_id(client, staff_headers)

    response = client.delete(f"/api/v1/users/delete/{user_id}", headers=admin_headers)

    assert response.status_code == 200
    assert db.query(User).filter(User.id == user_id).first() is None
    assert client.get("/api/v1/users/me", headers=staff_headers).status_code == 401


def test_delete_unknown_user(client, admin_headers):
    response = client.delete("/api/v1/users/delete/does-not-exist", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["message"] == "User not found"


def test_user_profile_by_id(client, admin_headers, staff_headers):
    user_id = _user_id(client, staff_headers)

    response = client.get(f"/api/v1/users/{user_id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "staff@example.com"
