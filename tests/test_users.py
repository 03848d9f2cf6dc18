from conftest import PASSWORD


def test_read_me_lists_roles(client, admin_id, admin_headers):
    resp = client.get("/users/me", headers=admin_headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == admin_id
    assert body["roles"] == ["ADMIN"]


def test_update_profile(client, make_user, auth_headers):
    headers = auth_headers(make_user("someone@example.com"))

    resp = client.patch(
        "/users/me",
        json={"full_name": "Renamed Person", "avatar_url": "https://cdn.example.com/a.png"},
        headers=headers,
    )

    assert resp.status_code == 200
    assert resp.json()["full_name"] == "Renamed Person"
    assert resp.json()["avatar_url"] == "https://cdn.example.com/a.png"


def test_update_profile_rejects_bad_avatar_url(client, make_user, auth_headers):
    headers = auth_headers(make_user("someone@example.com"))

    resp = client.patch("/users/me", json={"avatar_url": "not a url"}, headers=headers)

    assert resp.status_code == 422


def test_change_password_then_login_with_new_one(client, make_user, auth_headers):
    headers = auth_headers(make_user("someone@example.com"))

    resp = client.put(
        "/users/me/password",
        json={"current_password": PASSWORD, "new_password": "An0ther-pass"},
        headers=headers,
    )
    assert resp.status_code == 200

    old = client.post("/auth/login", json={"email": "someone@example.com", "password": PASSWORD})
    new = client.post("/auth/login", json={"email": "someone@example.com", "password": "An0ther-pass"})
    assert old.status_code == 401
    assert new.status_code == 200


def test_change_password_requires_current_password(client, make_user, auth_headers):
    headers = auth_headers(make_user("someone@example.com"))

    resp = client.put(
        "/users/me/password",
        json={"current_password": "not-it", "new_password": "An0ther-pass"},
        headers=headers,
    )

    assert resp.status_code == 400
