from decimal import Decimal

from app.core.roles import RoleCode
from conftest import PASSWORD


def test_admin_routes_require_admin(client, make_user, auth_headers):
    headers = auth_headers(make_user("someone@example.com", RoleCode.INVESTOR))

    assert client.get("/admin/users", headers=headers).status_code == 403
    assert client.get("/admin/summary", headers=headers).status_code == 403
    assert client.get("/admin/users").status_code == 401


def test_list_users_with_filters(client, make_user, admin_headers):
    make_user("zoe@example.com", RoleCode.INVESTOR, full_name="Zoe Investor")
    make_user("adam@example.com", RoleCode.CLIENT, full_name="Adam Client")

    investors = client.get("/admin/users", params={"role": "INVESTOR"}, headers=admin_headers).json()
    by_email = client.get("/admin/users", params={"email": "ADAM"}, headers=admin_headers).json()
    by_name = client.get(
        "/admin/users",
        params={"sort_by": "full_name", "sort_order": "asc"},
        headers=admin_headers,
    ).json()

    assert [item["email"] for item in investors["items"]] == ["zoe@example.com"]
    assert [item["email"] for item in by_email["items"]] == ["adam@example.com"]
    assert [item["full_name"] for item in by_name["items"]] == ["Adam Client", "Platform Admin", "Zoe Investor"]


def test_update_roles(client, make_user, admin_headers):
    user_id = make_user("someone@example.com", RoleCode.INVESTOR)

    resp = client.patch(
        f"/admin/users/{user_id}/roles",
        json={"roles": ["INVESTOR", "CLIENT"]},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["roles"] == ["CLIENT", "INVESTOR"]
    audit = client.get("/admin/audit-logs", params={"action": "user.roles_update"}, headers=admin_headers).json()
    assert audit["items"][0]["details"] == {"old": ["INVESTOR"], "new": ["CLIENT", "INVESTOR"]}


def test_roles_are_validated(client, make_user, admin_headers):
    user_id = make_user("someone@example.com")

    assert client.patch(f"/admin/users/{user_id}/roles", json={"roles": []}, headers=admin_headers).status_code == 422
    assert (
        client.patch(f"/admin/users/{user_id}/roles", json={"roles": ["OWNER"]}, headers=admin_headers).status_code
        == 422
    )


def test_admin_cannot_drop_own_admin_role_or_suspend_self(client, admin_id, admin_headers):
    roles = client.patch(f"/admin/users/{admin_id}/roles", json={"roles": ["INVESTOR"]}, headers=admin_headers)
    status = client.patch(f"/admin/users/{admin_id}/status", json={"status": "SUSPENDED"}, headers=admin_headers)

    assert roles.status_code == 400
    assert status.status_code == 400


def test_suspension_revokes_sessions_and_blocks_login(client, make_user, auth_headers, admin_headers):
    user_id = make_user("someone@example.com")
    headers = auth_headers(user_id)
    assert client.get("/users/me", headers=headers).status_code == 200

    resp = client.patch(f"/admin/users/{user_id}/status", json={"status": "SUSPENDED"}, headers=admin_headers)

    assert resp.json()["status"] == "SUSPENDED"
    assert client.get("/users/me", headers=headers).status_code == 401
    login = client.post("/auth/login", json={"email": "someone@example.com", "password": PASSWORD})
    assert login.status_code == 401

    client.patch(f"/admin/users/{user_id}/status", json={"status": "ACTIVE"}, headers=admin_headers)
    login = client.post("/auth/login", json={"email": "someone@example.com", "password": PASSWORD})
    assert login.status_code == 200


def test_read_unknown_user(client, admin_headers):
    assert client.get("/admin/users/9999", headers=admin_headers).status_code == 404


def test_platform_summary(client, listed_token, verified_investor, admin_headers):
    _, _, token_id = listed_token()
    headers, _, wallet = verified_investor()
    investment = client.post(
        "/investments",
        json={"token_id": token_id, "amount": "700.00", "wallet_address": wallet},
        headers=headers,
    ).json()
    client.patch(
        f"/admin/investments/{investment['id']}/status",
        json={"status": "CONFIRMED", "tx_hash": "0x" + "c" * 64},
        headers=admin_headers,
    )

    summary = client.get("/admin/summary", headers=admin_headers).json()

    assert summary["users_total"] == 3
    assert summary["users_by_role"] == {"ADMIN": 1, "CLIENT": 1, "INVESTOR": 2}
    assert summary["properties_by_status"] == {"APPROVED": 1}
    assert summary["tokens_total"] == 1
    assert summary["investments_total"] == 1
    assert Decimal(summary["confirmed_investment_value"]) == Decimal("700")
    assert summary["kyc_by_status"] == {}


def test_registration_trend(client, make_user, admin_headers):
    make_user("someone@example.com")

    trend = client.get("/admin/registrations", params={"days": 7}, headers=admin_headers).json()

    assert trend["days"] == 7
    assert len(trend["daily"]) == 7
    assert trend["total"] == 2
