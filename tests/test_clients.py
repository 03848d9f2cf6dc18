from app.core.roles import RoleCode
from conftest import CLIENT_PAYLOAD


def test_investor_can_apply_and_gains_client_role(client, make_user, auth_headers):
    headers = auth_headers(make_user("owner@example.com", RoleCode.INVESTOR))

    resp = client.post("/clients/apply", json=CLIENT_PAYLOAD, headers=headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "PENDING"
    assert body["contact_phone"] == "+351912345678"
    me = client.get("/users/me", headers=headers).json()
    assert me["roles"] == ["CLIENT", "INVESTOR"]


def test_apply_requires_investor_role(client, make_user, auth_headers):
    headers = auth_headers(make_user("plain@example.com"))

    resp = client.post("/clients/apply", json=CLIENT_PAYLOAD, headers=headers)

    assert resp.status_code == 403


def test_apply_twice_conflicts(client, make_user, auth_headers):
    headers = auth_headers(make_user("owner@example.com", RoleCode.INVESTOR))
    client.post("/clients/apply", json=CLIENT_PAYLOAD, headers=headers)

    resp = client.post("/clients/apply", json=CLIENT_PAYLOAD, headers=headers)

    assert resp.status_code == 409


def test_apply_validates_phone_and_wallet(client, make_user, auth_headers):
    headers = auth_headers(make_user("owner@example.com", RoleCode.INVESTOR))

    bad_phone = client.post("/clients/apply", json={**CLIENT_PAYLOAD, "contact_phone": "call me"}, headers=headers)
    bad_wallet = client.post("/clients/apply", json={**CLIENT_PAYLOAD, "wallet_address": "0x123"}, headers=headers)

    assert bad_phone.status_code == 422
    assert bad_wallet.status_code == 422


def test_update_own_client_profile(client, approved_client):
    headers, _ = approved_client()

    resp = client.patch("/clients/me", json={"company_name": "Atlantic Estates II"}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["company_name"] == "Atlantic Estates II"


def test_client_detail_is_owner_or_admin(client, approved_client, make_user, auth_headers, admin_headers):
    _, client_id = approved_client()
    stranger = auth_headers(make_user("stranger@example.com", RoleCode.INVESTOR))

    assert client.get(f"/clients/{client_id}", headers=stranger).status_code == 403
    assert client.get(f"/clients/{client_id}", headers=admin_headers).status_code == 200


def test_admin_lists_clients_with_filters(client, approved_client, make_user, auth_headers, admin_headers):
    approved_client()
    pending_headers = auth_headers(make_user("pending@example.com", RoleCode.INVESTOR))
    client.post(
        "/clients/apply",
        json={**CLIENT_PAYLOAD, "company_name": "Nordic Homes"},
        headers=pending_headers,
    )

    everything = client.get("/clients", headers=admin_headers).json()
    approved = client.get("/clients", params={"status": "APPROVED"}, headers=admin_headers).json()
    searched = client.get("/clients", params={"search": "nordic"}, headers=admin_headers).json()

    assert everything["meta"]["total"] == 2
    assert [item["status"] for item in approved["items"]] == ["APPROVED"]
    assert [item["company_name"] for item in searched["items"]] == ["Nordic Homes"]


def test_listing_clients_requires_admin(client, approved_client):
    headers, _ = approved_client()

    assert client.get("/clients", headers=headers).status_code == 403
