from conftest import WALLET


def test_apply_grants_investor_role_and_masks_sensitive_fields(client, make_user, auth_headers):
    headers = auth_headers(make_user("ivy@example.com"))

    resp = client.post(
        "/investors/apply",
        json={
            "nationality": "Portuguese",
            "vat_number": "PT123456789",
            "phone_number": "+351 912 345 678",
            "country": "Portugal",
        },
        headers=headers,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["is_verified"] is False
    assert body["vat_number"] == "****6789"
    assert body["phone_number"] == "+35****678"
    assert client.get("/users/me", headers=headers).json()["roles"] == ["INVESTOR"]


def test_eligibility_reflects_existing_profile(client, make_user, auth_headers):
    headers = auth_headers(make_user("ivy@example.com"))

    before = client.get("/investors/eligibility", headers=headers).json()
    client.post("/investors/apply", json={}, headers=headers)
    after = client.get("/investors/eligibility", headers=headers).json()

    assert before == {"can_apply": True, "reason": None}
    assert after["can_apply"] is False


def test_apply_twice_conflicts(client, make_user, auth_headers):
    headers = auth_headers(make_user("ivy@example.com"))
    client.post("/investors/apply", json={}, headers=headers)

    assert client.post("/investors/apply", json={}, headers=headers).status_code == 409


def test_update_profile(client, verified_investor):
    headers, _, _ = verified_investor()

    resp = client.patch("/investors/me", json={"city": "Lisbon", "postal_code": "1000-001"}, headers=headers)

    assert resp.status_code == 200
    assert resp.json()["city"] == "Lisbon"


def test_wallets_are_lowercased_and_unique(client, verified_investor, make_user, auth_headers):
    headers, _, _ = verified_investor(wallet="0x" + "AB" * 20)
    wallets = client.get("/investors/me/wallets", headers=headers).json()
    assert wallets[0]["address"] == WALLET

    other = auth_headers(make_user("other@example.com"))
    client.post("/investors/apply", json={}, headers=other)
    resp = client.post("/investors/me/wallets", json={"address": WALLET}, headers=other)

    assert resp.status_code == 409


def test_wallet_address_format_is_validated(client, verified_investor):
    headers, _, _ = verified_investor()

    resp = client.post("/investors/me/wallets", json={"address": "0xnothex"}, headers=headers)

    assert resp.status_code == 422


def test_wallet_address_with_trailing_newline_is_rejected(client, verified_investor):
    headers, _, wallet = verified_investor()

    resp = client.post("/investors/me/wallets", json={"address": "0x" + "ef" * 20 + "\n"}, headers=headers)

    assert resp.status_code == 422
    wallets = client.get("/investors/me/wallets", headers=headers).json()
    assert [w["address"] for w in wallets] == [wallet]


def test_delete_wallet_and_foreign_wallet_is_forbidden(client, verified_investor):
    owner, _, _ = verified_investor()
    other, _, _ = verified_investor(email="other@example.com", wallet="0x" + "cd" * 20)
    wallet_id = client.get("/investors/me/wallets", headers=owner).json()[0]["id"]

    assert client.delete(f"/investors/me/wallets/{wallet_id}", headers=other).status_code == 403
    assert client.delete(f"/investors/me/wallets/{wallet_id}", headers=owner).status_code == 204
    assert client.get("/investors/me/wallets", headers=owner).json() == []


def test_admin_verifies_wallet(client, verified_investor, admin_headers):
    headers, _, _ = verified_investor()
    wallet_id = client.get("/investors/me/wallets", headers=headers).json()[0]["id"]

    resp = client.patch(
        f"/investors/wallets/{wallet_id}/verification",
        json={"is_verified": True},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["is_verified"] is True
    assert resp.json()["verified_at"] is not None


def test_admin_verification_and_revocation(client, verified_investor, admin_headers):
    _, investor_id, _ = verified_investor(verify=False)

    verified = client.patch(
        f"/investors/{investor_id}/verification",
        json={"is_verified": True},
        headers=admin_headers,
    ).json()
    revoked = client.patch(
        f"/investors/{investor_id}/verification",
        json={"is_verified": False},
        headers=admin_headers,
    ).json()

    assert verified["is_verified"] is True
    assert verified["verification_method"] == "MANUAL"
    assert revoked["is_verified"] is False
    assert revoked["verified_at"] is None


def test_admin_lists_investors_by_verification(client, verified_investor, admin_headers):
    verified_investor()
    verified_investor(email="pending@example.com", wallet="0x" + "cd" * 20, verify=False)

    resp = client.get("/investors", params={"is_verified": "true"}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["meta"]["total"] == 1


def test_investor_admin_routes_require_admin(client, verified_investor):
    headers, investor_id, _ = verified_investor()

    assert client.get("/investors", headers=headers).status_code == 403
    assert client.get(f"/investors/{investor_id}", headers=headers).status_code == 403
