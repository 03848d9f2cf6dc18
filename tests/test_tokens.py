from conftest import PROPERTY_PAYLOAD

CONTRACT = "0x" + "12" * 20
NOT_A_TOKEN = "0x" + "0" * 36 + "dead"


def _token_payload(property_id, **overrides):
    return {
        "property_id": property_id,
        "name": "Harbour View Token",
        "symbol": "HVL",
        "total_supply": 1000,
        **overrides,
    }


def test_admin_creates_token_for_approved_property(client, approved_property, admin_headers):
    _, property_id = approved_property()

    resp = client.post("/tokens", json=_token_payload(property_id), headers=admin_headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["symbol"] == "HVL"
    assert body["is_minted"] is False
    assert body["blockchain"] == "SEPOLIA"


def test_token_requires_approved_property(client, approved_client, admin_headers):
    headers, _ = approved_client()
    property_id = client.post("/properties", json=PROPERTY_PAYLOAD, headers=headers).json()["id"]

    resp = client.post("/tokens", json=_token_payload(property_id), headers=admin_headers)

    assert resp.status_code == 400


def test_one_token_per_property(client, listed_token, admin_headers):
    _, property_id, _ = listed_token()

    resp = client.post("/tokens", json=_token_payload(property_id, symbol="HVL2"), headers=admin_headers)

    assert resp.status_code == 409


def test_symbol_of_another_property_is_rejected(client, approved_property, admin_headers):
    headers, first = approved_property("FIRST")
    _, second = approved_property("SECOND", client_headers=headers)

    resp = client.post("/tokens", json=_token_payload(second, symbol="FIRST"), headers=admin_headers)

    assert resp.status_code == 409


def test_contract_address_must_be_erc20(client, approved_property, admin_headers):
    _, property_id = approved_property()

    rejected = client.post(
        "/tokens",
        json=_token_payload(property_id, contract_address=NOT_A_TOKEN),
        headers=admin_headers,
    )
    accepted = client.post(
        "/tokens",
        json=_token_payload(property_id, contract_address=CONTRACT),
        headers=admin_headers,
    )

    assert rejected.status_code == 400
    assert accepted.status_code == 201
    assert accepted.json()["is_minted"] is True


def test_token_creation_requires_admin(client, approved_property):
    headers, property_id = approved_property()

    assert client.post("/tokens", json=_token_payload(property_id), headers=headers).status_code == 403


def test_public_listing_hides_inactive_tokens(client, listed_token, admin_headers):
    _, _, token_id = listed_token()
    assert client.get(f"/tokens/{token_id}").status_code == 200

    client.patch(f"/tokens/{token_id}", json={"is_active": False}, headers=admin_headers)

    assert client.get(f"/tokens/{token_id}").status_code == 404
    assert client.get("/tokens").json()["meta"]["total"] == 0
    admin_view = client.get("/admin/tokens", params={"is_active": "false"}, headers=admin_headers).json()
    assert [item["id"] for item in admin_view["items"]] == [token_id]


def test_update_notifies_property_owner(client, listed_token, admin_headers):
    owner_headers, _, token_id = listed_token()

    resp = client.patch(f"/tokens/{token_id}", json={"name": "Harbour View Share"}, headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["name"] == "Harbour View Share"
    types = [item["type"] for item in client.get("/notifications", headers=owner_headers).json()["items"]]
    assert "TOKEN_UPDATED" in types


def test_metadata_without_contract_is_off_chain(client, listed_token, admin_headers):
    _, _, token_id = listed_token()

    resp = client.get(f"/tokens/{token_id}/metadata", headers=admin_headers)

    assert resp.status_code == 200
    assert resp.json()["on_chain"] is False
    assert resp.json()["contract_address"] is None


def test_metadata_and_balance_with_contract(client, listed_token, admin_headers):
    _, _, token_id = listed_token()
    client.patch(f"/tokens/{token_id}", json={"contract_address": CONTRACT}, headers=admin_headers)

    metadata = client.get(f"/tokens/{token_id}/metadata", headers=admin_headers).json()
    balance = client.get(f"/tokens/{token_id}/balance/{'0x' + 'ab' * 20}", headers=admin_headers)

    assert metadata["on_chain"] is True
    assert metadata["decimals"] == 18
    assert balance.status_code == 200
    assert int(balance.json()["raw_balance"]) >= 0


def test_balance_requires_deployed_contract(client, listed_token, admin_headers):
    _, _, token_id = listed_token()

    resp = client.get(f"/tokens/{token_id}/balance/{'0x' + 'ab' * 20}", headers=admin_headers)

    assert resp.status_code == 400


def test_delete_token(client, listed_token, admin_headers):
    _, _, token_id = listed_token()

    assert client.delete(f"/tokens/{token_id}", headers=admin_headers).status_code == 204
    assert client.get(f"/tokens/{token_id}").status_code == 404
