from decimal import Decimal

import pytest

from app.core.config import settings

TX_OK = "0x" + "b" * 63 + "1"
TX_PENDING = "0x" + "b" * 63 + "0"


@pytest.fixture
def market(listed_token, verified_investor):
    """An active token and a verified investor ready to buy it."""
    _, property_id, token_id = listed_token()
    headers, investor_id, wallet = verified_investor()
    return {
        "headers": headers,
        "investor_id": investor_id,
        "wallet": wallet,
        "property_id": property_id,
        "token_id": token_id,
    }


def _invest(client, market, amount="600.00", **overrides):
    payload = {"token_id": market["token_id"], "amount": amount, "wallet_address": market["wallet"], **overrides}
    return client.post("/investments", json=payload, headers=market["headers"])


def test_investment_reserves_tokens(client, market):
    resp = _invest(client, market, amount="650.00")

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "PENDING"
    assert body["property_id"] == market["property_id"]
    assert Decimal(body["token_quantity"]) == Decimal("6.5")
    assert Decimal(body["total_value"]) == Decimal("650")
    assert body["currency"] == "USD"


def test_unverified_investor_is_forbidden(client, listed_token, verified_investor):
    _, _, token_id = listed_token()
    headers, _, wallet = verified_investor(verify=False)

    resp = client.post(
        "/investments",
        json={"token_id": token_id, "amount": "600.00", "wallet_address": wallet},
        headers=headers,
    )

    assert resp.status_code == 403


def test_user_without_investor_profile_gets_not_found(client, listed_token, make_user, auth_headers):
    _, _, token_id = listed_token()
    headers = auth_headers(make_user("nobody@example.com"))

    resp = client.post(
        "/investments",
        json={"token_id": token_id, "amount": "600.00", "wallet_address": "0x" + "ab" * 20},
        headers=headers,
    )

    assert resp.status_code == 404


def test_wallet_must_belong_to_investor(client, market):
    resp = _invest(client, market, wallet_address="0x" + "99" * 20)

    assert resp.status_code == 403


def test_amount_below_minimum_or_price(client, market):
    below_minimum = _invest(client, market, amount="499.99")
    not_positive = _invest(client, market, amount="0")

    assert below_minimum.status_code == 400
    assert not_positive.status_code == 422


def test_inactive_token_or_unknown_token(client, market, admin_headers):
    client.patch(f"/tokens/{market['token_id']}", json={"is_active": False}, headers=admin_headers)

    inactive = _invest(client, market)
    unknown = _invest(client, market, token_id=9999)

    assert inactive.status_code == 400
    assert unknown.status_code == 404


def test_supply_cannot_be_oversold(client, listed_token, verified_investor):
    _, _, token_id = listed_token(total_supply=10)
    headers, _, wallet = verified_investor()
    buy = {"token_id": token_id, "wallet_address": wallet}

    assert client.post("/investments", json={**buy, "amount": "600.00"}, headers=headers).status_code == 201
    resp = client.post("/investments", json={**buy, "amount": "500.00"}, headers=headers)

    assert resp.status_code == 400
    details = resp.json()["error"]["details"]
    assert Decimal(details["requested"]) == Decimal("5")
    assert Decimal(details["available"]) == Decimal("4")


def test_cancelled_investment_releases_supply(client, listed_token, verified_investor):
    _, _, token_id = listed_token(total_supply=6)
    headers, _, wallet = verified_investor()
    buy = {"token_id": token_id, "wallet_address": wallet, "amount": "600.00"}
    first = client.post("/investments", json=buy, headers=headers).json()

    assert client.post("/investments", json=buy, headers=headers).status_code == 400
    assert client.post(f"/investments/{first['id']}/cancel", headers=headers).json()["status"] == "CANCELLED"
    assert client.post("/investments", json=buy, headers=headers).status_code == 201


def test_only_pending_investments_can_be_cancelled(client, market, admin_headers):
    investment_id = _invest(client, market).json()["id"]
    client.patch(
        f"/admin/investments/{investment_id}/status",
        json={"status": "CONFIRMED", "tx_hash": TX_OK},
        headers=admin_headers,
    )

    resp = client.post(f"/investments/{investment_id}/cancel", headers=market["headers"])

    assert resp.status_code == 400


def test_investment_visibility(client, market, verified_investor, admin_headers):
    investment_id = _invest(client, market).json()["id"]
    other, _, _ = verified_investor(email="other@example.com", wallet="0x" + "cd" * 20)

    assert client.get(f"/investments/{investment_id}", headers=market["headers"]).status_code == 200
    assert client.get(f"/investments/{investment_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/investments/{investment_id}", headers=other).status_code == 403
    assert client.get("/investments/me", headers=other).json()["meta"]["total"] == 0
    assert client.get("/investments/me", headers=market["headers"]).json()["meta"]["total"] == 1


def test_confirm_requires_transaction_hash(client, market, admin_headers):
    investment_id = _invest(client, market).json()["id"]

    missing = client.patch(
        f"/admin/investments/{investment_id}/status",
        json={"status": "CONFIRMED"},
        headers=admin_headers,
    )
    malformed = client.patch(
        f"/admin/investments/{investment_id}/status",
        json={"status": "CONFIRMED", "tx_hash": "0x1234"},
        headers=admin_headers,
    )

    assert missing.status_code == 400
    assert malformed.status_code == 400


def test_confirm_notifies_investor_and_lowercases_hash(client, market, admin_headers):
    investment_id = _invest(client, market).json()["id"]

    resp = client.patch(
        f"/admin/investments/{investment_id}/status",
        json={"status": "CONFIRMED", "tx_hash": TX_OK.upper().replace("0X", "0x")},
        headers=admin_headers,
    )

    assert resp.status_code == 200
    assert resp.json()["tx_hash"] == TX_OK
    types = [item["type"] for item in client.get("/notifications", headers=market["headers"]).json()["items"]]
    assert types == ["INVESTMENT_CONFIRMED"]


def test_transaction_hash_is_unique(client, market, admin_headers):
    first = _invest(client, market).json()["id"]
    second = _invest(client, market).json()["id"]
    client.patch(
        f"/admin/investments/{first}/status",
        json={"status": "CONFIRMED", "tx_hash": TX_OK},
        headers=admin_headers,
    )

    resp = client.patch(
        f"/admin/investments/{second}/status",
        json={"status": "CONFIRMED", "tx_hash": TX_OK},
        headers=admin_headers,
    )

    assert resp.status_code == 409


def test_illegal_transitions(client, market, admin_headers):
    investment_id = _invest(client, market).json()["id"]
    url = f"/admin/investments/{investment_id}/status"

    assert client.patch(url, json={"status": "REFUNDED"}, headers=admin_headers).status_code == 400
    assert client.patch(url, json={"status": "CANCELLED"}, headers=admin_headers).status_code == 200
    assert client.patch(url, json={"status": "PENDING"}, headers=admin_headers).status_code == 400


def test_failed_investment_can_be_retried(client, market, admin_headers):
    investment_id = _invest(client, market).json()["id"]
    url = f"/admin/investments/{investment_id}/status"

    assert client.patch(url, json={"status": "FAILED"}, headers=admin_headers).json()["status"] == "FAILED"
    retried = client.patch(url, json={"status": "CONFIRMED", "tx_hash": TX_OK}, headers=admin_headers)

    assert retried.json()["status"] == "CONFIRMED"


def test_failed_investment_retry_respects_remaining_supply(client, listed_token, verified_investor, admin_headers):
    _, _, token_id = listed_token(total_supply=10)
    headers, _, wallet = verified_investor()
    payload = {"token_id": token_id, "amount": "600.00", "wallet_address": wallet}
    failed_id = client.post("/investments", json=payload, headers=headers).json()["id"]
    url = f"/admin/investments/{failed_id}/status"
    client.patch(url, json={"status": "FAILED"}, headers=admin_headers)
    assert client.post("/investments", json=payload, headers=headers).status_code == 201

    confirm = client.patch(url, json={"status": "CONFIRMED", "tx_hash": TX_OK}, headers=admin_headers)
    reopen = client.patch(url, json={"status": "PENDING"}, headers=admin_headers)

    assert confirm.status_code == 400
    details = confirm.json()["error"]["details"]
    assert Decimal(details["requested"]) == Decimal("6")
    assert Decimal(details["available"]) == Decimal("4")
    assert reopen.status_code == 400
    assert client.get(f"/investments/{failed_id}", headers=headers).json()["status"] == "FAILED"


def test_on_chain_check_blocks_unsettled_transactions(client, market, admin_headers, monkeypatch):
    monkeypatch.setattr(settings, "verify_tx_on_confirm", True)
    investment_id = _invest(client, market).json()["id"]
    url = f"/admin/investments/{investment_id}/status"

    pending = client.patch(url, json={"status": "CONFIRMED", "tx_hash": TX_PENDING}, headers=admin_headers)
    settled = client.patch(url, json={"status": "CONFIRMED", "tx_hash": TX_OK}, headers=admin_headers)

    assert pending.status_code == 400
    assert settled.status_code == 200


def test_admin_filters_investments(client, market, admin_headers):
    first = _invest(client, market).json()["id"]
    _invest(client, market)
    client.patch(
        f"/admin/investments/{first}/status",
        json={"status": "CONFIRMED", "tx_hash": TX_OK},
        headers=admin_headers,
    )

    confirmed = client.get("/admin/investments", params={"status": "CONFIRMED"}, headers=admin_headers).json()
    by_token = client.get("/admin/investments", params={"token_id": market["token_id"]}, headers=admin_headers).json()

    assert [item["id"] for item in confirmed["items"]] == [first]
    assert by_token["meta"]["total"] == 2


def test_wallet_with_investments_cannot_be_removed(client, market):
    _invest(client, market)
    wallet_id = client.get("/investors/me/wallets", headers=market["headers"]).json()[0]["id"]

    resp = client.delete(f"/investors/me/wallets/{wallet_id}", headers=market["headers"])

    assert resp.status_code == 409
