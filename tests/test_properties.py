import warnings
from decimal import Decimal

from app.core.roles import RoleCode
from app.schemas.properties import PropertyCreate
from conftest import PROPERTY_PAYLOAD


def _create(client, headers, **overrides):
    return client.post("/properties", json={**PROPERTY_PAYLOAD, **overrides}, headers=headers)


def test_client_creates_draft_property(client, approved_client):
    headers, client_id = approved_client()

    resp = _create(client, headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "DRAFT"
    assert body["client_id"] == client_id
    assert Decimal(body["token_price"]) == Decimal("100")
    assert body["image_urls"] == ["https://img.example.com/lofts/1.jpg"]


def test_pending_client_cannot_list_properties(client, make_user, auth_headers):
    headers = auth_headers(make_user("owner@example.com", RoleCode.INVESTOR))
    client.post(
        "/clients/apply",
        json={"company_name": "Pending Co", "contact_email": "p@example.com", "country": "Spain"},
        headers=headers,
    )

    assert _create(client, headers).status_code == 403


def test_property_payload_is_validated(client, approved_client):
    headers, _ = approved_client()

    assert _create(client, headers, token_symbol="bad-symbol").status_code == 422
    assert _create(client, headers, tokens_available_percent="120").status_code == 422
    assert _create(client, headers, description="too short").status_code == 422
    assert _create(client, headers, token_price="0").status_code == 422


def test_token_symbol_must_be_unique(client, approved_client):
    headers, _ = approved_client()
    _create(client, headers)

    resp = _create(client, headers, title="Another Building")

    assert resp.status_code == 409


def test_draft_is_hidden_from_public_but_visible_to_owner(client, approved_client):
    headers, _ = approved_client()
    property_id = _create(client, headers).json()["id"]

    assert client.get(f"/properties/{property_id}").status_code == 404
    assert client.get(f"/properties/{property_id}", headers=headers).status_code == 200
    assert client.get("/properties").json()["meta"]["total"] == 0


def test_update_and_delete_draft(client, approved_client):
    headers, _ = approved_client()
    property_id = _create(client, headers).json()["id"]

    updated = client.patch(f"/properties/{property_id}", json={"city": "Braga"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["city"] == "Braga"

    assert client.delete(f"/properties/{property_id}", headers=headers).status_code == 204
    assert client.get(f"/properties/{property_id}", headers=headers).status_code == 404


def test_other_client_cannot_edit(client, approved_client):
    owner, _ = approved_client()
    other, _ = approved_client(email="other-client@example.com")
    property_id = _create(client, owner).json()["id"]

    resp = client.patch(f"/properties/{property_id}", json={"city": "Braga"}, headers=other)

    assert resp.status_code == 403


def test_moderation_workflow_notifies_owner(client, approved_client, admin_headers):
    headers, _ = approved_client()
    property_id = _create(client, headers).json()["id"]

    # Only pending properties can be reviewed
    early = client.patch(f"/admin/properties/{property_id}/status", json={"status": "APPROVED"}, headers=admin_headers)
    assert early.status_code == 400

    submitted = client.post(f"/properties/{property_id}/submit", headers=headers)
    assert submitted.json()["status"] == "PENDING"
    assert client.patch(f"/properties/{property_id}", json={"city": "Braga"}, headers=headers).status_code == 400

    approved = client.patch(
        f"/admin/properties/{property_id}/status",
        json={"status": "APPROVED", "is_featured": True},
        headers=admin_headers,
    )
    assert approved.status_code == 200
    assert approved.json()["is_featured"] is True
    assert approved.json()["reviewed_at"] is not None

    public = client.get("/properties", params={"is_featured": "true"}).json()
    assert [item["id"] for item in public["items"]] == [property_id]

    notifications = client.get("/notifications", headers=headers).json()["items"]
    assert notifications[0]["type"] == "PROPERTY_APPROVED"


def test_rejection_requires_notes_and_allows_resubmission(client, approved_client, admin_headers):
    headers, _ = approved_client()
    property_id = _create(client, headers).json()["id"]
    client.post(f"/properties/{property_id}/submit", headers=headers)

    missing = client.patch(f"/admin/properties/{property_id}/status", json={"status": "REJECTED"}, headers=admin_headers)
    assert missing.status_code == 400

    rejected = client.patch(
        f"/admin/properties/{property_id}/status",
        json={"status": "REJECTED", "notes": "Missing land registry extract"},
        headers=admin_headers,
    )
    assert rejected.json()["status"] == "REJECTED"
    assert rejected.json()["review_notes"] == "Missing land registry extract"

    resubmitted = client.post(f"/properties/{property_id}/submit", headers=headers)
    assert resubmitted.json()["status"] == "PENDING"


def test_public_listing_filters_and_sorting(client, approved_property):
    headers, cheap = approved_property("CHEAP", total_price="500000.00", city="Lisbon")
    _, pricey = approved_property("PRICEY", client_headers=headers, total_price="900000.00")

    by_price = client.get("/properties", params={"sort_by": "total_price", "sort_order": "asc"}).json()
    in_lisbon = client.get("/properties", params={"city": "lisbon"}).json()

    assert [item["id"] for item in by_price["items"]] == [cheap, pricey]
    assert [item["id"] for item in in_lisbon["items"]] == [cheap]


def test_my_properties_and_admin_listing(client, approved_client, admin_headers):
    headers, _ = approved_client()
    _create(client, headers)

    mine = client.get("/properties/mine", headers=headers).json()
    drafts = client.get("/admin/properties", params={"status": "DRAFT"}, headers=admin_headers).json()

    assert mine["meta"]["total"] == 1
    assert drafts["meta"]["total"] == 1


def test_image_urls_dump_as_plain_strings_without_warnings():
    payload = PropertyCreate(**{**PROPERTY_PAYLOAD, "image_urls": ["https://img.example.com/a.jpg"]})

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        dumped = payload.model_dump()
        payload.model_dump_json()

    assert dumped["image_urls"] == ["https://img.example.com/a.jpg"]


def test_image_urls_must_be_http(client, approved_client):
    headers, _ = approved_client()

    resp = _create(client, headers, image_urls=["ftp://files.example.com/a.jpg"])

    assert resp.status_code == 422
