from sqlalchemy import update

from app.db.session import SessionLocal
from app.models.domain import FeatureFlag
from app.services import flag_service


def test_flags_default_to_empty_and_require_auth(client, admin_headers):
    assert client.get("/flags").status_code == 401
    assert client.get("/flags", headers=admin_headers).json() == {}


def test_admin_upserts_flag(client, admin_headers):
    created = client.patch(
        "/admin/flags/secondary-market",
        json={"enabled": True, "description": "Peer-to-peer token resale"},
        headers=admin_headers,
    )
    toggled = client.patch("/admin/flags/secondary-market", json={"enabled": False}, headers=admin_headers)

    assert created.status_code == 200
    assert created.json()["updated_by"] == "admin@example.com"
    assert toggled.json()["enabled"] is False
    assert toggled.json()["description"] == "Peer-to-peer token resale"
    assert client.get("/flags", headers=admin_headers).json() == {"secondary-market": False}
    assert [flag["key"] for flag in client.get("/admin/flags", headers=admin_headers).json()] == ["secondary-market"]


def test_flag_key_format_is_enforced(client, admin_headers):
    resp = client.patch("/admin/flags/Bad Key!", json={"enabled": True}, headers=admin_headers)

    assert resp.status_code == 422


def test_flag_changes_require_admin(client, make_user, auth_headers):
    headers = auth_headers(make_user("someone@example.com"))

    assert client.patch("/admin/flags/beta", json={"enabled": True}, headers=headers).status_code == 403


def test_flag_reads_are_cached_until_cleared(client, admin_headers):
    client.patch("/admin/flags/beta", json={"enabled": True}, headers=admin_headers)
    assert client.get("/flags", headers=admin_headers).json() == {"beta": True}

    # Change the row behind the service's back
    session = SessionLocal()
    try:
        session.execute(update(FeatureFlag).where(FeatureFlag.key == "beta").values(enabled=False))
        session.commit()
        assert flag_service.get_flag(session, "beta") is True
        flag_service.clear_cache()
        assert flag_service.get_flag(session, "beta") is False
        assert flag_service.get_flag(session, "missing") is False
    finally:
        session.close()


def test_flag_update_is_audited(client, admin_headers):
    client.patch("/admin/flags/beta", json={"enabled": True}, headers=admin_headers)

    entries = client.get("/admin/audit-logs", params={"action": "flag.update"}, headers=admin_headers).json()

    assert [(item["target_id"], item["details"]) for item in entries["items"]] == [("beta", {"enabled": True})]
