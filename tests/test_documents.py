from pathlib import Path

from app.core.config import settings
from app.core.roles import RoleCode
from conftest import PROPERTY_PAYLOAD

PDF_BYTES = b"%PDF-1.4\n% title deed\n"


def _upload(client, headers, content=PDF_BYTES, name="title deed.pdf", mime="application/pdf", property_id=None):
    data = {"property_id": str(property_id)} if property_id is not None else None
    return client.post("/documents", files={"file": (name, content, mime)}, data=data, headers=headers)


def test_upload_download_and_delete(client, approved_client):
    headers, _ = approved_client()

    resp = _upload(client, headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["original_name"] == "title deed.pdf"
    assert body["filename"].startswith("title_deed_")
    assert body["filename"].endswith(".pdf")
    assert body["size"] == len(PDF_BYTES)
    stored = Path(settings.document_storage_dir) / body["filename"]
    assert stored.read_bytes() == PDF_BYTES

    download = client.get(f"/documents/{body['id']}/download", headers=headers)
    assert download.status_code == 200
    assert download.content == PDF_BYTES
    assert download.headers["content-type"] == "application/pdf"

    assert client.delete(f"/documents/{body['id']}", headers=headers).status_code == 204
    assert not stored.exists()
    assert client.get(f"/documents/{body['id']}", headers=headers).status_code == 404


def test_upload_requires_client_role(client, make_user, auth_headers):
    headers = auth_headers(make_user("investor@example.com", RoleCode.INVESTOR))

    assert _upload(client, headers).status_code == 403


def test_rejects_empty_oversized_and_disallowed_files(client, approved_client, monkeypatch):
    headers, _ = approved_client()
    monkeypatch.setattr(settings, "document_max_bytes", 16)

    empty = _upload(client, headers, content=b"")
    oversized = _upload(client, headers, content=b"x" * 17)
    disallowed = _upload(client, headers, content=b"MZ", name="setup.exe", mime="application/x-msdownload")

    assert empty.status_code == 400
    assert oversized.status_code == 400
    assert disallowed.status_code == 400
    assert "not allowed" in disallowed.json()["error"]["message"]


def test_property_documents_are_shared_with_the_owner(client, approved_client, admin_headers):
    owner, _ = approved_client()
    other, _ = approved_client(email="other-client@example.com")
    property_id = client.post("/properties", json=PROPERTY_PAYLOAD, headers=owner).json()["id"]

    assert _upload(client, other, property_id=property_id).status_code == 403
    document = _upload(client, admin_headers, property_id=property_id).json()

    listing = client.get(f"/documents/property/{property_id}", headers=owner).json()
    assert [item["id"] for item in listing] == [document["id"]]
    assert client.get(f"/documents/{document['id']}", headers=owner).status_code == 200
    assert client.get(f"/documents/{document['id']}", headers=other).status_code == 403
    assert client.get(f"/documents/property/{property_id}", headers=other).status_code == 403
    # Only the uploader (or an admin) may delete
    assert client.delete(f"/documents/{document['id']}", headers=owner).status_code == 403


def test_upload_to_unknown_property(client, approved_client):
    headers, _ = approved_client()

    assert _upload(client, headers, property_id=9999).status_code == 404


def test_user_listings(client, approved_client, admin_headers):
    headers, _ = approved_client()
    document = _upload(client, headers).json()
    other, _ = approved_client(email="other-client@example.com")

    mine = client.get("/documents/me", headers=headers).json()
    as_admin = client.get(f"/documents/user/{document['user_id']}", headers=admin_headers).json()

    assert [item["id"] for item in mine] == [document["id"]]
    assert [item["id"] for item in as_admin] == [document["id"]]
    assert client.get(f"/documents/user/{document['user_id']}", headers=other).status_code == 403


def test_missing_file_on_disk(client, approved_client):
    headers, _ = approved_client()
    document = _upload(client, headers).json()
    (Path(settings.document_storage_dir) / document["filename"]).unlink()

    assert client.get(f"/documents/{document['id']}/download", headers=headers).status_code == 404


def test_virus_scanner_verdict(client, approved_client, monkeypatch):
    headers, _ = approved_client()
    monkeypatch.setattr(settings, "virus_scan_enabled", True)

    monkeypatch.setattr(settings, "virus_scan_command", "false")
    infected = _upload(client, headers)
    monkeypatch.setattr(settings, "virus_scan_command", "true")
    clean = _upload(client, headers)

    assert infected.status_code == 400
    assert clean.status_code == 201


def test_scanning_without_command_is_rejected(client, approved_client, monkeypatch):
    headers, _ = approved_client()
    monkeypatch.setattr(settings, "virus_scan_enabled", True)
    monkeypatch.setattr(settings, "virus_scan_command", None)

    assert _upload(client, headers).status_code == 400
