from __future__ import annotations

import os
import tempfile

_DOCUMENT_DIR = tempfile.mkdtemp(prefix="tokenizer-documents-")

os.environ.update(
    {
        "DATABASE_URL": "sqlite+pysqlite:///:memory:",
        "DB_AUTO_CREATE": "false",
        "SCHEDULER_ENABLED": "false",
        "PASSWORD_HASH_ROUNDS": "4",
        "DOCUMENT_STORAGE_DIR": _DOCUMENT_DIR,
        "BLOCKCHAIN_MOCK_MODE": "true",
        "KYC_MOCK_MODE": "true",
        "OAUTH_MOCK_MODE": "true",
        "VIRUS_SCAN_ENABLED": "false",
        "LOG_LEVEL": "WARNING",
    }
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.core.roles import RoleCode  # noqa: E402
from app.db.init_db import seed_roles  # noqa: E402
from app.db.session import SessionLocal, engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Base  # noqa: E402
from app.services import auth_service, flag_service, user_service  # noqa: E402

PASSWORD = "Sup3r-secret!"
WALLET = "0x" + "ab" * 20

PROPERTY_PAYLOAD = {
    "title": "Harbour View Lofts",
    "description": "Twelve renovated loft apartments next to the old harbour.",
    "country": "Portugal",
    "city": "Porto",
    "address": "Rua do Cais 12",
    "image_urls": ["https://img.example.com/lofts/1.jpg"],
    "total_price": "1200000.00",
    "token_price": "100.00",
    "irr": "8.50",
    "apr": "6.20",
    "value_growth": "3.10",
    "min_investment": "500.00",
    "tokens_available_percent": "40.00",
    "token_symbol": "HVL",
}

CLIENT_PAYLOAD = {
    "company_name": "Atlantic Estates",
    "contact_email": "ops@atlantic.example.com",
    "contact_phone": "+351 912 345 678",
    "country": "Portugal",
}


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_roles(session)
    finally:
        session.close()
    flag_service.clear_cache()
    yield
    flag_service.clear_cache()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user():
    """Create a user with the given roles and return its id."""

    def _make(email: str, *roles: RoleCode, full_name: str = "Test User") -> int:
        session = SessionLocal()
        try:
            user = auth_service.register_user(session, email=email, password=PASSWORD, full_name=full_name)
            if roles:
                user_service.set_roles(session, user, set(roles))
                session.commit()
            return user.id
        finally:
            session.close()

    return _make


@pytest.fixture
def auth_headers():
    """Mint a bearer token (with a live session row) for a user id."""

    def _headers(user_id: int) -> dict[str, str]:
        session = SessionLocal()
        try:
            user = user_service.get_user(session, user_id)
            tokens = auth_service.issue_login_tokens(session, user=user, ip_address="testclient", user_agent="pytest")
            return {"Authorization": f"Bearer {tokens.access.token}"}
        finally:
            session.close()

    return _headers


@pytest.fixture
def admin_id(make_user) -> int:
    return make_user("admin@example.com", RoleCode.ADMIN, full_name="Platform Admin")


@pytest.fixture
def admin_headers(admin_id, auth_headers) -> dict[str, str]:
    return auth_headers(admin_id)


@pytest.fixture
def approved_client(client, make_user, auth_headers, admin_headers):
    """An investor who applied as a client and was approved. Returns (headers, client_id)."""

    def _create(email: str = "client@example.com") -> tuple[dict[str, str], int]:
        user_id = make_user(email, RoleCode.INVESTOR, full_name="Client Owner")
        headers = auth_headers(user_id)
        resp = client.post("/clients/apply", json=CLIENT_PAYLOAD, headers=headers)
        assert resp.status_code == 201, resp.text
        client_id = resp.json()["id"]
        resp = client.patch(f"/clients/{client_id}/status", json={"status": "APPROVED"}, headers=admin_headers)
        assert resp.status_code == 200, resp.text
        return headers, client_id

    return _create


@pytest.fixture
def approved_property(client, approved_client, admin_headers):
    """Create, submit and approve a property. Returns (client_headers, property_id)."""

    def _create(symbol: str = "HVL", client_headers: dict[str, str] | None = None, **overrides):
        if client_headers is None:
            client_headers, _ = approved_client()
        payload = {**PROPERTY_PAYLOAD, "token_symbol": symbol, **overrides}
        resp = client.post("/properties", json=payload, headers=client_headers)
        assert resp.status_code == 201, resp.text
        property_id = resp.json()["id"]
        assert client.post(f"/properties/{property_id}/submit", headers=client_headers).status_code == 200
        resp = client.patch(
            f"/admin/properties/{property_id}/status",
            json={"status": "APPROVED"},
            headers=admin_headers,
        )
        assert resp.status_code == 200, resp.text
        return client_headers, property_id

    return _create


@pytest.fixture
def verified_investor(client, make_user, auth_headers, admin_headers):
    """Investor profile, admin-verified, with one registered wallet. Returns (headers, investor_id, wallet)."""

    def _create(email: str = "investor@example.com", wallet: str = WALLET, verify: bool = True):
        user_id = make_user(email, full_name="Ivy Investor")
        headers = auth_headers(user_id)
        resp = client.post("/investors/apply", json={"country": "Portugal"}, headers=headers)
        assert resp.status_code == 201, resp.text
        investor_id = resp.json()["id"]
        resp = client.post("/investors/me/wallets", json={"address": wallet}, headers=headers)
        assert resp.status_code == 201, resp.text
        if verify:
            resp = client.patch(
                f"/investors/{investor_id}/verification",
                json={"is_verified": True, "verification_method": "MANUAL"},
                headers=admin_headers,
            )
            assert resp.status_code == 200, resp.text
        return headers, investor_id, wallet

    return _create


@pytest.fixture
def listed_token(client, approved_property, admin_headers):
    """An active token on an approved property. Returns (client_headers, property_id, token_id)."""

    def _create(symbol: str = "HVL", total_supply: int = 1000, **property_overrides):
        client_headers, property_id = approved_property(symbol, **property_overrides)
        resp = client.post(
            "/tokens",
            json={
                "property_id": property_id,
                "name": "Harbour View Token",
                "symbol": symbol,
                "total_supply": total_supply,
                "decimals": 0,
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        return client_headers, property_id, resp.json()["id"]

    return _create
