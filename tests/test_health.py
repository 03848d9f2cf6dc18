from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from app.core import scheduler
from app.core.config import settings
from app.db.session import SessionLocal
from app.models.domain import AuthSession
from app.tasks.session_cleanup import run_session_cleanup_job


def test_root(client):
    assert client.get("/").json()["message"].endswith("ready")


def test_health_reports_database(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "ok"}


def test_ping(client):
    assert client.get("/health/ping").json() == {"status": "ok"}


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/does-not-exist")

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "HTTP_404"


def test_scheduler_stays_off_when_disabled():
    scheduler.start_scheduler()

    assert scheduler._scheduler is None


def test_scheduler_registers_jobs(monkeypatch):
    monkeypatch.setattr(settings, "scheduler_enabled", True)
    monkeypatch.setattr(settings, "kyc_sync_enabled", True)

    scheduler.start_scheduler()
    try:
        job_ids = {job.id for job in scheduler._scheduler.get_jobs()}
    finally:
        scheduler.shutdown_scheduler()

    assert job_ids == {"session_cleanup", "kyc_status_sync"}
    assert scheduler._scheduler is None


def test_session_cleanup_removes_expired_sessions(client, make_user, auth_headers):
    user_id = make_user("someone@example.com")
    live = auth_headers(user_id)
    stale = auth_headers(user_id)
    session = SessionLocal()
    try:
        rows = session.scalars(select(AuthSession).order_by(AuthSession.id)).all()
        rows[-1].refresh_expires_at = datetime.now(timezone.utc) - timedelta(days=1)
        session.commit()
    finally:
        session.close()

    run_session_cleanup_job()

    assert client.get("/users/me", headers=live).status_code == 200
    assert client.get("/users/me", headers=stale).status_code == 401
