from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError, ForbiddenError, NotFoundError
from app.core.pagination import PageMeta, PaginationParams, paginate
from app.core.phone import normalize_phone
from app.core.roles import RoleCode
from app.models.domain import Client, User
from app.models.enums import ClientStatus
from app.schemas.clients import ClientApply, ClientUpdate
from app.services.user_service import grant_role

logger = logging.getLogger(__name__)


def apply_as_client(db: Session, *, user: User, payload: ClientApply) -> Client:
    if not any(role.code == RoleCode.INVESTOR.value for role in user.roles):
        raise ForbiddenError("Only investors can apply to become a client")
    if db.scalar(select(Client.id).where(Client.user_id == user.id)):
        raise ConflictError("A client profile already exists for this user")

    data = payload.model_dump()
    data["contact_phone"] = normalize_phone(data.get("contact_phone"))
    if data.get("wallet_address"):
        data["wallet_address"] = data["wallet_address"].lower()
    client = Client(user_id=user.id, status=ClientStatus.PENDING.value, **data)
    db.add(client)
    grant_role(db, user, RoleCode.CLIENT)
    db.commit()
    db.refresh(client)
    logger.info("User %s applied as client %s", user.id, client.id)
    return client


def get_client(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if not client:
        raise NotFoundError("Client", client_id)
    return client


def get_client_by_user(db: Session, user_id: int) -> Client:
    client = db.scalar(select(Client).where(Client.user_id == user_id))
    if not client:
        raise NotFoundError("Client profile")
    return client


def update_client_profile(db: Session, *, client: Client, payload: ClientUpdate) -> Client:
    changes = payload.model_dump(exclude_unset=True)
    if "contact_phone" in changes:
        changes["contact_phone"] = normalize_phone(changes["contact_phone"])
    if changes.get("wallet_address"):
        changes["wallet_address"] = changes["wallet_address"].lower()
    for field, value in changes.items():
        setattr(client, field, value)
    db.commit()
    db.refresh(client)
    return client


def update_client_status(db: Session, client_id: int, status: ClientStatus) -> Client:
    client = get_client(db, client_id)
    client.status = status.value
    db.commit()
    db.refresh(client)
    return client


def list_clients(
    db: Session,
    *,
    params: PaginationParams,
    status: ClientStatus | None = None,
    search: str | None = None,
) -> tuple[list[Client], PageMeta]:
    stmt = select(Client).order_by(Client.created_at.desc(), Client.id.desc())
    if status:
        stmt = stmt.where(Client.status == status.value)
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Client.company_name.ilike(pattern),
                Client.contact_email.ilike(pattern),
                Client.country.ilike(pattern),
            )
        )
    return paginate(db, stmt, params)
