from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.exceptions import ForbiddenError
from app.core.pagination import PaginationParams
from app.core.roles import ADMIN_ROLES
from app.db.session import get_db
from app.models.enums import ClientStatus
from app.schemas.clients import ClientApply, ClientRead, ClientStatusUpdate, ClientUpdate
from app.schemas.common import Page
from app.services import client_service
from app.services.audit_service import log_action

router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("/apply", response_model=ClientRead, status_code=status.HTTP_201_CREATED)
def apply(
    payload: ClientApply,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    client = client_service.apply_as_client(db, user=current_user.user, payload=payload)
    log_action(
        db,
        user_id=current_user.id,
        action="client.apply",
        target_type="client",
        target_id=str(client.id),
        commit=True,
    )
    return ClientRead.model_validate(client)


@router.get("/me", response_model=ClientRead)
def read_my_client(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    return ClientRead.model_validate(client_service.get_client_by_user(db, current_user.id))


@router.patch("/me", response_model=ClientRead)
def update_my_client(
    payload: ClientUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    client = client_service.get_client_by_user(db, current_user.id)
    client = client_service.update_client_profile(db, client=client, payload=payload)
    return ClientRead.model_validate(client)


@router.get("", response_model=Page[ClientRead])
def list_clients(
    status_filter: ClientStatus | None = Query(default=None, alias="status"),
    search: str | None = Query(default=None, max_length=100),
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    items, meta = client_service.list_clients(db, params=params, status=status_filter, search=search)
    return Page[ClientRead](items=[ClientRead.model_validate(item) for item in items], meta=meta)


@router.get("/{client_id}", response_model=ClientRead)
def read_client(
    client_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    client = client_service.get_client(db, client_id)
    if not current_user.is_admin and client.user_id != current_user.id:
        raise ForbiddenError("You can only view your own client profile")
    return ClientRead.model_validate(client)


@router.patch("/{client_id}/status", response_model=ClientRead)
def update_client_status(
    client_id: int,
    payload: ClientStatusUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    client = client_service.update_client_status(db, client_id, payload.status)
    log_action(
        db,
        user_id=current_user.id,
        action="client.status_update",
        target_type="client",
        target_id=str(client.id),
        details={"status": client.status},
        commit=True,
    )
    return ClientRead.model_validate(client)
