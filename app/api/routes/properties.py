from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.api import deps
from app.core.pagination import PaginationParams
from app.core.roles import ADMIN_ROLES, RoleCode
from app.db.session import get_db
from app.schemas.common import Page
from app.schemas.properties import (
    PropertyCreate,
    PropertyFilters,
    PropertyRead,
    PropertyStatusUpdate,
    PropertyUpdate,
)
from app.services import client_service, property_service

router = APIRouter(prefix="/properties", tags=["properties"])
admin_router = APIRouter(prefix="/admin/properties", tags=["admin"])

client_only = deps.require_roles({RoleCode.CLIENT.value})


def _page(items, meta) -> Page[PropertyRead]:
    return Page[PropertyRead](items=[PropertyRead.model_validate(item) for item in items], meta=meta)


@router.get("", response_model=Page[PropertyRead])
def list_public_properties(
    filters: PropertyFilters = Depends(),
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
):
    items, meta = property_service.list_properties(db, filters=filters, params=params, public_only=True)
    return _page(items, meta)


@router.get("/mine", response_model=Page[PropertyRead])
def list_my_properties(
    filters: PropertyFilters = Depends(),
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(client_only),
):
    client = client_service.get_client_by_user(db, current_user.id)
    scoped = filters.model_copy(update={"client_id": client.id})
    items, meta = property_service.list_properties(db, filters=scoped, params=params)
    return _page(items, meta)


@router.get("/{property_id}", response_model=PropertyRead)
def read_property(
    property_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser | None = Depends(deps.get_optional_user),
):
    prop = property_service.get_visible_property(
        db,
        property_id,
        user_id=current_user.id if current_user else None,
        is_admin=bool(current_user and current_user.is_admin),
    )
    return PropertyRead.model_validate(prop)


@router.post("", response_model=PropertyRead, status_code=status.HTTP_201_CREATED)
def create_property(
    payload: PropertyCreate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(client_only),
):
    client = client_service.get_client_by_user(db, current_user.id)
    prop = property_service.create_property(db, client=client, payload=payload, actor=current_user.email)
    return PropertyRead.model_validate(prop)


@router.patch("/{property_id}", response_model=PropertyRead)
def update_property(
    property_id: int,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(client_only),
):
    client = client_service.get_client_by_user(db, current_user.id)
    prop = property_service.update_property(
        db,
        client=client,
        property_id=property_id,
        payload=payload,
        actor=current_user.email,
    )
    return PropertyRead.model_validate(prop)


@router.post("/{property_id}/submit", response_model=PropertyRead)
def submit_property(
    property_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(client_only),
):
    client = client_service.get_client_by_user(db, current_user.id)
    prop = property_service.submit_for_review(db, client=client, property_id=property_id)
    return PropertyRead.model_validate(prop)


@router.delete("/{property_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_property(
    property_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(client_only),
):
    client = client_service.get_client_by_user(db, current_user.id)
    property_service.delete_property(db, client=client, property_id=property_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@admin_router.get("", response_model=Page[PropertyRead])
def list_all_properties(
    filters: PropertyFilters = Depends(),
    params: PaginationParams = Depends(),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    items, meta = property_service.list_properties(db, filters=filters, params=params)
    return _page(items, meta)


@admin_router.patch("/{property_id}/status", response_model=PropertyRead)
def moderate_property(
    property_id: int,
    payload: PropertyStatusUpdate,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(ADMIN_ROLES)),
):
    prop = property_service.update_property_status(
        db,
        property_id,
        status=payload.status,
        notes=payload.notes,
        is_featured=payload.is_featured,
        reviewer_id=current_user.id,
    )
    return PropertyRead.model_validate(prop)
