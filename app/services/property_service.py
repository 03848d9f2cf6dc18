from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleError, ConflictError, ForbiddenError, NotFoundError
from app.core.pagination import PageMeta, PaginationParams, paginate
from app.models.domain import Client, Property, Token
from app.models.enums import ClientStatus, NotificationType, PropertyStatus
from app.schemas.properties import (
    PropertyCreate,
    PropertyFilters,
    PropertySortField,
    PropertyUpdate,
    SortOrder,
)
from app.services import notification_service
from app.services.audit_service import log_action

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = {PropertyStatus.DRAFT.value, PropertyStatus.REJECTED.value}
SORT_COLUMNS = {
    PropertySortField.CREATED_AT: Property.created_at,
    PropertySortField.TITLE: Property.title,
    PropertySortField.TOTAL_PRICE: Property.total_price,
}


def symbol_in_use(db: Session, symbol: str, *, exclude_property_id: int | None = None) -> bool:
    property_stmt = select(Property.id).where(Property.token_symbol == symbol)
    token_stmt = select(Token.id).where(Token.symbol == symbol)
    if exclude_property_id is not None:
        property_stmt = property_stmt.where(Property.id != exclude_property_id)
        token_stmt = token_stmt.where(Token.property_id != exclude_property_id)
    return bool(db.scalar(property_stmt.limit(1)) or db.scalar(token_stmt.limit(1)))


def list_properties(
    db: Session,
    *,
    filters: PropertyFilters,
    params: PaginationParams,
    public_only: bool = False,
) -> tuple[list[Property], PageMeta]:
    stmt = select(Property)
    if public_only:
        stmt = stmt.where(Property.status == PropertyStatus.APPROVED.value)
    elif filters.status:
        stmt = stmt.where(Property.status == filters.status.value)
    if filters.client_id:
        stmt = stmt.where(Property.client_id == filters.client_id)
    if filters.country:
        stmt = stmt.where(Property.country.ilike(filters.country))
    if filters.city:
        stmt = stmt.where(Property.city.ilike(filters.city))
    if filters.is_featured is not None:
        stmt = stmt.where(Property.is_featured.is_(filters.is_featured))

    column = SORT_COLUMNS[filters.sort_by]
    if filters.sort_order == SortOrder.ASC:
        stmt = stmt.order_by(column.asc(), Property.id.asc())
    else:
        stmt = stmt.order_by(column.desc(), Property.id.desc())
    return paginate(db, stmt, params)


def get_property(db: Session, property_id: int) -> Property:
    prop = db.get(Property, property_id)
    if not prop:
        raise NotFoundError("Property", property_id)
    return prop


def get_visible_property(db: Session, property_id: int, *, user_id: int | None, is_admin: bool) -> Property:
    """Approved listings are public; other states are limited to the owner and admins."""
    prop = get_property(db, property_id)
    if prop.status == PropertyStatus.APPROVED.value or is_admin:
        return prop
    if user_id is not None and prop.client.user_id == user_id:
        return prop
    raise NotFoundError("Property", property_id)


def create_property(db: Session, *, client: Client, payload: PropertyCreate, actor: str) -> Property:
    if client.status != ClientStatus.APPROVED.value:
        raise ForbiddenError("Client account must be approved before listing properties")
    if symbol_in_use(db, payload.token_symbol):
        raise ConflictError(f"Token symbol {payload.token_symbol} is already in use")

    prop = Property(
        client_id=client.id,
        status=PropertyStatus.DRAFT.value,
        created_by=actor,
        updated_by=actor,
        **payload.model_dump(),
    )
    db.add(prop)
    db.commit()
    db.refresh(prop)
    logger.info("Client %s created property %s", client.id, prop.id)
    return prop


def _owned_property(db: Session, property_id: int, client: Client) -> Property:
    prop = get_property(db, property_id)
    if prop.client_id != client.id:
        raise ForbiddenError("You do not own this property")
    return prop


def update_property(
    db: Session,
    *,
    client: Client,
    property_id: int,
    payload: PropertyUpdate,
    actor: str,
) -> Property:
    prop = _owned_property(db, property_id, client)
    if prop.status not in EDITABLE_STATUSES:
        raise BusinessRuleError(f"Properties in {prop.status} status cannot be edited")
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    symbol = changes.get("token_symbol")
    if symbol and symbol != prop.token_symbol and symbol_in_use(db, symbol, exclude_property_id=prop.id):
        raise ConflictError(f"Token symbol {symbol} is already in use")
    for field, value in changes.items():
        setattr(prop, field, value)
    prop.updated_by = actor
    db.commit()
    db.refresh(prop)
    return prop


def submit_for_review(db: Session, *, client: Client, property_id: int) -> Property:
    prop = _owned_property(db, property_id, client)
    if prop.status not in EDITABLE_STATUSES:
        raise BusinessRuleError(f"Properties in {prop.status} status cannot be submitted")
    prop.status = PropertyStatus.PENDING.value
    db.commit()
    db.refresh(prop)
    return prop


def delete_property(db: Session, *, client: Client, property_id: int) -> None:
    prop = _owned_property(db, property_id, client)
    if prop.status != PropertyStatus.DRAFT.value:
        raise BusinessRuleError("Only draft properties can be deleted")
    db.delete(prop)
    db.commit()


def update_property_status(
    db: Session,
    property_id: int,
    *,
    status: PropertyStatus,
    notes: str | None,
    is_featured: bool | None,
    reviewer_id: int,
) -> Property:
    prop = get_property(db, property_id)
    if status not in (PropertyStatus.APPROVED, PropertyStatus.REJECTED):
        raise BusinessRuleError("Moderation can only approve or reject a property")
    if prop.status != PropertyStatus.PENDING.value:
        raise BusinessRuleError(f"Property is {prop.status}, only pending properties can be reviewed")
    if status == PropertyStatus.REJECTED and not notes:
        raise BusinessRuleError("A rejection requires review notes")

    previous = prop.status
    prop.status = status.value
    prop.review_notes = notes
    prop.reviewed_by = reviewer_id
    prop.reviewed_at = datetime.now(timezone.utc)
    if is_featured is not None:
        prop.is_featured = is_featured

    approved = status == PropertyStatus.APPROVED
    notification_service.send_notification(
        db,
        user_id=prop.client.user_id,
        type=NotificationType.PROPERTY_APPROVED if approved else NotificationType.PROPERTY_REJECTED,
        title="Property approved" if approved else "Property rejected",
        message=(
            f"Your property '{prop.title}' is now live."
            if approved
            else f"Your property '{prop.title}' was rejected: {notes}"
        ),
        payload={"property_id": prop.id},
        commit=False,
    )
    log_action(
        db,
        user_id=reviewer_id,
        action="property.moderate",
        target_type="property",
        target_id=str(prop.id),
        details={"from": previous, "to": prop.status, "notes": notes},
    )
    db.commit()
    db.refresh(prop)
    return prop
