from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleError
from app.core.pagination import PageMeta, PaginationParams, paginate
from app.core.roles import RoleCode
from app.models.domain import Investment, KycRecord, Property, Role, Token, User, UserRole
from app.models.enums import InvestmentStatus, UserStatus
from app.schemas.admin import UserFilters, UserSortField
from app.schemas.properties import SortOrder
from app.services import auth_service, user_service
from app.services.audit_service import log_action
from app.services.visit_analytics_service import daily_series

logger = logging.getLogger(__name__)

USER_SORT_COLUMNS = {
    UserSortField.CREATED_AT: User.created_at,
    UserSortField.EMAIL: User.email,
    UserSortField.FULL_NAME: User.full_name,
}


def list_users(db: Session, *, filters: UserFilters, params: PaginationParams) -> tuple[list[User], PageMeta]:
    stmt = select(User)
    if filters.role:
        stmt = stmt.where(
            User.id.in_(
                select(UserRole.user_id)
                .join(Role, Role.id == UserRole.role_id)
                .where(Role.code == filters.role.value)
            )
        )
    if filters.email:
        stmt = stmt.where(User.email.ilike(f"%{filters.email.lower()}%"))
    if filters.status:
        stmt = stmt.where(User.status == filters.status.value)
    if filters.registered_from:
        stmt = stmt.where(User.created_at >= datetime.combine(filters.registered_from, time.min, timezone.utc))
    if filters.registered_to:
        end = datetime.combine(filters.registered_to + timedelta(days=1), time.min, timezone.utc)
        stmt = stmt.where(User.created_at < end)

    column = USER_SORT_COLUMNS[filters.sort_by]
    if filters.sort_order == SortOrder.ASC:
        stmt = stmt.order_by(column.asc(), User.id.asc())
    else:
        stmt = stmt.order_by(column.desc(), User.id.desc())
    return paginate(db, stmt, params)


def update_user_roles(db: Session, user_id: int, *, roles: list[RoleCode], actor_id: int) -> User:
    user = user_service.get_user(db, user_id)
    new_codes = set(roles)
    if user.id == actor_id and RoleCode.ADMIN not in new_codes:
        raise BusinessRuleError("You cannot remove your own admin role")

    old_roles = user_service.role_codes(user)
    user_service.set_roles(db, user, new_codes)
    log_action(
        db,
        user_id=actor_id,
        action="user.roles_update",
        target_type="user",
        target_id=str(user.id),
        details={"old": old_roles, "new": sorted(code.value for code in new_codes)},
    )
    db.commit()
    db.refresh(user)
    return user


def update_user_status(db: Session, user_id: int, *, status: UserStatus, actor_id: int) -> User:
    user = user_service.get_user(db, user_id)
    if user.id == actor_id and status != UserStatus.ACTIVE:
        raise BusinessRuleError("You cannot suspend your own account")

    previous = user.status
    user.status = status.value
    revoked = 0
    if status == UserStatus.SUSPENDED:
        revoked = auth_service.revoke_user_sessions(db, user.id)
    log_action(
        db,
        user_id=actor_id,
        action="user.status_update",
        target_type="user",
        target_id=str(user.id),
        details={"old": previous, "new": status.value, "revoked_sessions": revoked},
    )
    db.commit()
    db.refresh(user)
    if revoked:
        logger.info("Suspended user %s; revoked %s sessions", user.id, revoked)
    return user


def _grouped(db: Session, column) -> dict[str, int]:
    rows = db.execute(select(column, func.count()).group_by(column)).all()
    return {str(key): count for key, count in rows}


def platform_summary(db: Session) -> dict:
    users_by_role = {
        code: count
        for code, count in db.execute(
            select(Role.code, func.count(UserRole.user_id))
            .join(UserRole, UserRole.role_id == Role.id)
            .group_by(Role.code)
        ).all()
    }
    confirmed_value = db.scalar(
        select(func.coalesce(func.sum(Investment.total_value), 0)).where(
            Investment.status == InvestmentStatus.CONFIRMED.value
        )
    )
    return {
        "users_total": db.scalar(select(func.count(User.id))) or 0,
        "users_by_role": users_by_role,
        "properties_by_status": _grouped(db, Property.status),
        "tokens_total": db.scalar(select(func.count(Token.id))) or 0,
        "investments_total": db.scalar(select(func.count(Investment.id))) or 0,
        "confirmed_investment_value": Decimal(str(confirmed_value or 0)),
        "kyc_by_status": _grouped(db, KycRecord.status),
    }


def registration_trend(db: Session, *, days: int = 30) -> dict:
    start_day = datetime.now(timezone.utc).date() - timedelta(days=days - 1)
    since = datetime.combine(start_day, time.min, timezone.utc)
    created = db.scalars(select(User.created_at).where(User.created_at >= since)).all()
    daily = daily_series(created, start=start_day, days=days)
    return {"days": days, "total": sum(daily.values()), "daily": daily}
