from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.exceptions import BusinessRuleError, NotFoundError
from app.core.roles import ROLE_NAMES, RoleCode
from app.core.security import hash_password, verify_password
from app.models.domain import Role, User
from app.models.enums import AuthProvider
from app.schemas.users import UserProfileUpdate


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return user


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.lower()))


def ensure_role(db: Session, code: RoleCode) -> Role:
    role = db.scalar(select(Role).where(Role.code == code.value))
    if role is None:
        role = Role(code=code.value, name=ROLE_NAMES[code.value])
        db.add(role)
        db.flush()
    return role


def grant_role(db: Session, user: User, code: RoleCode) -> None:
    if any(role.code == code.value for role in user.roles):
        return
    user.roles.append(ensure_role(db, code))


def set_roles(db: Session, user: User, codes: set[RoleCode]) -> None:
    user.roles = [ensure_role(db, code) for code in sorted(codes, key=lambda item: item.value)]


def role_codes(user: User) -> list[str]:
    return sorted(role.code for role in (user.roles or []))


def update_profile(db: Session, user: User, payload: UserProfileUpdate) -> User:
    for field, value in payload.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    return user


def change_password(db: Session, user: User, *, current_password: str, new_password: str) -> None:
    if user.auth_provider != AuthProvider.LOCAL.value and not user.password_hash:
        raise BusinessRuleError("Accounts created through OAuth have no password to change")
    if not verify_password(current_password, user.password_hash):
        raise BusinessRuleError("Current password is incorrect")
    if current_password == new_password:
        raise BusinessRuleError("New password must differ from the current one")
    user.password_hash = hash_password(new_password)
    db.commit()
