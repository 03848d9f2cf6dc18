from __future__ import annotations

from enum import Enum


class RoleCode(str, Enum):
    ADMIN = "ADMIN"
    CLIENT = "CLIENT"
    INVESTOR = "INVESTOR"


ROLE_NAMES: dict[str, str] = {
    RoleCode.ADMIN.value: "Administrator",
    RoleCode.CLIENT.value: "Property client",
    RoleCode.INVESTOR.value: "Investor",
}


ADMIN_ROLES: set[str] = {RoleCode.ADMIN.value}

CLIENT_ROLES: set[str] = {
    RoleCode.ADMIN.value,
    RoleCode.CLIENT.value,
}

INVESTOR_ROLES: set[str] = {RoleCode.INVESTOR.value}
