from __future__ import annotations

import re

PHONE_INPUT_PATTERN = re.compile(r"[+]?[0-9 \-()]+")
PHONE_PATTERN = re.compile(r"\+?\d{7,15}")


def normalize_phone(phone: str | None) -> str | None:
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if not digits:
        return None
    return f"+{digits}" if phone.strip().startswith("+") else digits


def is_valid_phone(phone: str | None) -> bool:
    if not phone or not PHONE_INPUT_PATTERN.fullmatch(phone):
        return False
    normalized = normalize_phone(phone)
    return bool(normalized and PHONE_PATTERN.fullmatch(normalized))


def mask_phone(phone: str | None) -> str | None:
    if not phone:
        return None
    digits = normalize_phone(phone)
    if not digits or len(digits) < 6:
        return "****"
    return f"{digits[:3]}****{digits[-3:]}"
