from __future__ import annotations

from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, HttpUrl, TypeAdapter, ValidationError

from app.core.chain import is_valid_address
from app.core.pagination import PageMeta
from app.core.phone import is_valid_phone

T = TypeVar("T")


def _check_phone(value: str) -> str:
    if not 8 <= len(value) <= 20 or not is_valid_phone(value):
        raise ValueError("Invalid phone number format")
    return value


_http_url = TypeAdapter(HttpUrl)


def _check_url(value: str) -> str:
    try:
        return str(_http_url.validate_python(value))
    except ValidationError as exc:
        raise ValueError("Invalid http(s) URL") from exc


def _check_address(value: str) -> str:
    if not is_valid_address(value):
        raise ValueError("Invalid wallet address format")
    return value


PhoneNumber = Annotated[str, AfterValidator(_check_phone)]
WalletAddress = Annotated[str, AfterValidator(_check_address)]
# Validated as an http(s) URL, stored and returned as plain text
UrlText = Annotated[str, AfterValidator(_check_url)]


class Page(BaseModel, Generic[T]):
    items: list[T]
    meta: PageMeta


class CursorPage(BaseModel, Generic[T]):
    items: list[T]
    next_cursor: int | None
