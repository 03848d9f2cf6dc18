from __future__ import annotations

import logging
import os
import re
import uuid
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import BusinessRuleError, ForbiddenError, NotFoundError
from app.models.domain import Document, Property
from app.services import virus_scan_service
from app.services.property_service import get_property

logger = logging.getLogger(__name__)

UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def storage_dir() -> Path:
    return Path(settings.document_storage_dir)


def _is_property_owner(prop: Property | None, user_id: int) -> bool:
    return prop is not None and prop.client is not None and prop.client.user_id == user_id


async def upload_document(
    db: Session,
    file: UploadFile,
    *,
    user_id: int,
    is_admin: bool,
    property_id: int | None = None,
) -> Document:
    if property_id is not None:
        prop = get_property(db, property_id)
        if not is_admin and not _is_property_owner(prop, user_id):
            raise ForbiddenError("Only the owning client can attach documents to this property")

    contents = await file.read()
    if not contents:
        raise BusinessRuleError("Uploaded file is empty")
    if len(contents) > settings.document_max_bytes:
        raise BusinessRuleError(f"File exceeds the {settings.document_max_bytes} byte limit")
    mime_type = (file.content_type or "application/octet-stream").split(";")[0].strip().lower()
    if mime_type not in settings.allowed_document_types:
        raise BusinessRuleError(f"File type {mime_type} is not allowed")

    original_name = file.filename or "document"
    try:
        virus_scan_service.scan_bytes(contents, original_name)
    except virus_scan_service.VirusScanError as exc:
        raise BusinessRuleError(str(exc)) from exc

    directory = storage_dir()
    directory.mkdir(parents=True, exist_ok=True)
    filename = _build_filename(original_name)
    path = directory / filename
    path.write_bytes(contents)

    document = Document(
        user_id=user_id,
        property_id=property_id,
        filename=filename,
        original_name=original_name[:255],
        mime_type=mime_type,
        size=len(contents),
        path=str(path),
    )
    db.add(document)
    db.commit()
    db.refresh(document)
    logger.info("User %s uploaded document %s (%s bytes)", user_id, document.id, document.size)
    return document


def get_document(db: Session, document_id: int, *, user_id: int, is_admin: bool) -> Document:
    document = db.get(Document, document_id)
    if not document:
        raise NotFoundError("Document", document_id)
    if is_admin or document.user_id == user_id:
        return document
    if document.property_id is not None and _is_property_owner(db.get(Property, document.property_id), user_id):
        return document
    raise ForbiddenError("You do not have access to this document")


def open_document(db: Session, document_id: int, *, user_id: int, is_admin: bool) -> tuple[Document, Path]:
    document = get_document(db, document_id, user_id=user_id, is_admin=is_admin)
    path = Path(document.path)
    if not path.is_file():
        raise NotFoundError("Document file", document_id)
    return document, path


def delete_document(db: Session, document_id: int, *, user_id: int, is_admin: bool) -> None:
    document = db.get(Document, document_id)
    if not document:
        raise NotFoundError("Document", document_id)
    if not is_admin and document.user_id != user_id:
        raise ForbiddenError("Only the uploader can delete this document")
    path = Path(document.path)
    db.delete(document)
    db.commit()
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.warning("Could not remove stored file %s", path)


def list_by_property(db: Session, property_id: int, *, user_id: int, is_admin: bool) -> list[Document]:
    prop = get_property(db, property_id)
    if not is_admin and not _is_property_owner(prop, user_id):
        raise ForbiddenError("You do not have access to this property's documents")
    stmt = select(Document).where(Document.property_id == prop.id).order_by(Document.id.desc())
    return list(db.scalars(stmt).all())


def list_by_user(db: Session, owner_id: int, *, user_id: int, is_admin: bool) -> list[Document]:
    if not is_admin and user_id != owner_id:
        raise ForbiddenError("You can only list your own documents")
    stmt = select(Document).where(Document.user_id == owner_id).order_by(Document.id.desc())
    return list(db.scalars(stmt).all())


def _build_filename(original: str) -> str:
    base, ext = os.path.splitext(os.path.basename(original))
    base = UNSAFE_CHARS.sub("_", base).strip("._")[:80] or "document"
    ext = UNSAFE_CHARS.sub("", ext)[:10].lower()
    return f"{base}_{uuid.uuid4().hex}{ext}"
