from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from app.api import deps
from app.core.roles import CLIENT_ROLES
from app.db.session import get_db
from app.schemas.documents import DocumentRead
from app.services import document_service

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    property_id: int | None = Form(default=None),
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.require_roles(CLIENT_ROLES)),
):
    document = await document_service.upload_document(
        db,
        file,
        user_id=current_user.id,
        is_admin=current_user.is_admin,
        property_id=property_id,
    )
    return DocumentRead.model_validate(document)


@router.get("/me", response_model=list[DocumentRead])
def list_my_documents(
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    documents = document_service.list_by_user(
        db, current_user.id, user_id=current_user.id, is_admin=current_user.is_admin
    )
    return [DocumentRead.model_validate(item) for item in documents]


@router.get("/property/{property_id}", response_model=list[DocumentRead])
def list_property_documents(
    property_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    documents = document_service.list_by_property(
        db, property_id, user_id=current_user.id, is_admin=current_user.is_admin
    )
    return [DocumentRead.model_validate(item) for item in documents]


@router.get("/user/{user_id}", response_model=list[DocumentRead])
def list_user_documents(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    documents = document_service.list_by_user(
        db, user_id, user_id=current_user.id, is_admin=current_user.is_admin
    )
    return [DocumentRead.model_validate(item) for item in documents]


@router.get("/{document_id}", response_model=DocumentRead)
def read_document(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    document = document_service.get_document(
        db, document_id, user_id=current_user.id, is_admin=current_user.is_admin
    )
    return DocumentRead.model_validate(document)


@router.get("/{document_id}/download")
def download_document(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    document, path = document_service.open_document(
        db, document_id, user_id=current_user.id, is_admin=current_user.is_admin
    )
    return FileResponse(path, media_type=document.mime_type, filename=document.original_name)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: int,
    db: Session = Depends(get_db),
    current_user: deps.AuthenticatedUser = Depends(deps.get_current_user),
):
    document_service.delete_document(
        db, document_id, user_id=current_user.id, is_admin=current_user.is_admin
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
