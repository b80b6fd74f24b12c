"""Document router - Upload, download, sign and delete request documents"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...config import RATE_LIMIT_WINDOW_SECONDS, UPLOAD_RATE_LIMIT
from ...database import get_db
from ...models import Profile
from ...rate_limiter import create_rate_limiter
from .schemas import (
    DocType,
    DocumentResponse,
    DocumentUrlResponse,
    SignDocumentRequest,
    SignDocumentResponse,
)
from .service import DocumentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Documents"])

rate_limit_uploads = create_rate_limiter(
    limit=UPLOAD_RATE_LIMIT,
    window_seconds=RATE_LIMIT_WINDOW_SECONDS,
    key_prefix="document_uploads",
)


def get_document_service(db: Session = Depends(get_db)) -> DocumentService:
    """Dependency injection for DocumentService"""
    return DocumentService(db)


@router.get("/switch-requests/{request_id}/documents", response_model=list[DocumentResponse])
async def list_documents(
    request_id: str,
    current_user: Profile = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Documents attached to a switch request, newest first"""
    return service.list_documents(request_id, current_user)


@router.post(
    "/switch-requests/{request_id}/documents", response_model=DocumentResponse, status_code=201
)
async def upload_document(
    request_id: str,
    doc_type: DocType = Form(...),
    display_name: Optional[str] = Form(None),
    requires_signature: bool = Form(False),
    file: UploadFile = File(...),
    current_user: Profile = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    _: None = Depends(rate_limit_uploads),
):
    """
    Upload a document to a switch request.

    Accepts PDF, JPEG, PNG, WebP or HEIC up to 10MB.
    """
    return await service.upload_document(
        request_id, doc_type, display_name, requires_signature, file, current_user
    )


@router.get("/documents/{document_id}/url", response_model=DocumentUrlResponse)
async def get_document_url(
    document_id: str,
    current_user: Profile = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Short-lived signed download link"""
    return service.get_document_url(document_id, current_user)


@router.post("/documents/{document_id}/sign", response_model=SignDocumentResponse)
async def sign_document(
    document_id: str,
    data: SignDocumentRequest,
    request: Request,
    current_user: Profile = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    return service.sign_document(document_id, data, current_user, request)


@router.delete("/documents/{document_id}")
async def delete_document(
    document_id: str,
    current_user: Profile = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Delete an unsigned document you uploaded"""
    return service.delete_document(document_id, current_user)
