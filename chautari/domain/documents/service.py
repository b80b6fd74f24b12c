"""Document service - Upload, download links, e-signing and deletion of request documents"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from ... import storage
from ...auth import get_request_access
from ...config import DOCUMENT_URL_EXPIRATION
from ...models import Document, Profile, SwitchRequest
from ...services.audit_service import get_request_ip, get_request_user_agent
from ...services.notification_service import notify_agency_members, notify_user
from ...shared.constants import DOC_TYPE_LABELS
from ...utils.signatures import compute_signature_checksum
from .repository import DocumentRepository
from .schemas import DocumentUrlResponse, SignDocumentRequest, SignDocumentResponse

logger = logging.getLogger(__name__)


class DocumentService:
    """Service layer for document business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = DocumentRepository()

    def _require_access(self, user: Profile, request_id: str) -> tuple[SwitchRequest, str]:
        switch_request, role = get_request_access(self.db, user.id, request_id)
        if not switch_request:
            raise HTTPException(status_code=404, detail="Request not found")
        if not role:
            logger.warning(f"⚠️ User {user.id} denied access to documents of request {request_id}")
            raise HTTPException(status_code=403, detail="Access denied")
        return switch_request, role

    def _get_document(self, document_id: str) -> Document:
        document = self.repo.get_document(self.db, document_id)
        if not document:
            raise HTTPException(status_code=404, detail="Document not found")
        return document

    def list_documents(self, request_id: str, user: Profile) -> list[Document]:
        self._require_access(user, request_id)
        return self.repo.get_request_documents(self.db, request_id)

    async def upload_document(
        self,
        request_id: str,
        doc_type: str,
        display_name: Optional[str],
        requires_signature: bool,
        file: UploadFile,
        user: Profile,
    ) -> Document:
        switch_request, role = self._require_access(user, request_id)

        contents = await file.read()
        status_code, error = storage.validate_document_file(len(contents), file.content_type)
        if status_code:
            logger.warning(f"⚠️ Rejected upload for request {request_id}: {error}")
            raise HTTPException(status_code=status_code, detail=error)

        file_name = file.filename or "document"
        key = storage.generate_document_key(user.id, request_id, file_name)

        if not storage.upload_document_file(contents, key, file.content_type):
            raise HTTPException(status_code=502, detail="Upload failed. Please try again.")

        try:
            document = self.repo.create_document(
                self.db,
                request_id=request_id,
                uploaded_by=user.id,
                uploader_role=role,
                doc_type=doc_type,
                display_name=(display_name or "").strip() or DOC_TYPE_LABELS.get(doc_type, "Document"),
                file_name=file_name,
                file_path=key,
                file_size_bytes=len(contents),
                mime_type=file.content_type,
                requires_signature=requires_signature,
            )
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save document record for {key}, removing stored file: {e}")
            storage.remove_document_file(key)
            raise HTTPException(status_code=500, detail="Failed to save document") from e

        logger.info(f"✅ Document {document.id} uploaded to request {request_id} by {role}")

        if role == "agency_staff":
            label = DOC_TYPE_LABELS.get(doc_type, "A document")
            notify_user(
                self.db,
                switch_request.patient_id,
                "document_uploaded",
                "Document requires your signature" if requires_signature else "New document from your agency",
                f"{label} has been "
                + ("sent to you for signature." if requires_signature else "uploaded to your switch request."),
                reference_id=request_id,
                reference_type="switch_request",
            )

        return document

    def get_document_url(self, document_id: str, user: Profile) -> DocumentUrlResponse:
        document = self._get_document(document_id)
        self._require_access(user, document.request_id)

        url = storage.generate_presigned_url(document.file_path, DOCUMENT_URL_EXPIRATION)
        if not url:
            raise HTTPException(status_code=502, detail="Could not create download link")
        return DocumentUrlResponse(url=url, expires_in=DOCUMENT_URL_EXPIRATION)

    def sign_document(
        self, document_id: str, data: SignDocumentRequest, user: Profile, request: Request
    ) -> SignDocumentResponse:
        document = self._get_document(document_id)
        switch_request, role = self._require_access(user, document.request_id)

        if not document.requires_signature:
            raise HTTPException(status_code=409, detail="This document does not require a signature")
        if document.is_signed:
            raise HTTPException(status_code=409, detail="Document already signed")

        signed_at = datetime.utcnow()
        checksum = compute_signature_checksum(document.id, user.id, data.typed_name, signed_at)
        ip_address = get_request_ip(request)
        user_agent = get_request_user_agent(request)

        try:
            updated = (
                self.db.query(Document)
                .filter(Document.id == document.id, Document.is_signed.is_(False))
                .update(
                    {
                        "is_signed": True,
                        "signed_at": signed_at,
                        "signed_by": user.id,
                        "typed_name": data.typed_name,
                        "signature_checksum": checksum,
                        "signer_ip": ip_address,
                        "signer_user_agent": user_agent,
                    },
                    synchronize_session=False,
                )
            )
            if updated == 0:
                self.db.rollback()
                raise HTTPException(status_code=409, detail="Document already signed")

            self.repo.add_signature(
                self.db,
                document_id=document.id,
                signer_id=user.id,
                signer_role=role,
                typed_name=data.typed_name,
                signature_method="typed",
                ip_address=ip_address,
                user_agent=user_agent,
                signed_at=signed_at,
                checksum=checksum,
            )
            self.db.commit()
        except HTTPException:
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to sign document {document_id}: {e}")
            raise

        logger.info(f"✍️ Document {document_id} signed by {role} {user.id}")

        if role == "patient":
            notify_agency_members(
                self.db,
                switch_request.new_agency_id,
                "document_signed",
                "Document signed by patient",
                f"{data.typed_name} has signed a required document.",
                reference_id=switch_request.id,
                reference_type="switch_request",
            )

        return SignDocumentResponse(
            success=True, document_id=document_id, signed_at=signed_at, checksum=checksum
        )

    def delete_document(self, document_id: str, user: Profile) -> dict:
        document = self._get_document(document_id)

        if document.uploaded_by != user.id:
            raise HTTPException(status_code=403, detail="You can only delete documents you uploaded")
        if document.is_signed:
            raise HTTPException(status_code=409, detail="Cannot delete a signed document")

        storage.remove_document_file(document.file_path)
        self.repo.delete_document(self.db, document)
        logger.info(f"🗑️ Document {document_id} deleted by {user.id}")
        return {"success": True}
