"""Document domain schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

DocType = Literal[
    "insurance_card",
    "id_document",
    "prior_auth",
    "physician_order",
    "discharge_summary",
    "care_plan",
    "other",
]


class DocumentResponse(BaseModel):
    id: str
    request_id: str
    uploaded_by: str
    uploader_role: str
    doc_type: str
    display_name: str
    file_name: str
    file_path: str
    file_size_bytes: Optional[int] = None
    mime_type: Optional[str] = None
    requires_signature: bool
    is_signed: bool
    signed_at: Optional[datetime] = None
    signed_by: Optional[str] = None
    typed_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SignDocumentRequest(BaseModel):
    typed_name: str

    @field_validator("typed_name")
    @classmethod
    def validate_typed_name(cls, v):
        v = (v or "").strip()
        if len(v) < 2:
            raise ValueError("Please enter your full legal name")
        if len(v) > 100:
            raise ValueError("Name must be 100 characters or fewer")
        return v


class SignDocumentResponse(BaseModel):
    success: bool
    document_id: str
    signed_at: datetime
    checksum: str


class DocumentUrlResponse(BaseModel):
    url: str
    expires_in: int
