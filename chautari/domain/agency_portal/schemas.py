"""Agency portal schemas - Pydantic models for agency staff views"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import LANGUAGE_CODES
from ...shared.validators import validate_email, validate_us_phone
from ..agencies.schemas import AgencyResponse


class PortalPatient(BaseModel):
    id: str
    full_name: Optional[str] = None
    phone: Optional[str] = None
    preferred_lang: Optional[str] = None

    class Config:
        from_attributes = True


class PortalPatientDetails(BaseModel):
    address_city: Optional[str] = None
    address_county: Optional[str] = None
    payer_type: Optional[str] = None
    care_type: Optional[str] = None
    care_needs: list[str] = []

    class Config:
        from_attributes = True


class PortalSignature(BaseModel):
    id: str
    signed_at: datetime
    consent_hipaa: bool

    class Config:
        from_attributes = True


class AgencyRequestResponse(BaseModel):
    """A switch request as seen by the receiving agency"""

    id: str
    patient_id: str
    status: str
    care_type: str
    payer_type: str
    switch_reason: Optional[str] = None
    switch_reason_detail: Optional[str] = None
    services_requested: list[str] = []
    requested_start_date: Optional[date] = None
    special_instructions: Optional[str] = None
    current_agency_name: Optional[str] = None
    decision_note: Optional[str] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    patient: Optional[PortalPatient] = None
    patient_details: Optional[PortalPatientDetails] = None
    e_signatures: list[PortalSignature] = []


class PortalMembership(BaseModel):
    id: str
    role: str
    title: Optional[str] = None

    class Config:
        from_attributes = True


class PortalStats(BaseModel):
    total: int
    pending: int
    accepted: int
    completed: int


class AgencyDashboardResponse(BaseModel):
    agency: AgencyResponse
    member: PortalMembership
    requests: list[AgencyRequestResponse]
    stats: PortalStats


class AgencyProfileUpdate(BaseModel):
    """Fields agency owners/admins may edit on their own listing"""

    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = Field(None, max_length=500)
    is_accepting_patients: Optional[bool] = None
    languages_spoken: Optional[list[str]] = None

    @field_validator("is_accepting_patients", "languages_spoken")
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v):
        if v:
            return validate_email(v)
        return v

    @field_validator("languages_spoken")
    @classmethod
    def validate_languages(cls, v):
        if v is not None:
            unknown = [code for code in v if code not in LANGUAGE_CODES]
            if unknown:
                raise ValueError(f"Unsupported language code(s): {', '.join(unknown)}")
        return v


class AgencyMemberResponse(BaseModel):
    id: str
    user_id: str
    role: str
    title: Optional[str] = None
    is_active: bool
    joined_at: Optional[datetime] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
