"""Admin schemas - Pydantic models for platform administration"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import CARE_TYPES, LANGUAGE_CODES, PAYER_TYPES
from ...shared.validators import validate_email, validate_npi, validate_pa_county, validate_us_phone, validate_zip

UserRole = Literal["patient", "agency_staff", "agency_admin", "chautari_admin"]
MemberRole = Literal["owner", "admin", "staff"]


class PlatformStats(BaseModel):
    total_users: int
    total_patients: int
    total_agencies: int
    pending_agency_approvals: int
    total_requests: int
    active_requests: int
    completed_requests: int
    requests_this_month: int
    avg_response_hours: Optional[float] = None


class AdminUser(BaseModel):
    id: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: str
    phone: Optional[str] = None
    preferred_lang: str
    created_at: datetime

    class Config:
        from_attributes = True


class AdminUserList(BaseModel):
    users: list[AdminUser]
    total: int


class RoleUpdate(BaseModel):
    role: UserRole


class AdminAgency(BaseModel):
    id: str
    npi: str
    name: str
    address_city: str
    address_state: str
    is_active: bool
    is_approved: bool
    is_verified_partner: bool
    care_types: list[str] = []
    medicare_quality_score: Optional[float] = None
    created_at: datetime
    member_count: int = 0
    request_count: int = 0

    class Config:
        from_attributes = True


class AdminAgencyList(BaseModel):
    agencies: list[AdminAgency]
    total: int


class AgencyCreate(BaseModel):
    """Register an agency listing; new agencies start active and unapproved"""

    npi: str
    name: str = Field(..., min_length=2, max_length=255)
    dba_name: Optional[str] = Field(None, max_length=255)
    address_line1: str = Field(..., min_length=5, max_length=200)
    address_line2: Optional[str] = Field(None, max_length=100)
    address_city: str = Field(..., min_length=2, max_length=100)
    address_state: str = "PA"
    address_zip: str
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = Field(None, max_length=500)
    care_types: list[str] = []
    payers_accepted: list[str] = []
    services_offered: list[str] = []
    languages_spoken: list[str] = ["en"]
    service_counties: list[str] = []
    medicare_quality_score: Optional[float] = Field(None, ge=0, le=5)
    pa_license_number: Optional[str] = Field(None, max_length=50)

    @field_validator("npi")
    @classmethod
    def validate_npi_number(cls, v):
        return validate_npi(v)

    @field_validator("address_zip")
    @classmethod
    def validate_zip_code(cls, v):
        return validate_zip(v)

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

    @field_validator("care_types")
    @classmethod
    def validate_care_types(cls, v):
        for care_type in v:
            if care_type not in CARE_TYPES:
                raise ValueError(f"Unknown care type: {care_type}")
        return v

    @field_validator("payers_accepted")
    @classmethod
    def validate_payers(cls, v):
        for payer in v:
            if payer not in PAYER_TYPES:
                raise ValueError(f"Unknown payer type: {payer}")
        return v

    @field_validator("languages_spoken")
    @classmethod
    def validate_languages(cls, v):
        for code in v:
            if code not in LANGUAGE_CODES:
                raise ValueError(f"Unsupported language code: {code}")
        return v

    @field_validator("service_counties")
    @classmethod
    def validate_counties(cls, v):
        return [validate_pa_county(county) for county in v]


class VerifiedPartnerUpdate(BaseModel):
    is_verified: bool


class AgencyMemberCreate(BaseModel):
    user_id: str
    role: MemberRole = "staff"
    title: Optional[str] = Field(None, max_length=100)


class AgencyMemberResult(BaseModel):
    id: str
    agency_id: str
    user_id: str
    role: str
    title: Optional[str] = None
    is_active: bool
    invited_by: Optional[str] = None

    class Config:
        from_attributes = True


class AdminRequest(BaseModel):
    id: str
    patient_id: str
    new_agency_id: str
    care_type: str
    payer_type: str
    status: str
    created_at: datetime
    submitted_at: Optional[datetime] = None
    case_manager_id: Optional[str] = None
    patient_name: Optional[str] = None
    agency_name: Optional[str] = None


class AdminRequestList(BaseModel):
    requests: list[AdminRequest]
    total: int


class AuditLogEntry(BaseModel):
    id: str
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None
    action: str
    resource: str
    resource_id: Optional[str] = None
    old_data: Optional[dict] = None
    new_data: Optional[dict] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogList(BaseModel):
    logs: list[AuditLogEntry]
    total: int
