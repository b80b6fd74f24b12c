"""Profile domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.constants import PA_MEDICAID_PLANS
from ...shared.validators import calculate_age, validate_pa_county, validate_us_phone, validate_zip

LanguageCode = Literal["en", "ne", "hi"]
PayerType = Literal["medicaid", "medicare", "private", "self_pay", "waiver"]
CareType = Literal["home_health", "home_care", "both"]


class ProfileResponse(BaseModel):
    id: str
    role: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None
    preferred_lang: str = "en"
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    """Schema for editing the signed-in user's own profile"""

    full_name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = None
    preferred_lang: Optional[LanguageCode] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return None


class OnboardingRequest(BaseModel):
    """
    Patient onboarding wizard payload

    Steps: personal info, address, insurance, care needs
    """

    # Step 1 - personal
    full_name: str = Field(..., min_length=2, max_length=100)
    phone: Optional[str] = None
    preferred_lang: LanguageCode = "en"
    date_of_birth: date

    # Step 2 - address
    address_line1: str = Field(..., min_length=5, max_length=200)
    address_line2: Optional[str] = Field(None, max_length=100)
    address_city: str = Field(..., min_length=2, max_length=100)
    address_state: str = "PA"
    address_zip: str
    address_county: str

    # Step 3 - insurance
    payer_type: PayerType
    medicaid_plan: Optional[str] = None
    medicaid_id: Optional[str] = Field(None, max_length=20)

    # Step 4 - care needs
    care_type: CareType
    care_needs: list[str] = Field(..., min_length=1)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return None

    @field_validator("date_of_birth")
    @classmethod
    def validate_age(cls, v):
        age = calculate_age(v)
        if age < 18 or age > 120:
            raise ValueError("You must be 18 or older to use Chautari")
        return v

    @field_validator("address_state")
    @classmethod
    def validate_state(cls, v):
        if (v or "").upper() != "PA":
            raise ValueError("We currently only serve Pennsylvania")
        return "PA"

    @field_validator("address_zip")
    @classmethod
    def validate_zip_code(cls, v):
        return validate_zip(v)

    @field_validator("address_county")
    @classmethod
    def validate_county(cls, v):
        return validate_pa_county(v)

    @model_validator(mode="after")
    def check_medicaid_plan(self):
        if self.payer_type == "medicaid" and not self.medicaid_plan:
            raise ValueError("Please select your Medicaid plan")
        if self.medicaid_plan and self.medicaid_plan not in PA_MEDICAID_PLANS:
            raise ValueError("Unknown Medicaid plan")
        return self


class PatientDetailsResponse(BaseModel):
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_zip: Optional[str] = None
    address_county: Optional[str] = None
    payer_type: Optional[str] = None
    medicaid_plan: Optional[str] = None
    care_type: Optional[str] = None
    care_needs: list[str] = []
    date_of_birth: Optional[date] = None
    has_medicaid_id: bool = False


class OnboardingStatusResponse(BaseModel):
    completed: bool
    details: Optional[PatientDetailsResponse] = None


class DashboardAgency(BaseModel):
    id: str
    name: str
    address_city: Optional[str] = None
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class DashboardRequest(BaseModel):
    id: str
    status: str
    care_type: str
    switch_reason: Optional[str] = None
    requested_start_date: Optional[date] = None
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    new_agency: Optional[DashboardAgency] = None

    class Config:
        from_attributes = True


class DashboardNotification(BaseModel):
    id: str
    type: str
    title: str
    body: str
    read_at: Optional[datetime] = None
    created_at: datetime
    reference_id: Optional[str] = None
    reference_type: Optional[str] = None

    class Config:
        from_attributes = True


class DashboardResponse(BaseModel):
    profile: ProfileResponse
    patient_details: Optional[PatientDetailsResponse] = None
    switch_requests: list[DashboardRequest]
    notifications: list[DashboardNotification]
    unread_count: int
    onboarding_complete: bool
