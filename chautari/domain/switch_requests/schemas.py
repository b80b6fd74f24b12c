"""Switch request schemas - Pydantic models for the switch wizard and status actions"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.constants import SWITCH_REASONS
from ..agencies.schemas import AgencySummary


class SwitchRequestCreate(BaseModel):
    """
    Five-step switch wizard payload

    Steps: confirm agency, current situation, care details, consents, e-signature
    """

    # Step 1 - agency
    new_agency_id: str
    confirmed_agency: bool

    # Step 2 - situation
    has_current_agency: Literal["yes", "no", "unsure"]
    current_agency_id: Optional[str] = None
    current_agency_name: Optional[str] = Field(None, max_length=200)
    switch_reason: str
    switch_reason_detail: Optional[str] = Field(None, max_length=500)

    # Step 3 - care
    care_type: Literal["home_health", "home_care", "both"]
    services_requested: list[str] = Field(..., min_length=1)
    requested_start_date: date
    special_instructions: Optional[str] = Field(None, max_length=1000)

    # Step 4 - consents
    consent_hipaa: bool
    consent_current_agency_notification: bool
    consent_terms: bool
    understands_timeline: bool

    # Step 5 - signature
    signature_name: str = Field(..., min_length=2, max_length=100)
    signature_method: Literal["typed", "drawn"]
    signature_data: Optional[str] = None

    @field_validator("confirmed_agency")
    @classmethod
    def validate_confirmed(cls, v):
        if v is not True:
            raise ValueError("Please confirm your agency selection")
        return v

    @field_validator("current_agency_id", "current_agency_name", "switch_reason_detail", "special_instructions", "signature_data")
    @classmethod
    def empty_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("switch_reason")
    @classmethod
    def validate_reason(cls, v):
        if v not in SWITCH_REASONS:
            raise ValueError("Please select a reason for switching")
        return v

    @field_validator("requested_start_date")
    @classmethod
    def validate_start_date(cls, v):
        if v < date.today():
            raise ValueError("Start date must be in the future")
        return v

    @field_validator("signature_name")
    @classmethod
    def validate_signature_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Please type your full legal name as your signature")
        return v

    @model_validator(mode="after")
    def check_consents_and_signature(self):
        consents = {
            "consent_hipaa": "You must authorize release of your health information",
            "consent_current_agency_notification": "You must acknowledge that your current agency will be notified",
            "consent_terms": "You must accept the terms of service",
            "understands_timeline": "Please acknowledge the expected timeline",
        }
        for field_name, message in consents.items():
            if getattr(self, field_name) is not True:
                raise ValueError(message)
        if self.signature_method == "drawn" and not self.signature_data:
            raise ValueError("Please draw your signature")
        return self


class DenyRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Please provide a reason")
        return v


class AcceptRequest(BaseModel):
    note: Optional[str] = Field(None, max_length=1000)


class ESignatureSummary(BaseModel):
    id: str
    signed_at: datetime
    signature_method: str
    signer_role: str
    consent_hipaa: bool

    class Config:
        from_attributes = True


class SwitchRequestResponse(BaseModel):
    id: str
    patient_id: str
    new_agency_id: str
    current_agency_id: Optional[str] = None
    current_agency_name: Optional[str] = None
    status: str
    care_type: str
    payer_type: str
    switch_reason: Optional[str] = None
    switch_reason_detail: Optional[str] = None
    services_requested: list[str] = []
    requested_start_date: Optional[date] = None
    special_instructions: Optional[str] = None
    decision_note: Optional[str] = None
    current_agency_notified_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    denied_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    new_agency: Optional[AgencySummary] = None

    class Config:
        from_attributes = True


class SwitchRequestDetail(SwitchRequestResponse):
    e_signatures: list[ESignatureSummary] = []
    status_label: Optional[str] = None
    next_action: Optional[str] = None


class StatusChangeResponse(BaseModel):
    id: str
    old_status: str
    status: str
