"""Agency domain schemas - Pydantic models for the public directory"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AgencyResponse(BaseModel):
    """Public agency listing"""

    id: str
    npi: str
    name: str
    dba_name: Optional[str] = None
    address_line1: str
    address_line2: Optional[str] = None
    address_city: str
    address_state: str
    address_zip: str
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    care_types: list[str] = []
    payers_accepted: list[str] = []
    services_offered: list[str] = []
    languages_spoken: list[str] = []
    service_counties: list[str] = []
    is_verified_partner: bool
    is_accepting_patients: bool
    medicare_quality_score: Optional[float] = None
    avg_response_hours: Optional[float] = None
    pa_license_number: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AgencySummary(BaseModel):
    """Compact agency view embedded in requests and conversations"""

    id: str
    name: str
    address_city: Optional[str] = None
    phone: Optional[str] = None
    is_verified_partner: bool = False

    class Config:
        from_attributes = True


class AgencySearchResponse(BaseModel):
    agencies: list[AgencyResponse]
    total: int


class NPILookupResponse(BaseModel):
    found: bool
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    taxonomy: Optional[str] = None
