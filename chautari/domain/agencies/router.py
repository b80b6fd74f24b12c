"""Agency router - Public directory endpoints"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from .schemas import AgencyResponse, AgencySearchResponse, NPILookupResponse
from .service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, AgencyService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agencies", tags=["Agencies"])


def get_agency_service(db: Session = Depends(get_db)) -> AgencyService:
    """Dependency injection for AgencyService"""
    return AgencyService(db)


@router.get("", response_model=AgencySearchResponse)
async def search_agencies(
    county: Optional[str] = Query(None),
    care_type: Optional[str] = Query(None),
    payer_type: Optional[str] = Query(None),
    services: Optional[list[str]] = Query(None),
    language: Optional[str] = Query(None),
    verified_only: bool = Query(False),
    query: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    service: AgencyService = Depends(get_agency_service),
):
    """Search active agencies with directory filters"""
    return service.search_agencies(
        county=county,
        care_type=care_type,
        payer_type=payer_type,
        services=services,
        language=language,
        verified_only=verified_only,
        query=query,
        page=page,
        page_size=page_size,
    )


@router.get("/matched", response_model=AgencySearchResponse)
async def get_matched_agencies(
    current_user: Profile = Depends(get_current_user),
    service: AgencyService = Depends(get_agency_service),
):
    """Agencies matching the signed-in patient's county and insurance"""
    return service.get_matched_agencies(current_user)


@router.get("/npi/{npi}", response_model=NPILookupResponse)
async def lookup_npi(npi: str, service: AgencyService = Depends(get_agency_service)):
    """Look up an organization in the CMS NPI registry"""
    return await service.lookup_npi(npi)


@router.get("/{agency_id}", response_model=AgencyResponse)
async def get_agency(agency_id: str, service: AgencyService = Depends(get_agency_service)):
    return service.get_agency(agency_id)
