"""Agency portal router - Endpoints for agency staff"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_agency_membership, get_current_user, require_agency_admin
from ...database import get_db
from ...models import AgencyMember, Profile
from ..agencies.schemas import AgencyResponse
from .schemas import (
    AgencyDashboardResponse,
    AgencyMemberResponse,
    AgencyProfileUpdate,
    AgencyRequestResponse,
)
from .service import AgencyPortalService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/agency", tags=["Agency Portal"])


def get_agency_portal_service(db: Session = Depends(get_db)) -> AgencyPortalService:
    """Dependency injection for AgencyPortalService"""
    return AgencyPortalService(db)


@router.get("/dashboard", response_model=AgencyDashboardResponse)
async def get_agency_dashboard(
    status: Optional[str] = Query(None),
    membership: AgencyMember = Depends(get_agency_membership),
    service: AgencyPortalService = Depends(get_agency_portal_service),
):
    """Agency listing, incoming switch requests and request stats"""
    return service.get_dashboard(membership, status)


@router.get("/requests/{request_id}", response_model=AgencyRequestResponse)
async def get_agency_request(
    request_id: str,
    membership: AgencyMember = Depends(get_agency_membership),
    service: AgencyPortalService = Depends(get_agency_portal_service),
):
    return service.get_request(request_id, membership)


@router.patch("/profile", response_model=AgencyResponse)
async def update_agency_profile(
    data: AgencyProfileUpdate,
    request: Request,
    current_user: Profile = Depends(get_current_user),
    membership: AgencyMember = Depends(require_agency_admin),
    service: AgencyPortalService = Depends(get_agency_portal_service),
):
    """Update contact details, languages and intake status (owners/admins only)"""
    return service.update_agency_profile(data, membership, current_user, request)


@router.get("/members", response_model=list[AgencyMemberResponse])
async def list_agency_members(
    membership: AgencyMember = Depends(get_agency_membership),
    service: AgencyPortalService = Depends(get_agency_portal_service),
):
    return service.list_members(membership)
