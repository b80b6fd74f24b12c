"""Switch request router - Patient wizard endpoints and agency status actions"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ...auth import get_agency_membership, get_current_user, require_patient
from ...config import RATE_LIMIT_WINDOW_SECONDS, SWITCH_REQUEST_RATE_LIMIT
from ...database import get_db
from ...models import AgencyMember, Profile
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AcceptRequest,
    DenyRequest,
    StatusChangeResponse,
    SwitchRequestCreate,
    SwitchRequestDetail,
    SwitchRequestResponse,
)
from .service import SwitchRequestService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Switch Requests"])

rate_limit_switch_requests = create_rate_limiter(
    limit=SWITCH_REQUEST_RATE_LIMIT,
    window_seconds=RATE_LIMIT_WINDOW_SECONDS,
    key_prefix="switch_requests",
)


def get_switch_request_service(db: Session = Depends(get_db)) -> SwitchRequestService:
    """Dependency injection for SwitchRequestService"""
    return SwitchRequestService(db)


# ============================================================================
# PATIENT
# ============================================================================


@router.post("/switch-requests", response_model=SwitchRequestResponse, status_code=201)
async def create_switch_request(
    data: SwitchRequestCreate,
    request: Request,
    current_user: Profile = Depends(require_patient),
    service: SwitchRequestService = Depends(get_switch_request_service),
    _: None = Depends(rate_limit_switch_requests),
):
    """Submit the switch wizard"""
    return service.create_switch_request(data, current_user, request)


@router.get("/switch-requests", response_model=list[SwitchRequestResponse])
async def list_switch_requests(
    current_user: Profile = Depends(get_current_user),
    service: SwitchRequestService = Depends(get_switch_request_service),
):
    """The signed-in patient's switch requests, newest first"""
    return service.list_patient_requests(current_user)


@router.get("/switch-requests/{request_id}", response_model=SwitchRequestDetail)
async def get_switch_request(
    request_id: str,
    current_user: Profile = Depends(get_current_user),
    service: SwitchRequestService = Depends(get_switch_request_service),
):
    return service.get_patient_request(request_id, current_user)


@router.post("/switch-requests/{request_id}/cancel", response_model=StatusChangeResponse)
async def cancel_switch_request(
    request_id: str,
    request: Request,
    current_user: Profile = Depends(get_current_user),
    service: SwitchRequestService = Depends(get_switch_request_service),
):
    """Cancel a request that is still submitted or under review"""
    return service.cancel_request(request_id, current_user, request)


# ============================================================================
# AGENCY STATUS ACTIONS
# ============================================================================


@router.post("/agency/requests/{request_id}/review", response_model=StatusChangeResponse)
async def mark_under_review(
    request_id: str,
    request: Request,
    current_user: Profile = Depends(get_current_user),
    membership: AgencyMember = Depends(get_agency_membership),
    service: SwitchRequestService = Depends(get_switch_request_service),
):
    return service.mark_under_review(request_id, membership, current_user, request)


@router.post("/agency/requests/{request_id}/accept", response_model=StatusChangeResponse)
async def accept_switch_request(
    request_id: str,
    request: Request,
    data: Optional[AcceptRequest] = None,
    current_user: Profile = Depends(get_current_user),
    membership: AgencyMember = Depends(get_agency_membership),
    service: SwitchRequestService = Depends(get_switch_request_service),
):
    return service.accept_request(request_id, data or AcceptRequest(), membership, current_user, request)


@router.post("/agency/requests/{request_id}/deny", response_model=StatusChangeResponse)
async def deny_switch_request(
    request_id: str,
    data: DenyRequest,
    request: Request,
    current_user: Profile = Depends(get_current_user),
    membership: AgencyMember = Depends(get_agency_membership),
    service: SwitchRequestService = Depends(get_switch_request_service),
):
    return service.deny_request(request_id, data, membership, current_user, request)


@router.post("/agency/requests/{request_id}/complete", response_model=StatusChangeResponse)
async def complete_switch_request(
    request_id: str,
    request: Request,
    current_user: Profile = Depends(get_current_user),
    membership: AgencyMember = Depends(get_agency_membership),
    service: SwitchRequestService = Depends(get_switch_request_service),
):
    return service.complete_request(request_id, membership, current_user, request)
