"""Admin router - Platform administration endpoints (chautari_admin only)"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import Profile
from .schemas import (
    AdminAgency,
    AdminAgencyList,
    AdminRequestList,
    AdminUser,
    AdminUserList,
    AgencyCreate,
    AgencyMemberCreate,
    AgencyMemberResult,
    AuditLogList,
    PlatformStats,
    RoleUpdate,
    VerifiedPartnerUpdate,
)
from .service import AdminService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def get_admin_service(db: Session = Depends(get_db)) -> AdminService:
    """Dependency injection for AdminService"""
    return AdminService(db)


# ============================================================================
# Stats
# ============================================================================


@router.get("/stats", response_model=PlatformStats)
async def get_platform_stats(
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.get_stats()


# ============================================================================
# Users
# ============================================================================


@router.get("/users", response_model=AdminUserList)
async def list_users(
    role: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_users(role, search, limit, offset)


@router.patch("/users/{user_id}/role", response_model=AdminUser)
async def set_user_role(
    user_id: str,
    data: RoleUpdate,
    request: Request,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.set_user_role(admin, user_id, data.role, request)


# ============================================================================
# Agencies
# ============================================================================


@router.get("/agencies", response_model=AdminAgencyList)
async def list_agencies(
    search: Optional[str] = Query(None, max_length=100),
    status: Optional[Literal["pending", "approved", "inactive"]] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_agencies(search, status, limit, offset)


@router.post("/agencies", response_model=AdminAgency, status_code=201)
async def create_agency(
    data: AgencyCreate,
    request: Request,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Register a new agency listing; it stays hidden from matching until approved"""
    return service.create_agency(admin, data, request)


@router.post("/agencies/{agency_id}/approve", response_model=AdminAgency)
async def approve_agency(
    agency_id: str,
    request: Request,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.approve_agency(admin, agency_id, request)


@router.post("/agencies/{agency_id}/deactivate", response_model=AdminAgency)
async def deactivate_agency(
    agency_id: str,
    request: Request,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.deactivate_agency(admin, agency_id, request)


@router.post("/agencies/{agency_id}/verified-partner", response_model=AdminAgency)
async def set_verified_partner(
    agency_id: str,
    data: VerifiedPartnerUpdate,
    request: Request,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.set_verified_partner(admin, agency_id, data.is_verified, request)


@router.post("/agencies/{agency_id}/members", response_model=AgencyMemberResult, status_code=201)
async def add_agency_member(
    agency_id: str,
    data: AgencyMemberCreate,
    request: Request,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.add_agency_member(admin, agency_id, data, request)


# ============================================================================
# Switch requests
# ============================================================================


@router.get("/requests", response_model=AdminRequestList)
async def list_requests(
    status: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_requests(status, limit, offset)


@router.post("/requests/{request_id}/assign")
async def assign_case_manager(
    request_id: str,
    request: Request,
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    """Assign the calling admin as case manager for a switch request"""
    return service.assign_case_manager(admin, request_id, request)


# ============================================================================
# Audit log
# ============================================================================


@router.get("/audit-logs", response_model=AuditLogList)
async def list_audit_logs(
    resource: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: Profile = Depends(require_admin),
    service: AdminService = Depends(get_admin_service),
):
    return service.list_audit_logs(resource, limit, offset)
