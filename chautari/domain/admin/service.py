"""Admin service - Platform statistics, moderation and the audit trail"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Agency, AgencyMember, Profile
from ...services.audit_service import write_audit
from ...services.switch_transitions import ACTIVE_STATUSES
from ..agencies.repository import AgencyRepository
from ..profiles.repository import ProfileRepository
from ..switch_requests.repository import SwitchRequestRepository
from .repository import AdminRepository
from .schemas import (
    AdminAgency,
    AdminAgencyList,
    AdminRequest,
    AdminRequestList,
    AdminUser,
    AdminUserList,
    AgencyCreate,
    AgencyMemberCreate,
    AgencyMemberResult,
    AuditLogEntry,
    AuditLogList,
    PlatformStats,
)

logger = logging.getLogger(__name__)

MEMBER_ROLE_TO_PROFILE_ROLE = {
    "owner": "agency_admin",
    "admin": "agency_admin",
    "staff": "agency_staff",
}


def month_start(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class AdminService:
    """Service layer for platform administration"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AdminRepository()

    def _get_agency(self, agency_id: str) -> Agency:
        agency = AgencyRepository.get_agency(self.db, agency_id)
        if not agency:
            raise HTTPException(status_code=404, detail="Agency not found")
        return agency

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def get_stats(self) -> PlatformStats:
        avg_hours = self.repo.average_response_hours(self.db)
        return PlatformStats(
            total_users=self.repo.count_profiles(self.db),
            total_patients=self.repo.count_profiles(self.db, role="patient"),
            total_agencies=self.repo.count_agencies(self.db),
            pending_agency_approvals=self.repo.count_agencies(self.db, pending_only=True),
            total_requests=self.repo.count_requests(self.db),
            active_requests=self.repo.count_requests(self.db, statuses=ACTIVE_STATUSES),
            completed_requests=self.repo.count_requests(self.db, statuses=("completed",)),
            requests_this_month=self.repo.count_requests(self.db, since=month_start()),
            avg_response_hours=round(float(avg_hours), 1) if avg_hours is not None else None,
        )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def list_users(
        self, role: Optional[str], search: Optional[str], limit: int, offset: int
    ) -> AdminUserList:
        users, total = self.repo.list_users(self.db, role, search, limit, offset)
        return AdminUserList(users=[AdminUser.model_validate(u) for u in users], total=total)

    def set_user_role(self, admin: Profile, user_id: str, role: str, request: Request) -> AdminUser:
        user = ProfileRepository.get_profile(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        old_role = user.role
        user.role = role
        self.db.commit()
        self.db.refresh(user)

        write_audit(
            self.db,
            admin,
            "update_role",
            "profiles",
            resource_id=user_id,
            old_data={"role": old_role},
            new_data={"role": role},
            request=request,
        )
        logger.info(f"👤 Admin {admin.id} changed role of {user_id}: {old_role} → {role}")
        return AdminUser.model_validate(user)

    # ------------------------------------------------------------------
    # Agencies
    # ------------------------------------------------------------------

    def list_agencies(
        self, search: Optional[str], status: Optional[str], limit: int, offset: int
    ) -> AdminAgencyList:
        agencies, total = self.repo.list_agencies(self.db, search, status, limit, offset)
        agency_ids = [a.id for a in agencies]
        member_counts = self.repo.member_counts(self.db, agency_ids)
        request_counts = self.repo.request_counts(self.db, agency_ids)

        results = []
        for agency in agencies:
            row = AdminAgency.model_validate(agency)
            row.member_count = member_counts.get(agency.id, 0)
            row.request_count = request_counts.get(agency.id, 0)
            results.append(row)
        return AdminAgencyList(agencies=results, total=total)

    def create_agency(self, admin: Profile, data: AgencyCreate, request: Request) -> AdminAgency:
        if AgencyRepository.get_agency_by_npi(self.db, data.npi):
            raise HTTPException(status_code=409, detail="An agency with this NPI already exists")

        agency = Agency(**data.model_dump(), is_active=True, is_approved=False)
        self.db.add(agency)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="An agency with this NPI already exists")
        self.db.refresh(agency)

        write_audit(
            self.db,
            admin,
            "create_agency",
            "agencies",
            resource_id=agency.id,
            new_data={"npi": agency.npi, "name": agency.name},
            request=request,
        )
        logger.info(f"🏥 Admin {admin.id} created agency {agency.id} (NPI {agency.npi})")
        return AdminAgency.model_validate(agency)

    def approve_agency(self, admin: Profile, agency_id: str, request: Request) -> AdminAgency:
        agency = self._get_agency(agency_id)
        old_data = {"is_approved": agency.is_approved, "is_active": agency.is_active}
        agency.is_approved = True
        agency.is_active = True
        self.db.commit()
        self.db.refresh(agency)

        write_audit(
            self.db,
            admin,
            "approve_agency",
            "agencies",
            resource_id=agency_id,
            old_data=old_data,
            new_data={"is_approved": True, "is_active": True},
            request=request,
        )
        logger.info(f"✅ Agency {agency_id} approved by {admin.id}")
        return AdminAgency.model_validate(agency)

    def deactivate_agency(self, admin: Profile, agency_id: str, request: Request) -> AdminAgency:
        agency = self._get_agency(agency_id)
        old_data = {"is_active": agency.is_active, "is_approved": agency.is_approved}
        agency.is_active = False
        agency.is_approved = False
        self.db.commit()
        self.db.refresh(agency)

        write_audit(
            self.db,
            admin,
            "deactivate_agency",
            "agencies",
            resource_id=agency_id,
            old_data=old_data,
            new_data={"is_active": False},
            request=request,
        )
        logger.info(f"⛔ Agency {agency_id} deactivated by {admin.id}")
        return AdminAgency.model_validate(agency)

    def set_verified_partner(
        self, admin: Profile, agency_id: str, is_verified: bool, request: Request
    ) -> AdminAgency:
        agency = self._get_agency(agency_id)
        was_verified = agency.is_verified_partner
        agency.is_verified_partner = is_verified
        self.db.commit()
        self.db.refresh(agency)

        write_audit(
            self.db,
            admin,
            "toggle_verified_partner",
            "agencies",
            resource_id=agency_id,
            old_data={"is_verified_partner": was_verified},
            new_data={"is_verified_partner": is_verified},
            request=request,
        )
        return AdminAgency.model_validate(agency)

    def add_agency_member(
        self, admin: Profile, agency_id: str, data: AgencyMemberCreate, request: Request
    ) -> AgencyMemberResult:
        """Attach a user to an agency, reactivating an earlier membership if one exists"""
        self._get_agency(agency_id)
        user = ProfileRepository.get_profile(self.db, data.user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")

        membership = self.repo.get_membership(self.db, agency_id, data.user_id)
        if membership:
            membership.role = data.role
            membership.title = data.title
            membership.is_active = True
            membership.invited_by = admin.id
        else:
            membership = AgencyMember(
                agency_id=agency_id,
                user_id=data.user_id,
                role=data.role,
                title=data.title,
                is_active=True,
                invited_by=admin.id,
            )
            self.db.add(membership)

        old_role = user.role
        # Admins keep their platform role
        if user.role != "chautari_admin":
            user.role = MEMBER_ROLE_TO_PROFILE_ROLE[data.role]
        self.db.commit()
        self.db.refresh(membership)

        write_audit(
            self.db,
            admin,
            "add_agency_member",
            "agency_members",
            resource_id=membership.id,
            old_data={"role": old_role},
            new_data={"agency_id": agency_id, "user_id": data.user_id, "member_role": data.role},
            request=request,
        )
        logger.info(f"👥 User {data.user_id} added to agency {agency_id} as {data.role}")
        return AgencyMemberResult.model_validate(membership)

    # ------------------------------------------------------------------
    # Switch requests
    # ------------------------------------------------------------------

    def list_requests(self, status: Optional[str], limit: int, offset: int) -> AdminRequestList:
        requests, total = self.repo.list_requests(self.db, status, limit, offset)
        patient_names = self.repo.get_profile_names(self.db, list({r.patient_id for r in requests}))
        agency_names = self.repo.get_agency_names(self.db, list({r.new_agency_id for r in requests}))

        return AdminRequestList(
            requests=[
                AdminRequest(
                    id=r.id,
                    patient_id=r.patient_id,
                    new_agency_id=r.new_agency_id,
                    care_type=r.care_type,
                    payer_type=r.payer_type,
                    status=r.status,
                    created_at=r.created_at,
                    submitted_at=r.submitted_at,
                    case_manager_id=r.case_manager_id,
                    patient_name=patient_names.get(r.patient_id),
                    agency_name=agency_names.get(r.new_agency_id),
                )
                for r in requests
            ],
            total=total,
        )

    def assign_case_manager(self, admin: Profile, request_id: str, request: Request) -> dict:
        switch_request = SwitchRequestRepository.get_request(self.db, request_id)
        if not switch_request:
            raise HTTPException(status_code=404, detail="Switch request not found")

        old_manager = switch_request.case_manager_id
        switch_request.case_manager_id = admin.id
        self.db.commit()

        write_audit(
            self.db,
            admin,
            "assign_case_manager",
            "switch_requests",
            resource_id=request_id,
            old_data={"case_manager_id": old_manager},
            new_data={"case_manager_id": admin.id},
            request=request,
        )
        return {"success": True, "id": request_id, "case_manager_id": admin.id}

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    def list_audit_logs(self, resource: Optional[str], limit: int, offset: int) -> AuditLogList:
        logs, total = self.repo.list_audit_logs(self.db, resource, limit, offset)
        return AuditLogList(logs=[AuditLogEntry.model_validate(log) for log in logs], total=total)
