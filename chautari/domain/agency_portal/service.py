"""Agency portal service - Dashboard, request detail, listing edits and team view"""

import logging
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...auth import mark_member_joined
from ...models import Agency, AgencyMember, Profile, SwitchRequest
from ...services.audit_service import write_audit
from ...services.switch_transitions import PENDING_STATUSES
from ..agencies.repository import AgencyRepository
from ..agencies.schemas import AgencyResponse
from .repository import AgencyPortalRepository
from .schemas import (
    AgencyDashboardResponse,
    AgencyMemberResponse,
    AgencyProfileUpdate,
    AgencyRequestResponse,
    PortalMembership,
    PortalPatient,
    PortalPatientDetails,
    PortalSignature,
    PortalStats,
)

logger = logging.getLogger(__name__)


class AgencyPortalService:
    """Service layer for the agency portal"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AgencyPortalRepository()

    def _get_member_agency(self, membership: AgencyMember) -> Agency:
        agency = AgencyRepository.get_agency(self.db, membership.agency_id)
        if not agency:
            raise HTTPException(status_code=404, detail="Agency not found")
        return agency

    def _serialize_requests(self, requests: list[SwitchRequest]) -> list[AgencyRequestResponse]:
        """Attach patient profile and details summaries to each request"""
        patient_ids = list({r.patient_id for r in requests})
        profiles = self.repo.get_profiles(self.db, patient_ids)
        details = self.repo.get_patient_details(self.db, patient_ids)

        serialized = []
        for r in requests:
            profile = profiles.get(r.patient_id)
            patient_details = details.get(r.patient_id)
            serialized.append(
                AgencyRequestResponse(
                    id=r.id,
                    patient_id=r.patient_id,
                    status=r.status,
                    care_type=r.care_type,
                    payer_type=r.payer_type,
                    switch_reason=r.switch_reason,
                    switch_reason_detail=r.switch_reason_detail,
                    services_requested=r.services_requested or [],
                    requested_start_date=r.requested_start_date,
                    special_instructions=r.special_instructions,
                    current_agency_name=r.current_agency_name,
                    decision_note=r.decision_note,
                    submitted_at=r.submitted_at,
                    created_at=r.created_at,
                    updated_at=r.updated_at,
                    patient=PortalPatient.model_validate(profile) if profile else None,
                    patient_details=PortalPatientDetails.model_validate(patient_details)
                    if patient_details
                    else None,
                    e_signatures=[PortalSignature.model_validate(s) for s in r.e_signatures],
                )
            )
        return serialized

    def get_dashboard(self, membership: AgencyMember, status_filter: Optional[str] = None) -> AgencyDashboardResponse:
        agency = self._get_member_agency(membership)
        mark_member_joined(self.db, membership)

        all_requests = self.repo.get_agency_requests(self.db, agency.id)
        stats = PortalStats(
            total=len(all_requests),
            pending=sum(1 for r in all_requests if r.status in PENDING_STATUSES),
            accepted=sum(1 for r in all_requests if r.status == "accepted"),
            completed=sum(1 for r in all_requests if r.status == "completed"),
        )

        if status_filter and status_filter != "all":
            visible = [r for r in all_requests if r.status == status_filter]
        else:
            visible = all_requests

        logger.debug(f"📊 Agency {agency.id} dashboard: {stats.model_dump()}")
        return AgencyDashboardResponse(
            agency=AgencyResponse.model_validate(agency),
            member=PortalMembership.model_validate(membership),
            requests=self._serialize_requests(visible),
            stats=stats,
        )

    def get_request(self, request_id: str, membership: AgencyMember) -> AgencyRequestResponse:
        switch_request = self.repo.get_agency_request(self.db, request_id, membership.agency_id)
        if not switch_request:
            raise HTTPException(status_code=404, detail="Request not found")
        return self._serialize_requests([switch_request])[0]

    def update_agency_profile(
        self, data: AgencyProfileUpdate, membership: AgencyMember, user: Profile, request: Request
    ) -> Agency:
        agency = self._get_member_agency(membership)
        updates = data.model_dump(exclude_unset=True)
        old_values = {key: getattr(agency, key) for key in updates}

        for key, value in updates.items():
            setattr(agency, key, value)

        write_audit(
            self.db,
            user,
            "update_agency_profile",
            "agencies",
            resource_id=agency.id,
            old_data=old_values,
            new_data=updates,
            request=request,
            commit=False,
        )
        self.db.commit()
        self.db.refresh(agency)
        logger.info(f"✅ Agency {agency.id} profile updated: {list(updates.keys())}")
        return agency

    def list_members(self, membership: AgencyMember) -> list[AgencyMemberResponse]:
        members = self.repo.get_members(self.db, membership.agency_id)
        return [
            AgencyMemberResponse(
                id=m.id,
                user_id=m.user_id,
                role=m.role,
                title=m.title,
                is_active=m.is_active,
                joined_at=m.joined_at,
                full_name=m.profile.full_name if m.profile else None,
                email=m.profile.email if m.profile else None,
            )
            for m in members
        ]
