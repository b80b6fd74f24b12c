"""Switch request service - Wizard submission and the guarded status workflow"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...models import AgencyMember, Conversation, ESignature, Profile, SwitchRequest
from ...services.audit_service import get_request_ip, get_request_user_agent, write_audit
from ...services.notification_service import notify_agency_members, notify_user
from ...services.switch_transitions import get_next_required_action, transition_switch_request
from ...shared.constants import STATUS_LABELS
from ...utils.signatures import compute_signature_checksum
from ..agencies.repository import AgencyRepository
from ..profiles.repository import ProfileRepository
from .repository import SwitchRequestRepository
from .schemas import (
    AcceptRequest,
    DenyRequest,
    StatusChangeResponse,
    SwitchRequestCreate,
    SwitchRequestDetail,
)

logger = logging.getLogger(__name__)


class SwitchRequestService:
    """Service layer for switch request business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SwitchRequestRepository()

    # ------------------------------------------------------------------
    # Patient side
    # ------------------------------------------------------------------

    def create_switch_request(
        self, data: SwitchRequestCreate, user: Profile, request: Request
    ) -> SwitchRequest:
        """Submit the switch wizard: request, signed consent and conversation in one transaction"""
        logger.info(f"📥 Switch request from patient {user.id} for agency {data.new_agency_id}")

        agency = AgencyRepository.get_active_agency(self.db, data.new_agency_id)
        if not agency:
            raise HTTPException(status_code=404, detail="Agency not found")
        if not agency.is_accepting_patients:
            raise HTTPException(status_code=400, detail="This agency is not accepting new patients")

        existing = self.repo.find_open_request_for_agency(self.db, user.id, agency.id)
        if existing:
            logger.warning(f"⚠️ Duplicate switch request for patient {user.id} → agency {agency.id}")
            raise HTTPException(
                status_code=409,
                detail=f"You already have an active switch request for this agency (status: {existing.status}).",
            )

        current_agency_id = None
        if data.has_current_agency == "yes" and data.current_agency_id:
            current_agency = AgencyRepository.get_agency(self.db, data.current_agency_id)
            if current_agency:
                current_agency_id = current_agency.id

        details = ProfileRepository.get_patient_details(self.db, user.id)
        payer_type = (details.payer_type if details else None) or "self_pay"

        now = datetime.utcnow()
        try:
            switch_request = SwitchRequest(
                patient_id=user.id,
                new_agency_id=agency.id,
                current_agency_id=current_agency_id,
                current_agency_name=data.current_agency_name,
                care_type=data.care_type,
                payer_type=payer_type,
                status="submitted",
                switch_reason=data.switch_reason,
                switch_reason_detail=data.switch_reason_detail,
                services_requested=data.services_requested,
                requested_start_date=data.requested_start_date,
                special_instructions=data.special_instructions,
                submitted_at=now,
            )
            self.db.add(switch_request)
            self.db.flush()

            self.db.add(
                ESignature(
                    switch_request_id=switch_request.id,
                    signer_id=user.id,
                    signer_role="patient",
                    typed_name=data.signature_name,
                    signature_method=data.signature_method,
                    signature_data=data.signature_data,
                    consent_hipaa=data.consent_hipaa,
                    consent_current_agency_notification=data.consent_current_agency_notification,
                    consent_terms=data.consent_terms,
                    ip_address=get_request_ip(request),
                    user_agent=get_request_user_agent(request),
                    signed_at=now,
                    checksum=compute_signature_checksum(
                        switch_request.id, user.id, data.signature_name, now, data.signature_data
                    ),
                )
            )
            self.db.add(
                Conversation(request_id=switch_request.id, patient_id=user.id, agency_id=agency.id)
            )
            self.db.commit()
            self.db.refresh(switch_request)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Switch request creation failed for patient {user.id}: {e}")
            raise HTTPException(
                status_code=500,
                detail="Something went wrong submitting your request. Please try again.",
            ) from e

        logger.info(f"✅ Switch request {switch_request.id} submitted")

        notify_user(
            self.db,
            user.id,
            "request_submitted",
            "Switch request submitted",
            "Your agency switch request has been submitted. We'll notify you when the agency responds.",
            reference_id=switch_request.id,
            reference_type="switch_request",
        )
        notify_agency_members(
            self.db,
            agency.id,
            "new_switch_request",
            "New switch request",
            f"{user.full_name or 'A patient'} has requested to switch to your agency.",
            reference_id=switch_request.id,
            reference_type="switch_request",
        )

        if current_agency_id or data.current_agency_name:
            switch_request.current_agency_notified_at = datetime.utcnow()

        write_audit(
            self.db,
            user,
            "switch_request_submitted",
            "switch_requests",
            resource_id=switch_request.id,
            new_data={
                "new_agency_id": agency.id,
                "care_type": data.care_type,
                "switch_reason": data.switch_reason,
                "requested_start_date": data.requested_start_date.isoformat(),
            },
            request=request,
        )
        self.db.refresh(switch_request)
        return switch_request

    def list_patient_requests(self, user: Profile) -> list[SwitchRequest]:
        return self.repo.get_patient_requests(self.db, user.id)

    def get_patient_request(self, request_id: str, user: Profile) -> SwitchRequestDetail:
        switch_request = self.repo.get_patient_request(self.db, request_id, user.id)
        if not switch_request:
            raise HTTPException(status_code=404, detail="Request not found")
        detail = SwitchRequestDetail.model_validate(switch_request)
        detail.next_action = get_next_required_action(switch_request)
        detail.status_label = STATUS_LABELS.get(switch_request.status, switch_request.status)
        return detail

    def cancel_request(self, request_id: str, user: Profile, request: Request) -> StatusChangeResponse:
        old_status, switch_request = transition_switch_request(
            self.db, request_id, "cancelled", "patient", SwitchRequest.patient_id == user.id
        )
        write_audit(
            self.db,
            user,
            "switch_request_cancelled",
            "switch_requests",
            resource_id=request_id,
            old_data={"status": old_status},
            new_data={"status": "cancelled"},
            request=request,
        )
        return StatusChangeResponse(id=switch_request.id, old_status=old_status, status=switch_request.status)

    # ------------------------------------------------------------------
    # Agency side
    # ------------------------------------------------------------------

    def _agency_transition(
        self,
        request_id: str,
        new_status: str,
        membership: AgencyMember,
        user: Profile,
        request: Request,
        extra_values: Optional[dict] = None,
    ) -> tuple[str, SwitchRequest]:
        old_status, switch_request = transition_switch_request(
            self.db,
            request_id,
            new_status,
            "agency",
            SwitchRequest.new_agency_id == membership.agency_id,
            extra_values,
        )
        new_data = {"status": new_status}
        if extra_values:
            new_data.update(extra_values)
        write_audit(
            self.db,
            user,
            f"switch_request_{new_status}",
            "switch_requests",
            resource_id=request_id,
            old_data={"status": old_status},
            new_data=new_data,
            request=request,
        )
        return old_status, switch_request

    def mark_under_review(
        self, request_id: str, membership: AgencyMember, user: Profile, request: Request
    ) -> StatusChangeResponse:
        old_status, switch_request = self._agency_transition(
            request_id, "under_review", membership, user, request
        )
        return StatusChangeResponse(id=switch_request.id, old_status=old_status, status=switch_request.status)

    def accept_request(
        self,
        request_id: str,
        data: AcceptRequest,
        membership: AgencyMember,
        user: Profile,
        request: Request,
    ) -> StatusChangeResponse:
        note = data.note.strip() if data.note and data.note.strip() else None
        old_status, switch_request = self._agency_transition(
            request_id,
            "accepted",
            membership,
            user,
            request,
            extra_values={"decision_note": note} if note else None,
        )
        notify_user(
            self.db,
            switch_request.patient_id,
            "request_accepted",
            "Your switch request was accepted! 🎉",
            f"Your new agency has accepted your request. Note: {note}"
            if note
            else "Your new agency accepted your switch request. The transition process will begin shortly.",
            reference_id=switch_request.id,
            reference_type="switch_request",
        )
        return StatusChangeResponse(id=switch_request.id, old_status=old_status, status=switch_request.status)

    def deny_request(
        self,
        request_id: str,
        data: DenyRequest,
        membership: AgencyMember,
        user: Profile,
        request: Request,
    ) -> StatusChangeResponse:
        old_status, switch_request = self._agency_transition(
            request_id,
            "denied",
            membership,
            user,
            request,
            extra_values={"decision_note": data.reason},
        )
        notify_user(
            self.db,
            switch_request.patient_id,
            "request_denied",
            "Switch request update",
            f"Your switch request could not be accepted. Reason: {data.reason}",
            reference_id=switch_request.id,
            reference_type="switch_request",
        )
        return StatusChangeResponse(id=switch_request.id, old_status=old_status, status=switch_request.status)

    def complete_request(
        self, request_id: str, membership: AgencyMember, user: Profile, request: Request
    ) -> StatusChangeResponse:
        old_status, switch_request = self._agency_transition(
            request_id, "completed", membership, user, request
        )
        notify_user(
            self.db,
            switch_request.patient_id,
            "request_completed",
            "Your switch is complete! 🎉",
            "Your home care agency switch has been successfully completed. Welcome to your new agency!",
            reference_id=switch_request.id,
            reference_type="switch_request",
        )
        return StatusChangeResponse(id=switch_request.id, old_status=old_status, status=switch_request.status)
