"""Profile service - Business logic for profiles, onboarding and the patient dashboard"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException, Request
from sqlalchemy.orm import Session

from ...models import PatientDetails, Profile
from ...services.audit_service import write_audit
from ...utils.phi_encryption import decrypt_value, encrypt_value
from .repository import ProfileRepository
from .schemas import (
    DashboardNotification,
    DashboardRequest,
    DashboardResponse,
    OnboardingRequest,
    OnboardingStatusResponse,
    PatientDetailsResponse,
    ProfileResponse,
    ProfileUpdate,
)

logger = logging.getLogger(__name__)


def serialize_patient_details(details: Optional[PatientDetails]) -> Optional[PatientDetailsResponse]:
    """Build the API view of patient details, decrypting the date of birth"""
    if details is None:
        return None
    dob = decrypt_value(details.dob_enc)
    return PatientDetailsResponse(
        address_line1=details.address_line1,
        address_line2=details.address_line2,
        address_city=details.address_city,
        address_state=details.address_state,
        address_zip=details.address_zip,
        address_county=details.address_county,
        payer_type=details.payer_type,
        medicaid_plan=details.medicaid_plan,
        care_type=details.care_type,
        care_needs=details.care_needs or [],
        date_of_birth=date.fromisoformat(dob) if dob else None,
        has_medicaid_id=bool(details.medicaid_id_enc),
    )


class ProfileService:
    """Service layer for profile business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ProfileRepository()

    def update_profile(self, data: ProfileUpdate, user: Profile) -> Profile:
        # Only phone may be cleared with an explicit null
        updates = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key == "phone"
        }
        logger.info(f"✏️ Updating profile {user.id}: {list(updates.keys())}")
        return self.repo.update_profile(self.db, user, **updates)

    def save_onboarding(self, data: OnboardingRequest, user: Profile, request: Request) -> dict:
        """Save the onboarding wizard: profile fields plus an upserted patient_details row"""
        logger.info(f"📥 Saving onboarding for patient {user.id}")
        try:
            self.repo.update_profile(
                self.db,
                user,
                commit=False,
                full_name=data.full_name,
                phone=data.phone,
                preferred_lang=data.preferred_lang,
            )
            self.repo.upsert_patient_details(
                self.db,
                user.id,
                address_line1=data.address_line1,
                address_line2=data.address_line2 or None,
                address_city=data.address_city,
                address_state=data.address_state,
                address_zip=data.address_zip,
                address_county=data.address_county,
                payer_type=data.payer_type,
                medicaid_plan=data.medicaid_plan or None,
                care_type=data.care_type,
                care_needs=data.care_needs,
                dob_enc=encrypt_value(data.date_of_birth.isoformat()),
                medicaid_id_enc=encrypt_value(data.medicaid_id),
            )
            write_audit(
                self.db,
                user,
                "onboarding_completed",
                "patient_details",
                resource_id=user.id,
                new_data={
                    "payer_type": data.payer_type,
                    "care_type": data.care_type,
                    "county": data.address_county,
                },
                request=request,
                commit=False,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Onboarding save failed for {user.id}: {e}")
            raise HTTPException(
                status_code=500,
                detail="Something went wrong saving your information. Please try again.",
            ) from e

        logger.info(f"✅ Onboarding completed for patient {user.id}")
        return {"success": True}

    def get_onboarding_status(self, user: Profile) -> OnboardingStatusResponse:
        details = self.repo.get_patient_details(self.db, user.id)
        return OnboardingStatusResponse(
            completed=bool(details and details.payer_type),
            details=serialize_patient_details(details),
        )

    def get_dashboard(self, user: Profile) -> DashboardResponse:
        details = self.repo.get_patient_details(self.db, user.id)
        requests = self.repo.get_recent_requests(self.db, user.id, limit=20)
        notifications = self.repo.get_recent_notifications(self.db, user.id, limit=30)

        return DashboardResponse(
            profile=ProfileResponse.model_validate(user),
            patient_details=serialize_patient_details(details),
            switch_requests=[DashboardRequest.model_validate(r) for r in requests],
            notifications=[DashboardNotification.model_validate(n) for n in notifications],
            unread_count=sum(1 for n in notifications if n.read_at is None),
            onboarding_complete=bool(details and details.payer_type),
        )
