"""Profile repository - Database operations for profiles and patient details"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Notification, PatientDetails, Profile, SwitchRequest


class ProfileRepository:
    """Repository for profile database operations"""

    @staticmethod
    def get_profile(db: Session, user_id: str) -> Optional[Profile]:
        return db.query(Profile).filter(Profile.id == user_id).first()

    @staticmethod
    def update_profile(db: Session, profile: Profile, commit: bool = True, **updates) -> Profile:
        """Write every given field; callers decide which keys are present"""
        for key, value in updates.items():
            if hasattr(profile, key):
                setattr(profile, key, value)
        if commit:
            db.commit()
            db.refresh(profile)
        return profile

    @staticmethod
    def get_patient_details(db: Session, patient_id: str) -> Optional[PatientDetails]:
        return db.query(PatientDetails).filter(PatientDetails.patient_id == patient_id).first()

    @staticmethod
    def upsert_patient_details(db: Session, patient_id: str, **fields) -> PatientDetails:
        """Insert or update the patient_details row keyed on patient_id (caller commits)"""
        details = db.query(PatientDetails).filter(PatientDetails.patient_id == patient_id).first()
        if details is None:
            details = PatientDetails(patient_id=patient_id)
            db.add(details)
        for key, value in fields.items():
            setattr(details, key, value)
        return details

    @staticmethod
    def get_recent_requests(db: Session, patient_id: str, limit: int = 20) -> list[SwitchRequest]:
        return (
            db.query(SwitchRequest)
            .options(joinedload(SwitchRequest.new_agency))
            .filter(SwitchRequest.patient_id == patient_id)
            .order_by(SwitchRequest.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_recent_notifications(db: Session, user_id: str, limit: int = 30) -> list[Notification]:
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
            .all()
        )
