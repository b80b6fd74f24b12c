"""Agency portal repository - Queries scoped to one agency"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import AgencyMember, PatientDetails, Profile, SwitchRequest


class AgencyPortalRepository:
    """Repository for agency portal database operations"""

    @staticmethod
    def get_agency_requests(db: Session, agency_id: str) -> list[SwitchRequest]:
        return (
            db.query(SwitchRequest)
            .options(joinedload(SwitchRequest.e_signatures))
            .filter(SwitchRequest.new_agency_id == agency_id)
            .order_by(SwitchRequest.submitted_at.desc(), SwitchRequest.created_at.desc())
            .all()
        )

    @staticmethod
    def get_agency_request(db: Session, request_id: str, agency_id: str) -> Optional[SwitchRequest]:
        return (
            db.query(SwitchRequest)
            .options(joinedload(SwitchRequest.e_signatures))
            .filter(SwitchRequest.id == request_id, SwitchRequest.new_agency_id == agency_id)
            .first()
        )

    @staticmethod
    def get_profiles(db: Session, user_ids: list[str]) -> dict[str, Profile]:
        if not user_ids:
            return {}
        profiles = db.query(Profile).filter(Profile.id.in_(user_ids)).all()
        return {p.id: p for p in profiles}

    @staticmethod
    def get_patient_details(db: Session, patient_ids: list[str]) -> dict[str, PatientDetails]:
        if not patient_ids:
            return {}
        rows = db.query(PatientDetails).filter(PatientDetails.patient_id.in_(patient_ids)).all()
        return {d.patient_id: d for d in rows}

    @staticmethod
    def get_members(db: Session, agency_id: str) -> list[AgencyMember]:
        return (
            db.query(AgencyMember)
            .options(joinedload(AgencyMember.profile))
            .filter(AgencyMember.agency_id == agency_id)
            .order_by(AgencyMember.created_at.asc())
            .all()
        )
