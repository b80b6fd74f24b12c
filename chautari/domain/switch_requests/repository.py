"""Switch request repository - Database operations for switch requests"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import SwitchRequest


class SwitchRequestRepository:
    """Repository for switch request database operations"""

    @staticmethod
    def get_patient_requests(db: Session, patient_id: str) -> list[SwitchRequest]:
        return (
            db.query(SwitchRequest)
            .options(joinedload(SwitchRequest.new_agency))
            .filter(SwitchRequest.patient_id == patient_id)
            .order_by(SwitchRequest.created_at.desc())
            .all()
        )

    @staticmethod
    def get_patient_request(db: Session, request_id: str, patient_id: str) -> Optional[SwitchRequest]:
        return (
            db.query(SwitchRequest)
            .options(joinedload(SwitchRequest.new_agency), joinedload(SwitchRequest.e_signatures))
            .filter(SwitchRequest.id == request_id, SwitchRequest.patient_id == patient_id)
            .first()
        )

    @staticmethod
    def get_request(db: Session, request_id: str) -> Optional[SwitchRequest]:
        return db.query(SwitchRequest).filter(SwitchRequest.id == request_id).first()

    @staticmethod
    def find_open_request_for_agency(
        db: Session, patient_id: str, agency_id: str
    ) -> Optional[SwitchRequest]:
        """A request for the same agency that has not been cancelled or denied"""
        return (
            db.query(SwitchRequest)
            .filter(
                SwitchRequest.patient_id == patient_id,
                SwitchRequest.new_agency_id == agency_id,
                SwitchRequest.status.notin_(("cancelled", "denied")),
            )
            .first()
        )
