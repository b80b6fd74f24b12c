"""Agency repository - Database operations for the agency directory"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Agency


class AgencyRepository:
    """Repository for agency database operations"""

    @staticmethod
    def get_active_agencies(
        db: Session, verified_only: bool = False, name_query: Optional[str] = None
    ) -> list[Agency]:
        """Active agencies, narrowed by the filters that map to plain columns"""
        query = db.query(Agency).filter(Agency.is_active.is_(True))
        if verified_only:
            query = query.filter(Agency.is_verified_partner.is_(True))
        if name_query:
            query = query.filter(Agency.name.ilike(f"%{name_query}%"))
        return query.all()

    @staticmethod
    def get_active_agency(db: Session, agency_id: str) -> Optional[Agency]:
        return (
            db.query(Agency)
            .filter(Agency.id == agency_id, Agency.is_active.is_(True))
            .first()
        )

    @staticmethod
    def get_agency(db: Session, agency_id: str) -> Optional[Agency]:
        return db.query(Agency).filter(Agency.id == agency_id).first()

    @staticmethod
    def get_agency_by_npi(db: Session, npi: str) -> Optional[Agency]:
        return db.query(Agency).filter(Agency.npi == npi).first()
