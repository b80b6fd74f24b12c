"""Admin repository - Platform-wide queries (no row predicates)"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Agency, AgencyMember, AuditLog, Profile, SwitchRequest


class AdminRepository:
    """Repository for admin database operations"""

    @staticmethod
    def count_profiles(db: Session, role: Optional[str] = None) -> int:
        query = db.query(Profile)
        if role:
            query = query.filter(Profile.role == role)
        return query.count()

    @staticmethod
    def count_agencies(db: Session, pending_only: bool = False) -> int:
        query = db.query(Agency).filter(Agency.is_active.is_(True))
        if pending_only:
            query = query.filter(Agency.is_approved.is_(False))
        return query.count()

    @staticmethod
    def count_requests(
        db: Session, statuses: Optional[tuple] = None, since: Optional[datetime] = None
    ) -> int:
        query = db.query(SwitchRequest)
        if statuses:
            query = query.filter(SwitchRequest.status.in_(statuses))
        if since:
            query = query.filter(SwitchRequest.created_at >= since)
        return query.count()

    @staticmethod
    def average_response_hours(db: Session) -> Optional[float]:
        return (
            db.query(func.avg(Agency.avg_response_hours))
            .filter(Agency.avg_response_hours.isnot(None))
            .scalar()
        )

    @staticmethod
    def list_users(
        db: Session, role: Optional[str], search: Optional[str], limit: int, offset: int
    ) -> tuple[list[Profile], int]:
        query = db.query(Profile)
        if role:
            query = query.filter(Profile.role == role)
        if search:
            query = query.filter(Profile.full_name.ilike(f"%{search}%"))
        total = query.count()
        users = query.order_by(Profile.created_at.desc()).offset(offset).limit(limit).all()
        return users, total

    @staticmethod
    def list_agencies(
        db: Session, search: Optional[str], status: Optional[str], limit: int, offset: int
    ) -> tuple[list[Agency], int]:
        query = db.query(Agency)
        if search:
            query = query.filter(Agency.name.ilike(f"%{search}%"))
        if status == "pending":
            query = query.filter(Agency.is_active.is_(True), Agency.is_approved.is_(False))
        elif status == "approved":
            query = query.filter(Agency.is_active.is_(True), Agency.is_approved.is_(True))
        elif status == "inactive":
            query = query.filter(Agency.is_active.is_(False))
        total = query.count()
        agencies = query.order_by(Agency.created_at.desc()).offset(offset).limit(limit).all()
        return agencies, total

    @staticmethod
    def member_counts(db: Session, agency_ids: list[str]) -> dict[str, int]:
        if not agency_ids:
            return {}
        rows = (
            db.query(AgencyMember.agency_id, func.count(AgencyMember.id))
            .filter(AgencyMember.agency_id.in_(agency_ids), AgencyMember.is_active.is_(True))
            .group_by(AgencyMember.agency_id)
            .all()
        )
        return dict(rows)

    @staticmethod
    def request_counts(db: Session, agency_ids: list[str]) -> dict[str, int]:
        if not agency_ids:
            return {}
        rows = (
            db.query(SwitchRequest.new_agency_id, func.count(SwitchRequest.id))
            .filter(SwitchRequest.new_agency_id.in_(agency_ids))
            .group_by(SwitchRequest.new_agency_id)
            .all()
        )
        return dict(rows)

    @staticmethod
    def get_membership(db: Session, agency_id: str, user_id: str) -> Optional[AgencyMember]:
        return (
            db.query(AgencyMember)
            .filter(AgencyMember.agency_id == agency_id, AgencyMember.user_id == user_id)
            .first()
        )

    @staticmethod
    def list_requests(
        db: Session, status: Optional[str], limit: int, offset: int
    ) -> tuple[list[SwitchRequest], int]:
        query = db.query(SwitchRequest)
        if status:
            query = query.filter(SwitchRequest.status == status)
        total = query.count()
        requests = query.order_by(SwitchRequest.created_at.desc()).offset(offset).limit(limit).all()
        return requests, total

    @staticmethod
    def list_audit_logs(
        db: Session, resource: Optional[str], limit: int, offset: int
    ) -> tuple[list[AuditLog], int]:
        query = db.query(AuditLog)
        if resource:
            query = query.filter(AuditLog.resource == resource)
        total = query.count()
        logs = query.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit).all()
        return logs, total

    @staticmethod
    def get_agency_names(db: Session, agency_ids: list[str]) -> dict[str, str]:
        if not agency_ids:
            return {}
        rows = db.query(Agency.id, Agency.name).filter(Agency.id.in_(agency_ids)).all()
        return dict(rows)

    @staticmethod
    def get_profile_names(db: Session, profile_ids: list[str]) -> dict[str, Optional[str]]:
        if not profile_ids:
            return {}
        rows = db.query(Profile.id, Profile.full_name).filter(Profile.id.in_(profile_ids)).all()
        return dict(rows)
