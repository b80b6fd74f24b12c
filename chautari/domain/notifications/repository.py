"""Notification repository - Reads and read-state updates scoped to the owner"""

from datetime import datetime

from sqlalchemy.orm import Session

from ...models import Notification


class NotificationRepository:
    """Repository for notification database operations"""

    @staticmethod
    def get_notifications(db: Session, user_id: str, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.read_at.is_(None))
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    @staticmethod
    def count_unread(db: Session, user_id: str) -> int:
        return (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
            .count()
        )

    @staticmethod
    def mark_read(db: Session, notification_id: str, user_id: str) -> int:
        updated = (
            db.query(Notification)
            .filter(
                Notification.id == notification_id,
                Notification.user_id == user_id,
                Notification.read_at.is_(None),
            )
            .update({"read_at": datetime.utcnow()}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def mark_all_read(db: Session, user_id: str) -> int:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read_at.is_(None))
            .update({"read_at": datetime.utcnow()}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def exists_for_user(db: Session, notification_id: str, user_id: str) -> bool:
        return (
            db.query(Notification.id)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
            is not None
        )
