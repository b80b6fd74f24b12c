"""
In-app notification service
Creates notification rows for workflow events (switch requests, messages, documents)
Failures are logged and never break the operation that triggered them
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models import AgencyMember, Notification

logger = logging.getLogger(__name__)


def _build_notification(
    user_id: str,
    notification_type: str,
    title: str,
    body: str,
    reference_id: Optional[str],
    reference_type: Optional[str],
    data: Optional[dict],
    channel: str,
) -> Notification:
    return Notification(
        user_id=user_id,
        type=notification_type,
        channel=channel,
        title=title,
        body=body,
        data=data,
        reference_id=reference_id,
        reference_type=reference_type,
        sent_at=datetime.utcnow(),
    )


def notify_user(
    db: Session,
    user_id: str,
    notification_type: str,
    title: str,
    body: str,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
    data: Optional[dict] = None,
    channel: str = "push",
) -> bool:
    """
    Create a notification for a single user

    Returns:
        True if the notification was stored, False otherwise
    """
    try:
        db.add(
            _build_notification(
                user_id, notification_type, title, body, reference_id, reference_type, data, channel
            )
        )
        db.commit()
        logger.info(f"🔔 {notification_type} notification created for user {user_id}")
        return True
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to create {notification_type} notification for user {user_id}: {e}")
        return False


def notify_agency_members(
    db: Session,
    agency_id: str,
    notification_type: str,
    title: str,
    body: str,
    reference_id: Optional[str] = None,
    reference_type: Optional[str] = None,
    data: Optional[dict] = None,
    exclude_user_id: Optional[str] = None,
) -> int:
    """
    Fan a notification out to every active member of an agency

    Returns:
        Number of notifications created
    """
    try:
        members = (
            db.query(AgencyMember)
            .filter(AgencyMember.agency_id == agency_id, AgencyMember.is_active.is_(True))
            .all()
        )
        recipients = [m.user_id for m in members if m.user_id != exclude_user_id]
        for user_id in recipients:
            db.add(
                _build_notification(
                    user_id, notification_type, title, body, reference_id, reference_type, data, "push"
                )
            )
        db.commit()
        if recipients:
            logger.info(
                f"🔔 {notification_type} notification sent to {len(recipients)} member(s) of agency {agency_id}"
            )
        else:
            logger.warning(f"⚠️ Agency {agency_id} has no active members to notify ({notification_type})")
        return len(recipients)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to notify members of agency {agency_id} ({notification_type}): {e}")
        return 0
