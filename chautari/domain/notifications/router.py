"""Notification router - In-app notification inbox"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from .repository import NotificationRepository
from .schemas import NotificationListResponse, NotificationResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["Notifications"])

NOTIFICATION_PAGE_LIMIT = 50


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    unread_only: bool = Query(False),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest notifications for the signed-in user plus the unread total"""
    notifications = NotificationRepository.get_notifications(
        db, current_user.id, unread_only=unread_only, limit=NOTIFICATION_PAGE_LIMIT
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=NotificationRepository.count_unread(db, current_user.id),
    )


@router.post("/read-all")
async def mark_all_notifications_read(
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = NotificationRepository.mark_all_read(db, current_user.id)
    logger.info(f"📬 Marked {updated} notification(s) read for user {current_user.id}")
    return {"success": True, "updated": updated}


@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not NotificationRepository.exists_for_user(db, notification_id, current_user.id):
        raise HTTPException(status_code=404, detail="Notification not found")
    NotificationRepository.mark_read(db, notification_id, current_user.id)
    return {"success": True}
