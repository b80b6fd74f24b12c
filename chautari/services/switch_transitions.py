"""
Switch request status workflow
Statuses: submitted → under_review → accepted/denied → completed
Patients may cancel while a request is submitted or under review
"""

import logging
from datetime import datetime
from typing import NamedTuple, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ..models import SwitchRequest

logger = logging.getLogger(__name__)

PENDING_STATUSES = ("submitted", "under_review")
ACTIVE_STATUSES = ("submitted", "under_review", "accepted")


class TransitionRule(NamedTuple):
    allowed_from: tuple
    actor: str  # patient | agency
    timestamp_field: str


TRANSITIONS = {
    "under_review": TransitionRule(("submitted",), "agency", "reviewed_at"),
    "accepted": TransitionRule(PENDING_STATUSES, "agency", "accepted_at"),
    "denied": TransitionRule(PENDING_STATUSES, "agency", "denied_at"),
    "completed": TransitionRule(("accepted",), "agency", "completed_at"),
    "cancelled": TransitionRule(PENDING_STATUSES, "patient", "cancelled_at"),
}


def validate_status_transition(current_status: str, new_status: str, actor: Optional[str] = None) -> bool:
    """
    Validate if a switch request status transition is allowed

    Args:
        current_status: Current request status
        new_status: Desired new status
        actor: "patient" or "agency"; when given the edge must belong to that actor

    Returns:
        bool: True if transition is valid, False otherwise
    """
    rule = TRANSITIONS.get(new_status)
    if rule is None:
        return False
    if actor is not None and rule.actor != actor:
        return False
    return current_status in rule.allowed_from


def transition_switch_request(
    db: Session,
    request_id: str,
    new_status: str,
    actor: str,
    scope_filter,
    extra_values: Optional[dict] = None,
) -> tuple[str, SwitchRequest]:
    """
    Move a switch request to new_status with a single guarded UPDATE

    The update only matches rows whose current status is an allowed source for the edge
    and that satisfy scope_filter (the caller's row predicate). Zero matched rows means
    either the row is not visible to the caller (404) or the transition is invalid (409).

    Returns:
        Tuple of (old_status, refreshed switch request)
    """
    rule = TRANSITIONS.get(new_status)
    if rule is None or rule.actor != actor:
        raise HTTPException(status_code=403, detail="You are not allowed to perform this action")

    switch_request = (
        db.query(SwitchRequest).filter(SwitchRequest.id == request_id, scope_filter).first()
    )
    if not switch_request:
        raise HTTPException(status_code=404, detail="Request not found")
    old_status = switch_request.status
    if not validate_status_transition(old_status, new_status, actor):
        logger.warning(f"⚠️ Rejected transition for request {request_id}: {old_status} → {new_status}")
        raise HTTPException(
            status_code=409,
            detail=f"Cannot change request from '{old_status}' to '{new_status}'",
        )

    values = {"status": new_status, rule.timestamp_field: datetime.utcnow()}
    if extra_values:
        values.update(extra_values)

    try:
        updated = (
            db.query(SwitchRequest)
            .filter(
                SwitchRequest.id == request_id,
                SwitchRequest.status.in_(rule.allowed_from),
                scope_filter,
            )
            .update(values, synchronize_session=False)
        )
        if updated == 0:
            db.rollback()
            logger.warning(
                f"⚠️ Rejected transition for request {request_id}: {old_status} → {new_status}"
            )
            raise HTTPException(
                status_code=409,
                detail=f"Cannot change request from '{old_status}' to '{new_status}'",
            )
        db.commit()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Error transitioning request {request_id}: {str(e)}")
        db.rollback()
        raise

    db.refresh(switch_request)
    logger.info(f"✅ Switch request {request_id} transitioned: {old_status} → {new_status}")
    return old_status, switch_request


def get_next_required_action(switch_request: SwitchRequest) -> str:
    """Describe what happens next for a switch request"""
    if switch_request.status == "submitted":
        return "Waiting for the agency to review your request"
    elif switch_request.status == "under_review":
        return "The agency is reviewing your request"
    elif switch_request.status == "accepted":
        if switch_request.requested_start_date:
            return f"Care transfer planned to start on {switch_request.requested_start_date.isoformat()}"
        return "The agency will contact you to schedule your first visit"
    elif switch_request.status == "denied":
        return "The agency could not accept this request"
    elif switch_request.status == "completed":
        return "Your care has been transferred"
    elif switch_request.status == "cancelled":
        return "Request was cancelled"

    return "Unknown status"
