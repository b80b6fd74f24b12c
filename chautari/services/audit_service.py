"""
Audit trail writer
Rows are append-only; nothing in the API updates or deletes them
"""

import logging
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import Session

from ..models import AuditLog, Profile

logger = logging.getLogger(__name__)


def get_request_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_request_user_agent(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    user_agent = request.headers.get("User-Agent")
    return user_agent[:500] if user_agent else None


def write_audit(
    db: Session,
    actor: Optional[Profile],
    action: str,
    resource: str,
    resource_id: Optional[str] = None,
    old_data: Optional[dict] = None,
    new_data: Optional[dict] = None,
    request: Optional[Request] = None,
    commit: bool = True,
) -> AuditLog:
    """
    Record an audit entry.

    Args:
        db: Database session
        actor: Profile performing the action (None for system actions)
        action: Action name, e.g. "switch_request_submitted"
        resource: Resource type, e.g. "switch_request"
        resource_id: Resource primary key
        old_data: State before the change
        new_data: State after the change
        request: Incoming request, used for IP and user agent
        commit: Commit immediately; pass False to join the caller's transaction
    """
    entry = AuditLog(
        actor_id=actor.id if actor else None,
        actor_role=actor.role if actor else None,
        action=action,
        resource=resource,
        resource_id=resource_id,
        old_data=old_data,
        new_data=new_data,
        ip_address=get_request_ip(request),
        user_agent=get_request_user_agent(request),
    )
    db.add(entry)
    if commit:
        db.commit()
    logger.info(f"📝 Audit: {action} on {resource}:{resource_id} by {entry.actor_id}")
    return entry
