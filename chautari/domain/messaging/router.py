"""Messaging router - Conversation threads and realtime subscription"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ... import realtime
from ...auth import get_agency_membership, get_current_user, get_or_create_profile, verify_access_token
from ...config import MESSAGE_RATE_LIMIT, RATE_LIMIT_WINDOW_SECONDS
from ...database import SessionLocal, get_db
from ...models import AgencyMember, Profile
from ...rate_limiter import create_rate_limiter
from .schemas import ConversationDetail, ConversationListItem, MessageCreate, MessageResponse
from .service import MessagingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Messaging"])

rate_limit_messages = create_rate_limiter(
    limit=MESSAGE_RATE_LIMIT,
    window_seconds=RATE_LIMIT_WINDOW_SECONDS,
    key_prefix="messages",
)


def get_messaging_service(db: Session = Depends(get_db)) -> MessagingService:
    """Dependency injection for MessagingService"""
    return MessagingService(db)


# ============================================================================
# THREADS
# ============================================================================


@router.get("/switch-requests/{request_id}/conversation", response_model=ConversationDetail)
async def get_request_conversation(
    request_id: str,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Conversation for a switch request, created on first access if missing"""
    return service.get_or_create_conversation(request_id, current_user)


@router.post(
    "/conversations/{conversation_id}/messages", response_model=MessageResponse, status_code=201
)
async def send_message(
    conversation_id: str,
    data: MessageCreate,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
    _: None = Depends(rate_limit_messages),
):
    return service.send_message(conversation_id, data, current_user)


@router.post("/conversations/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: str,
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    """Mark the other party's messages read and reset your unread counter"""
    return service.mark_read(conversation_id, current_user)


@router.get("/conversations", response_model=list[ConversationListItem])
async def list_patient_conversations(
    current_user: Profile = Depends(get_current_user),
    service: MessagingService = Depends(get_messaging_service),
):
    return service.list_patient_conversations(current_user)


@router.get("/agency/conversations", response_model=list[ConversationListItem])
async def list_agency_conversations(
    membership: AgencyMember = Depends(get_agency_membership),
    service: MessagingService = Depends(get_messaging_service),
):
    """Agency inbox, most recent activity first"""
    return service.list_agency_conversations(membership)


# ============================================================================
# REALTIME
# ============================================================================


def websocket_refusal_code(token: str, conversation_id: str) -> Optional[int]:
    """Close code for a subscriber who may not listen, or None when access is granted"""
    db = SessionLocal()
    try:
        try:
            user = get_or_create_profile(db, verify_access_token(token))
        except HTTPException:
            return 4401

        service = MessagingService(db)
        conversation = service.repo.get_conversation(db, conversation_id)
        if not conversation or not service.resolve_sender_role(conversation, user):
            logger.warning(f"⚠️ Websocket refused for user {user.id} on conversation {conversation_id}")
            return 4403
        return None
    finally:
        db.close()


@router.websocket("/conversations/{conversation_id}/ws")
async def conversation_websocket(websocket: WebSocket, conversation_id: str, token: str = Query("")):
    """Stream new messages for a conversation; authenticate with ?token=<access token>"""
    # Close codes only reach the client once the handshake is accepted
    await websocket.accept()
    refusal = websocket_refusal_code(token, conversation_id)
    if refusal is not None:
        await websocket.close(code=refusal)
        return

    async def wait_for_disconnect():
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            return

    stream_task = asyncio.create_task(realtime.stream_conversation(websocket, conversation_id))
    disconnect_task = asyncio.create_task(wait_for_disconnect())
    done, pending = await asyncio.wait(
        {stream_task, disconnect_task}, return_when=asyncio.FIRST_COMPLETED
    )
    for task in pending:
        task.cancel()
    for task in done:
        if task is stream_task and task.exception():
            logger.error(f"❌ Realtime stream failed for conversation {conversation_id}: {task.exception()}")
