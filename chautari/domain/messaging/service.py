"""Messaging service - Per-request conversation threads between patient and agency"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ... import realtime
from ...auth import find_active_membership, get_request_access
from ...models import Agency, AgencyMember, Conversation, Profile, SwitchRequest
from ...services.notification_service import notify_agency_members, notify_user
from ...utils.sanitization import validate_and_sanitize_input
from .repository import MessagingRepository
from .schemas import (
    MAX_MESSAGE_LENGTH,
    ConversationDetail,
    ConversationListItem,
    MessageCreate,
    MessageResponse,
)

logger = logging.getLogger(__name__)

NOTIFICATION_PREVIEW_LENGTH = 100
LIST_PREVIEW_LENGTH = 80


def preview(text: Optional[str], length: int) -> Optional[str]:
    if text is None:
        return None
    return text[:length] + ("…" if len(text) > length else "")


def activity_sort_key(conversation: Conversation):
    """Most recent activity first; conversations without messages fall back to creation time"""
    return conversation.last_message_at or conversation.created_at


class MessagingService:
    """Service layer for messaging business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MessagingRepository()

    def resolve_sender_role(self, conversation: Conversation, user: Profile) -> Optional[str]:
        if conversation.patient_id == user.id:
            return "patient"
        if find_active_membership(self.db, user.id, conversation.agency_id):
            return "agency_staff"
        return None

    def _get_participant_conversation(self, conversation_id: str, user: Profile) -> tuple[Conversation, str]:
        conversation = self.repo.get_conversation(self.db, conversation_id)
        if not conversation:
            raise HTTPException(status_code=404, detail="Conversation not found")
        role = self.resolve_sender_role(conversation, user)
        if not role:
            raise HTTPException(status_code=403, detail="Not authorized to message in this conversation")
        return conversation, role

    def _build_detail(self, conversation: Conversation) -> ConversationDetail:
        switch_request = self.db.query(SwitchRequest).filter(SwitchRequest.id == conversation.request_id).first()
        agency = self.db.query(Agency).filter(Agency.id == conversation.agency_id).first()
        patient = self.db.query(Profile).filter(Profile.id == conversation.patient_id).first()
        messages = self.repo.get_messages(self.db, conversation.id)

        return ConversationDetail(
            id=conversation.id,
            request_id=conversation.request_id,
            patient_id=conversation.patient_id,
            agency_id=conversation.agency_id,
            last_message_at=conversation.last_message_at,
            patient_unread=conversation.patient_unread,
            agency_unread=conversation.agency_unread,
            created_at=conversation.created_at,
            messages=[MessageResponse.model_validate(m) for m in messages],
            request_status=switch_request.status if switch_request else "unknown",
            request_care_type=switch_request.care_type if switch_request else "",
            agency_name=agency.name if agency else "Agency",
            patient_name=patient.full_name if patient else None,
        )

    def get_or_create_conversation(self, request_id: str, user: Profile) -> ConversationDetail:
        switch_request, role = get_request_access(self.db, user.id, request_id)
        if not switch_request:
            raise HTTPException(status_code=404, detail="Request not found")
        if not role:
            raise HTTPException(status_code=403, detail="Access denied")

        conversation = self.repo.get_conversation_for_request(self.db, request_id)
        if not conversation:
            logger.info(f"💬 Creating missing conversation for request {request_id}")
            conversation = self.repo.create_conversation(
                self.db, request_id, switch_request.patient_id, switch_request.new_agency_id
            )
        return self._build_detail(conversation)

    def send_message(self, conversation_id: str, data: MessageCreate, user: Profile) -> MessageResponse:
        conversation, sender_role = self._get_participant_conversation(conversation_id, user)

        try:
            body = validate_and_sanitize_input(data.body, max_length=MAX_MESSAGE_LENGTH)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        try:
            message = self.repo.add_message(self.db, conversation, user.id, sender_role, body)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to save message in conversation {conversation_id}: {e}")
            raise

        response = MessageResponse.model_validate(message)
        logger.info(f"💬 Message {message.id} sent by {sender_role} in conversation {conversation_id}")

        realtime.publish_message(conversation.id, response.model_dump(mode="json"))

        if sender_role == "agency_staff":
            notify_user(
                self.db,
                conversation.patient_id,
                "new_message",
                "New message from your agency",
                preview(body, NOTIFICATION_PREVIEW_LENGTH),
                reference_id=conversation.id,
                reference_type="conversation",
            )
        else:
            notify_agency_members(
                self.db,
                conversation.agency_id,
                "new_message",
                f"New message from {user.full_name or 'a patient'}",
                preview(body, NOTIFICATION_PREVIEW_LENGTH),
                reference_id=conversation.id,
                reference_type="conversation",
            )

        return response

    def mark_read(self, conversation_id: str, user: Profile) -> dict:
        conversation, role = self._get_participant_conversation(conversation_id, user)
        updated = self.repo.mark_read(self.db, conversation, role)
        return {"success": True, "marked_read": updated}

    def _list_items(self, conversations: list[Conversation]) -> list[ConversationListItem]:
        conversations = sorted(conversations, key=activity_sort_key, reverse=True)
        if not conversations:
            return []

        request_ids = [c.request_id for c in conversations]
        patient_ids = list({c.patient_id for c in conversations})
        agency_ids = list({c.agency_id for c in conversations})

        requests = {
            r.id: r for r in self.db.query(SwitchRequest).filter(SwitchRequest.id.in_(request_ids)).all()
        }
        patients = {p.id: p for p in self.db.query(Profile).filter(Profile.id.in_(patient_ids)).all()}
        agencies = {a.id: a for a in self.db.query(Agency).filter(Agency.id.in_(agency_ids)).all()}

        items = []
        for c in conversations:
            last_message = self.repo.get_last_message(self.db, c.id)
            switch_request = requests.get(c.request_id)
            patient = patients.get(c.patient_id)
            agency = agencies.get(c.agency_id)
            items.append(
                ConversationListItem(
                    id=c.id,
                    request_id=c.request_id,
                    patient_id=c.patient_id,
                    agency_id=c.agency_id,
                    last_message_at=c.last_message_at,
                    patient_unread=c.patient_unread,
                    agency_unread=c.agency_unread,
                    created_at=c.created_at,
                    agency_name=agency.name if agency else None,
                    patient_name=patient.full_name if patient else None,
                    request_status=switch_request.status if switch_request else "unknown",
                    last_message_preview=preview(last_message.body, LIST_PREVIEW_LENGTH)
                    if last_message
                    else None,
                )
            )
        return items

    def list_agency_conversations(self, membership: AgencyMember) -> list[ConversationListItem]:
        return self._list_items(self.repo.get_agency_conversations(self.db, membership.agency_id))

    def list_patient_conversations(self, user: Profile) -> list[ConversationListItem]:
        return self._list_items(self.repo.get_patient_conversations(self.db, user.id))
