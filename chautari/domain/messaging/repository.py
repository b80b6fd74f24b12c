"""Messaging repository - Database operations for conversations and messages"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Conversation, Message


class MessagingRepository:
    """Repository for conversation database operations"""

    @staticmethod
    def get_conversation(db: Session, conversation_id: str) -> Optional[Conversation]:
        return db.query(Conversation).filter(Conversation.id == conversation_id).first()

    @staticmethod
    def get_conversation_for_request(db: Session, request_id: str) -> Optional[Conversation]:
        return db.query(Conversation).filter(Conversation.request_id == request_id).first()

    @staticmethod
    def create_conversation(db: Session, request_id: str, patient_id: str, agency_id: str) -> Conversation:
        conversation = Conversation(request_id=request_id, patient_id=patient_id, agency_id=agency_id)
        db.add(conversation)
        db.commit()
        db.refresh(conversation)
        return conversation

    @staticmethod
    def get_messages(db: Session, conversation_id: str) -> list[Message]:
        return (
            db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc())
            .all()
        )

    @staticmethod
    def get_last_message(db: Session, conversation_id: str) -> Optional[Message]:
        return (
            db.query(Message)
            .filter(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .first()
        )

    @staticmethod
    def add_message(db: Session, conversation: Conversation, sender_id: str, sender_role: str, body: str) -> Message:
        """Insert a message and bump the recipient's unread counter in one commit"""
        message = Message(
            conversation_id=conversation.id,
            sender_id=sender_id,
            sender_role=sender_role,
            body=body,
        )
        db.add(message)
        if sender_role == "patient":
            conversation.agency_unread = Conversation.agency_unread + 1
        else:
            conversation.patient_unread = Conversation.patient_unread + 1
        conversation.last_message_at = datetime.utcnow()
        db.commit()
        db.refresh(message)
        db.refresh(conversation)
        return message

    @staticmethod
    def mark_read(db: Session, conversation: Conversation, reader_role: str) -> int:
        """Mark the other party's unread messages read and reset the reader's counter"""
        unread_sender_role = "agency_staff" if reader_role == "patient" else "patient"
        updated = (
            db.query(Message)
            .filter(
                Message.conversation_id == conversation.id,
                Message.sender_role == unread_sender_role,
                Message.is_read.is_(False),
            )
            .update({"is_read": True, "read_at": datetime.utcnow()}, synchronize_session=False)
        )
        if reader_role == "patient":
            conversation.patient_unread = 0
        else:
            conversation.agency_unread = 0
        db.commit()
        return updated

    @staticmethod
    def get_agency_conversations(db: Session, agency_id: str) -> list[Conversation]:
        return db.query(Conversation).filter(Conversation.agency_id == agency_id).all()

    @staticmethod
    def get_patient_conversations(db: Session, patient_id: str) -> list[Conversation]:
        return db.query(Conversation).filter(Conversation.patient_id == patient_id).all()
