"""Messaging schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

MAX_MESSAGE_LENGTH = 4000


class MessageCreate(BaseModel):
    body: str

    @field_validator("body")
    @classmethod
    def validate_body(cls, v):
        v = (v or "").strip()
        if not v:
            raise ValueError("Message cannot be empty")
        if len(v) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message too long (max {MAX_MESSAGE_LENGTH} characters)")
        return v


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    sender_id: str
    sender_role: str
    body: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ConversationBase(BaseModel):
    id: str
    request_id: str
    patient_id: str
    agency_id: str
    last_message_at: Optional[datetime] = None
    patient_unread: int
    agency_unread: int
    created_at: datetime

    class Config:
        from_attributes = True


class ConversationDetail(ConversationBase):
    """A conversation with its full thread and request context"""

    messages: list[MessageResponse] = []
    request_status: str
    request_care_type: str
    agency_name: str
    patient_name: Optional[str] = None


class ConversationListItem(ConversationBase):
    agency_name: Optional[str] = None
    patient_name: Optional[str] = None
    request_status: str
    last_message_preview: Optional[str] = None
