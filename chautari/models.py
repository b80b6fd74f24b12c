import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


# Roles: patient | agency_staff | agency_admin | chautari_admin
USER_ROLES = ("patient", "agency_staff", "agency_admin", "chautari_admin")
LANGUAGE_CODES = ("en", "ne", "hi")
PAYER_TYPES = ("medicaid", "medicare", "private", "self_pay", "waiver")
CARE_TYPES = ("home_health", "home_care", "both")
MEMBER_ROLES = ("owner", "admin", "staff")
NOTIFICATION_CHANNELS = ("email", "sms", "push")


class Profile(Base):
    """Application profile for an identity-provider user (id == token `sub`)"""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    role = Column(String(30), default="patient", nullable=False, index=True)
    email = Column(String(255), nullable=True, index=True)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    preferred_lang = Column(String(5), default="en", nullable=False)
    avatar_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient_details = relationship(
        "PatientDetails", back_populates="patient", uselist=False, cascade="all, delete-orphan"
    )
    memberships = relationship(
        "AgencyMember", back_populates="profile", foreign_keys="AgencyMember.user_id"
    )


class PatientDetails(Base):
    __tablename__ = "patient_details"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    patient_id = Column(String(36), ForeignKey("profiles.id"), unique=True, nullable=False)
    # Fernet-encrypted PHI
    medicaid_id_enc = Column(Text, nullable=True)
    dob_enc = Column(Text, nullable=True)
    address_line1 = Column(String(200), nullable=True)
    address_line2 = Column(String(100), nullable=True)
    address_city = Column(String(100), nullable=True)
    address_state = Column(String(2), nullable=True)
    address_zip = Column(String(10), nullable=True)
    address_county = Column(String(100), nullable=True, index=True)
    payer_type = Column(String(20), nullable=True)
    medicaid_plan = Column(String(100), nullable=True)
    care_type = Column(String(20), nullable=True)
    care_needs = Column(JSON, default=list)  # ["personal_care", "skilled_nursing", ...]
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Profile", back_populates="patient_details")


class Agency(Base):
    __tablename__ = "agencies"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    npi = Column(String(10), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    dba_name = Column(String(255), nullable=True)
    address_line1 = Column(String(200), nullable=False)
    address_line2 = Column(String(100), nullable=True)
    address_city = Column(String(100), nullable=False)
    address_state = Column(String(2), nullable=False, default="PA")
    address_zip = Column(String(10), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)
    # List-valued attributes
    care_types = Column(JSON, default=list)  # ["home_health", "home_care"] or ["both"]
    payers_accepted = Column(JSON, default=list)
    services_offered = Column(JSON, default=list)
    languages_spoken = Column(JSON, default=list)
    service_counties = Column(JSON, default=list)
    is_verified_partner = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    is_accepting_patients = Column(Boolean, default=True, nullable=False)
    medicare_quality_score = Column(Float, nullable=True)
    avg_response_hours = Column(Float, nullable=True)
    pa_license_number = Column(String(50), nullable=True)
    npi_last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    members = relationship("AgencyMember", back_populates="agency")


class AgencyMember(Base):
    __tablename__ = "agency_members"
    __table_args__ = (UniqueConstraint("agency_id", "user_id", name="uq_agency_member"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    agency_id = Column(String(36), ForeignKey("agencies.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    role = Column(String(10), default="staff", nullable=False)  # owner | admin | staff
    title = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    joined_at = Column(DateTime, nullable=True)
    invited_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    agency = relationship("Agency", back_populates="members")
    profile = relationship("Profile", back_populates="memberships", foreign_keys=[user_id])


class SwitchRequest(Base):
    __tablename__ = "switch_requests"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    patient_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    current_agency_id = Column(String(36), ForeignKey("agencies.id"), nullable=True)
    current_agency_name = Column(String(200), nullable=True)
    new_agency_id = Column(String(36), ForeignKey("agencies.id"), nullable=False, index=True)
    care_type = Column(String(20), nullable=False)
    payer_type = Column(String(20), nullable=False)
    # Status workflow: submitted → under_review → accepted/denied → completed
    # submitted/under_review may also be cancelled by the patient
    status = Column(String(20), default="submitted", nullable=False, index=True)
    switch_reason = Column(String(50), nullable=True)
    switch_reason_detail = Column(String(500), nullable=True)
    services_requested = Column(JSON, default=list)
    requested_start_date = Column(Date, nullable=True)
    special_instructions = Column(String(1000), nullable=True)
    decision_note = Column(String(1000), nullable=True)  # accept note or deny reason
    internal_notes = Column(Text, nullable=True)
    case_manager_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    current_agency_notified_at = Column(DateTime, nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    denied_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Profile", foreign_keys=[patient_id])
    new_agency = relationship("Agency", foreign_keys=[new_agency_id])
    current_agency = relationship("Agency", foreign_keys=[current_agency_id])
    e_signatures = relationship(
        "ESignature", back_populates="switch_request", cascade="all, delete-orphan"
    )
    documents = relationship("Document", back_populates="switch_request", cascade="all, delete-orphan")
    conversation = relationship(
        "Conversation", back_populates="switch_request", uselist=False, cascade="all, delete-orphan"
    )


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    request_id = Column(String(36), ForeignKey("switch_requests.id"), nullable=False, index=True)
    uploaded_by = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    uploader_role = Column(String(20), nullable=False)  # patient | agency_staff
    doc_type = Column(String(30), nullable=False)
    display_name = Column(String(255), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)  # Storage key
    file_size_bytes = Column(Integer, nullable=True)
    mime_type = Column(String(100), nullable=True)
    requires_signature = Column(Boolean, default=False, nullable=False)
    is_signed = Column(Boolean, default=False, nullable=False)
    signed_at = Column(DateTime, nullable=True)
    signed_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    typed_name = Column(String(100), nullable=True)
    signature_checksum = Column(String(64), nullable=True)  # SHA-256 hex
    signer_ip = Column(String(45), nullable=True)
    signer_user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    switch_request = relationship("SwitchRequest", back_populates="documents")
    e_signatures = relationship("ESignature", back_populates="document")


class ESignature(Base):
    """Append-only consent record bound to a switch request or a document"""

    __tablename__ = "e_signatures"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    switch_request_id = Column(String(36), ForeignKey("switch_requests.id"), nullable=True, index=True)
    document_id = Column(String(36), ForeignKey("documents.id"), nullable=True, index=True)
    signer_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    signer_role = Column(String(20), nullable=False)
    typed_name = Column(String(100), nullable=False)
    signature_method = Column(String(10), default="typed", nullable=False)  # typed | drawn
    signature_data = Column(Text, nullable=True)  # Base64 SVG from the drawing pad
    consent_hipaa = Column(Boolean, default=False, nullable=False)
    consent_current_agency_notification = Column(Boolean, default=False, nullable=False)
    consent_terms = Column(Boolean, default=False, nullable=False)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    signed_at = Column(DateTime, nullable=False)
    checksum = Column(String(64), nullable=False)

    switch_request = relationship("SwitchRequest", back_populates="e_signatures")
    document = relationship("Document", back_populates="e_signatures")


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    request_id = Column(String(36), ForeignKey("switch_requests.id"), unique=True, nullable=False)
    patient_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    agency_id = Column(String(36), ForeignKey("agencies.id"), nullable=False, index=True)
    last_message_at = Column(DateTime, nullable=True)
    patient_unread = Column(Integer, default=0, nullable=False)
    agency_unread = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    switch_request = relationship("SwitchRequest", back_populates="conversation")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.created_at",
    )


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=False, index=True)
    sender_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    sender_role = Column(String(20), nullable=False)  # patient | agency_staff
    body = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    conversation = relationship("Conversation", back_populates="messages")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # request_submitted, new_message, ...
    channel = Column(String(10), default="push", nullable=False)
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    reference_id = Column(String(36), nullable=True)
    reference_type = Column(String(30), nullable=True)  # switch_request | conversation
    sent_at = Column(DateTime, nullable=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


class AuditLog(Base):
    """Append-only trail of privileged and workflow actions"""

    __tablename__ = "audit_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    actor_id = Column(String(36), nullable=True, index=True)
    actor_role = Column(String(30), nullable=True)
    action = Column(String(100), nullable=False)
    resource = Column(String(50), nullable=False, index=True)
    resource_id = Column(String(36), nullable=True)
    old_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
