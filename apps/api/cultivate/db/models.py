import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.dialects.postgresql import UUID, ARRAY, JSONB
from sqlalchemy.orm import relationship

from .session import Base


def uuid4_str():
    return str(uuid.uuid4())


class Contact(Base):
    """Contact card: direct columns + professional/personal JSON trees + field provenance."""
    __tablename__ = "contacts"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)

    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    title = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)
    linkedin_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)

    professional_context = Column(JSONB, nullable=False, server_default="{}")
    personal_context = Column(JSONB, nullable=False, server_default="{}")
    # field path -> artifact id that last wrote it
    field_sources = Column(JSONB, nullable=False, server_default="{}")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=lambda: datetime.now(timezone.utc))

    artifacts = relationship("Artifact", back_populates="contact")
    suggestion_records = relationship("ContactUpdateSuggestion", back_populates="contact")


class Artifact(Base):
    """Anything captured about a contact (voice memo, email, note, ...)."""
    __tablename__ = "artifacts"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    contact_id = Column(UUID(as_uuid=False), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    content = Column(Text, nullable=True)
    transcription = Column(Text, nullable=True)
    transcription_status = Column(String(20), nullable=True)  # pending | completed | failed
    ai_parsing_status = Column(String(20), nullable=True)  # pending | processing | completed | failed
    ai_processing_started_at = Column(DateTime(timezone=True), nullable=True)
    ai_processing_completed_at = Column(DateTime(timezone=True), nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=lambda: datetime.now(timezone.utc))

    contact = relationship("Contact", back_populates="artifacts")
    suggestion_records = relationship("ContactUpdateSuggestion", back_populates="artifact")

    __table_args__ = (
        Index("ix_artifacts_contact_id", "contact_id"),
        Index("ix_artifacts_ai_parsing_status", "ai_parsing_status"),
    )


class ContactUpdateSuggestion(Base):
    """One LLM extraction batch for one artifact; reviewed as a unit."""
    __tablename__ = "contact_update_suggestions"

    id = Column(UUID(as_uuid=False), primary_key=True, default=uuid4_str)
    artifact_id = Column(UUID(as_uuid=False), ForeignKey("artifacts.id", ondelete="CASCADE"), nullable=False)
    contact_id = Column(UUID(as_uuid=False), ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(UUID(as_uuid=False), nullable=False, index=True)

    # {"suggestions": [{field_path, action, suggested_value, confidence, reasoning}, ...]}
    suggested_updates = Column(JSONB, nullable=False)
    field_paths = Column(ARRAY(Text), nullable=False, default=list)
    confidence_scores = Column(JSONB, nullable=False, server_default="{}")

    status = Column(String(20), nullable=False, default="pending")  # pending | approved | rejected | partial | skipped
    priority = Column(String(10), nullable=True)  # high | medium | low
    user_selections = Column(JSONB, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    applied_at = Column(DateTime(timezone=True), nullable=True)
    dismissed_at = Column(DateTime(timezone=True), nullable=True)
    viewed_at = Column(DateTime(timezone=True), nullable=True)

    contact = relationship("Contact", back_populates="suggestion_records")
    artifact = relationship("Artifact", back_populates="suggestion_records")

    __table_args__ = (
        Index("ix_contact_update_suggestions_contact_status", "contact_id", "status"),
        Index("ix_contact_update_suggestions_artifact_id", "artifact_id"),
    )
