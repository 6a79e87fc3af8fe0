"""
Domain types for contacts, artifacts and update suggestions.
Single source of truth for stores, services and API.
"""

from datetime import datetime
from typing import Any, Literal, Optional, get_args

from pydantic import BaseModel, Field, field_validator

# -----------------------------------------------------------------------------
# 1. Enums
# -----------------------------------------------------------------------------

ArtifactType = Literal[
    "voice_memo", "email", "meeting", "note",
    "linkedin_profile", "linkedin_post", "loop",
]

TranscriptionStatus = Literal["pending", "completed", "failed"]

AiParsingStatus = Literal["pending", "processing", "completed", "failed"]

SuggestionAction = Literal["add", "update", "remove"]

SuggestionStatus = Literal["pending", "approved", "rejected", "partial", "skipped"]

SuggestionPriority = Literal["high", "medium", "low"]

ExtractionStatus = Literal["completed", "failed", "skipped"]

SUGGESTION_ACTIONS = frozenset(get_args(SuggestionAction))
TERMINAL_SUGGESTION_STATUSES = frozenset({"approved", "rejected", "skipped"})
# approve may continue a partially applied batch
APPROVABLE_SUGGESTION_STATUSES = frozenset({"pending", "partial"})
PROVENANCE_SUGGESTION_STATUSES = frozenset({"approved", "partial"})

# Contact columns addressable by a bare field path
DIRECT_CONTACT_FIELDS = (
    "name",
    "email",
    "phone",
    "title",
    "company",
    "location",
    "linkedin_url",
    "notes",
)

CONTEXT_ROOTS = ("personal_context", "professional_context")

HIGH_CONFIDENCE_THRESHOLD = 0.9
MEDIUM_CONFIDENCE_THRESHOLD = 0.7


# -----------------------------------------------------------------------------
# 2. Snapshots (what stores return)
# -----------------------------------------------------------------------------


class ContactSnapshot(BaseModel):
    id: str
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    linkedin_url: Optional[str] = None
    notes: Optional[str] = None
    professional_context: dict[str, Any] = Field(default_factory=dict)
    personal_context: dict[str, Any] = Field(default_factory=dict)
    field_sources: dict[str, str] = Field(default_factory=dict)

    @field_validator("professional_context", "personal_context", "field_sources", mode="before")
    @classmethod
    def coerce_json_object(cls, v: Any) -> Any:
        """JSONB columns may hold null or a non-object; treat both as empty."""
        return v if isinstance(v, dict) else {}


class ArtifactSnapshot(BaseModel):
    id: str
    contact_id: str
    user_id: str
    type: str
    content: Optional[str] = None
    transcription: Optional[str] = None
    transcription_status: Optional[str] = None
    ai_parsing_status: Optional[str] = None
    ai_processing_started_at: Optional[datetime] = None
    ai_processing_completed_at: Optional[datetime] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @field_validator("metadata", mode="before")
    @classmethod
    def coerce_metadata(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}


class ContactUpdateSuggestion(BaseModel):
    """One proposed change to a single field path."""

    field_path: str
    action: SuggestionAction
    suggested_value: Any = None
    confidence: float = 0.0
    reasoning: str = ""
    current_value: Any = None

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        if isinstance(v, bool):
            return 0.0
        try:
            f = float(v)
        except (TypeError, ValueError):
            return 0.0
        if f != f:  # NaN
            return 0.0
        return max(0.0, min(1.0, f))

    @field_validator("reasoning", mode="before")
    @classmethod
    def coerce_reasoning(cls, v: Any) -> str:
        return v.strip() if isinstance(v, str) else ""


class SuggestionRecordSnapshot(BaseModel):
    id: str
    artifact_id: str
    contact_id: str
    user_id: str
    suggestions: list[ContactUpdateSuggestion] = Field(default_factory=list)
    field_paths: list[str] = Field(default_factory=list)
    confidence_scores: dict[str, float] = Field(default_factory=dict)
    status: SuggestionStatus = "pending"
    priority: Optional[SuggestionPriority] = None
    user_selections: dict[str, bool] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    applied_at: Optional[datetime] = None
    dismissed_at: Optional[datetime] = None
    viewed_at: Optional[datetime] = None


class NewSuggestionRecord(BaseModel):
    """Insert payload for a suggestion batch; status always starts pending."""

    artifact_id: str
    contact_id: str
    user_id: str
    suggestions: list[ContactUpdateSuggestion]
    field_paths: list[str]
    confidence_scores: dict[str, float]
    priority: SuggestionPriority = "medium"
    status: SuggestionStatus = "pending"


# -----------------------------------------------------------------------------
# 3. Results (what services return)
# -----------------------------------------------------------------------------


class ExtractionResult(BaseModel):
    status: ExtractionStatus
    suggestion_count: Optional[int] = None
    suggestion_record_id: Optional[str] = None
    error: Optional[str] = None


class ReprocessResult(BaseModel):
    status: AiParsingStatus
    artifact_id: str
    error: Optional[str] = None


class FieldContribution(BaseModel):
    """A field path an artifact last wrote, with the value it supplied."""

    field_path: str
    value: Any = None
    source: Literal["suggestion", "artifact"]
    suggestion_record_id: Optional[str] = None


class FieldSourceInfo(BaseModel):
    field_path: str
    artifact_id: str
    artifact_type: str
    timestamp: Optional[datetime] = None
    title: Optional[str] = None
    excerpt: Optional[str] = None
