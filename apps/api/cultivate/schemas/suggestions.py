from typing import Optional

from pydantic import BaseModel, Field

from cultivate.domain import FieldContribution, SuggestionRecordSnapshot
from cultivate.services.suggestions import BulkReviewResult


class ApproveSuggestionRequest(BaseModel):
    """selected_paths omitted = approve every suggestion in the batch."""

    selected_paths: Optional[list[str]] = None


class BulkRejectRequest(BaseModel):
    record_ids: list[str] = Field(min_length=1)


class BulkApproveRequest(BaseModel):
    """record id -> selected paths (null = all)."""

    selections: dict[str, Optional[list[str]]] = Field(min_length=1)


class SuggestionListResponse(BaseModel):
    records: list[SuggestionRecordSnapshot]
    pending_count: int
    high_confidence_count: int


class BulkReviewResponse(BaseModel):
    results: list[BulkReviewResult]


class ArtifactContributionsResponse(BaseModel):
    contact_id: str
    artifact_id: str
    contributions: list[FieldContribution]
