"""Pydantic request/response schemas."""

from cultivate.schemas.suggestions import (
    ApproveSuggestionRequest,
    ArtifactContributionsResponse,
    BulkApproveRequest,
    BulkRejectRequest,
    BulkReviewResponse,
    SuggestionListResponse,
)

__all__ = [
    "ApproveSuggestionRequest",
    "ArtifactContributionsResponse",
    "BulkApproveRequest",
    "BulkRejectRequest",
    "BulkReviewResponse",
    "SuggestionListResponse",
]
