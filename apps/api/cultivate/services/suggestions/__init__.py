"""Contact update suggestions: extraction, review, provenance and reprocessing."""

from .errors import (
    ArtifactNotFoundError,
    ArtifactNotReprocessableError,
    PipelineError,
    PipelineStage,
    ReprocessConflictError,
    SuggestionApplyError,
    SuggestionNotFoundError,
    SuggestionStateError,
)
from .lifecycle import BulkReviewResult, PendingSuggestions, SuggestionLifecycle
from .parsing import normalize_suggestion_envelope, parse_llm_response
from .pipeline import ExtractionPipeline, run_extraction_job
from .provenance import ProvenanceService
from .reprocess import ReprocessController
from .validation import ValidationResult, filter_valid, validate

__all__ = [
    "ArtifactNotFoundError",
    "ArtifactNotReprocessableError",
    "PipelineError",
    "PipelineStage",
    "ReprocessConflictError",
    "SuggestionApplyError",
    "SuggestionNotFoundError",
    "SuggestionStateError",
    "BulkReviewResult",
    "PendingSuggestions",
    "SuggestionLifecycle",
    "normalize_suggestion_envelope",
    "parse_llm_response",
    "ExtractionPipeline",
    "run_extraction_job",
    "ProvenanceService",
    "ReprocessController",
    "ValidationResult",
    "filter_valid",
    "validate",
]
