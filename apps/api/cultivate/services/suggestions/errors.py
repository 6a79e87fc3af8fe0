"""Pipeline stage and error types for contact update suggestions."""

from enum import Enum
from typing import Optional


class PipelineStage(str, Enum):
    """Pipeline stage identifiers for error reporting."""
    CLAIM = "claim"
    LOAD_CONTACT = "load_contact"
    PROMPT = "prompt"
    LLM = "llm"
    PARSE = "parse"
    VALIDATE = "validate"
    PERSIST = "persist"
    FINALIZE = "finalize"


class PipelineError(Exception):
    """Pipeline error with stage context."""
    def __init__(self, stage: PipelineStage, message: str, cause: Optional[Exception] = None):
        self.stage = stage
        self.message = message
        self.cause = cause
        super().__init__(f"[{stage.value}] {message}")


class SuggestionNotFoundError(Exception):
    """Suggestion record does not exist (or is not visible to the caller)."""


class SuggestionStateError(Exception):
    """Requested transition is not allowed from the record's current status."""

    def __init__(self, record_id: str, status: str, operation: str):
        self.record_id = record_id
        self.status = status
        self.operation = operation
        super().__init__(f"Cannot {operation} suggestion {record_id} in status '{status}'")


class SuggestionApplyError(Exception):
    """Writing approved values to the contact failed; the record was left unchanged."""


class ArtifactNotFoundError(Exception):
    """Artifact does not exist (or is not visible to the caller)."""


class ArtifactNotReprocessableError(Exception):
    """Artifact type or transcription state does not allow AI parsing."""


class ReprocessConflictError(Exception):
    """Artifact is being processed right now."""
