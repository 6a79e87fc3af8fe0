"""
Voice memo -> contact update suggestions.

Flow for one artifact (strictly sequential):
  1. ELIGIBILITY - voice_memo, non-empty completed transcription, parsing pending;
                   else skipped
  2. CLAIM       - conditional pending -> processing; lost claim is skipped
  3. CONTACT     - load the owning contact (missing is fatal)
  4. PROMPT      - build system + user prompt
  5. LLM         - complete() bounded by extraction_timeout_seconds
  6. PARSE       - raw text -> list of candidates
  7. VALIDATE    - drop invalid candidates, keep order
  8. PERSIST     - one suggestion record for the batch (none when empty)
  9. FINALIZE    - completed | failed, completion stamped

PERSIST and the completed write share one savepoint, so a run that ends
failed never leaves a record behind. Every attempt that gets past CLAIM ends
with ai_parsing_status completed or failed. Errors are returned as an
ExtractionResult, never raised.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from cultivate.core import Settings, get_settings
from cultivate.domain import (
    HIGH_CONFIDENCE_THRESHOLD,
    MEDIUM_CONFIDENCE_THRESHOLD,
    ArtifactSnapshot,
    ContactSnapshot,
    ContactUpdateSuggestion,
    ExtractionResult,
    NewSuggestionRecord,
    SuggestionPriority,
)
from cultivate.prompts import build_prompt
from cultivate.providers import ChatProvider, ChatServiceError, ChatTimeoutError
from cultivate.services.suggestions.contact_patch import get_value_at_path
from cultivate.services.suggestions.errors import PipelineError, PipelineStage
from cultivate.services.suggestions.parsing import parse_llm_response
from cultivate.services.suggestions.validation import filter_valid
from cultivate.stores.base import ArtifactStore, ContactStore, SuggestionStore, UnitOfWork

logger = logging.getLogger(__name__)

_RAW_RESPONSE_LOG_LIMIT = 2000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ineligibility_reason(artifact: ArtifactSnapshot) -> Optional[str]:
    if artifact.type != "voice_memo":
        return f"artifact type is {artifact.type}"
    if not (artifact.transcription or "").strip():
        return "transcription is empty"
    if artifact.transcription_status != "completed":
        return f"transcription is {artifact.transcription_status or 'missing'}"
    if artifact.ai_parsing_status != "pending":
        return f"ai parsing is {artifact.ai_parsing_status or 'not requested'}"
    return None


def priority_for(suggestions: list[ContactUpdateSuggestion]) -> SuggestionPriority:
    top = max((s.confidence for s in suggestions), default=0.0)
    if top >= HIGH_CONFIDENCE_THRESHOLD:
        return "high"
    if top >= MEDIUM_CONFIDENCE_THRESHOLD:
        return "medium"
    return "low"


def build_suggestion_record(
    artifact: ArtifactSnapshot,
    contact: ContactSnapshot,
    suggestions: list[ContactUpdateSuggestion],
) -> NewSuggestionRecord:
    """Denormalize field_paths (first-seen order) and per-path max confidence."""
    field_paths: list[str] = []
    confidence_scores: dict[str, float] = {}
    for s in suggestions:
        if s.field_path not in confidence_scores:
            field_paths.append(s.field_path)
            confidence_scores[s.field_path] = s.confidence
        else:
            confidence_scores[s.field_path] = max(confidence_scores[s.field_path], s.confidence)

    return NewSuggestionRecord(
        artifact_id=artifact.id,
        contact_id=contact.id,
        user_id=artifact.user_id,
        suggestions=suggestions,
        field_paths=field_paths,
        confidence_scores=confidence_scores,
        priority=priority_for(suggestions),
    )


def _to_suggestion(candidate: dict[str, Any], contact: ContactSnapshot) -> ContactUpdateSuggestion:
    suggestion = ContactUpdateSuggestion.model_validate(candidate)
    if "current_value" not in candidate:
        suggestion.current_value = get_value_at_path(contact, suggestion.field_path)
    return suggestion


class ExtractionPipeline:
    def __init__(
        self,
        contacts: ContactStore,
        artifacts: ArtifactStore,
        suggestions: SuggestionStore,
        unit: UnitOfWork,
        chat: ChatProvider,
        settings: Optional[Settings] = None,
    ):
        self.contacts = contacts
        self.artifacts = artifacts
        self.suggestions = suggestions
        self.unit = unit
        self.chat = chat
        self.settings = settings or get_settings()

    async def run_extraction(self, artifact_id: str) -> ExtractionResult:
        artifact = await self.artifacts.get_artifact(artifact_id)
        if artifact is None:
            logger.error("Extraction requested for unknown artifact %s", artifact_id)
            return ExtractionResult(status="failed", error=f"Artifact {artifact_id} not found")

        reason = ineligibility_reason(artifact)
        if reason:
            logger.info("Skipping artifact %s: %s", artifact_id, reason)
            return ExtractionResult(status="skipped")

        if not await self.artifacts.claim_for_processing(artifact_id, _utcnow()):
            logger.warning("Artifact %s was claimed by another run; skipping", artifact_id)
            return ExtractionResult(status="skipped")

        logger.info("Claimed artifact %s for extraction", artifact_id)
        try:
            return await self._process(artifact)
        except PipelineError as e:
            logger.error("Extraction failed for artifact %s at stage %s: %s", artifact_id, e.stage.value, e.message)
            return await self._finalize_failed(artifact_id, e.message)
        except Exception as e:
            logger.exception("Unexpected extraction error for artifact %s", artifact_id)
            return await self._finalize_failed(artifact_id, f"Unexpected error: {e}")

    async def _process(self, artifact: ArtifactSnapshot) -> ExtractionResult:
        contact = await self.contacts.get_contact(artifact.contact_id)
        if contact is None:
            raise PipelineError(PipelineStage.LOAD_CONTACT, f"Contact {artifact.contact_id} not found")

        prompt = build_prompt(artifact.transcription or "", contact)
        raw = await self._call_llm(prompt.system, prompt.user)

        try:
            candidates = parse_llm_response(raw)
        except PipelineError:
            logger.error("Unparseable LLM response for artifact %s: %s", artifact.id, raw[:_RAW_RESPONSE_LOG_LIMIT])
            raise

        valid = filter_valid(candidates)
        suggestions = [_to_suggestion(c, contact) for c in valid]
        if not suggestions:
            logger.info("No profile updates found in artifact %s", artifact.id)
            async with self.unit.savepoint():
                await self._mark_completed(artifact.id)
            return ExtractionResult(status="completed", suggestion_count=0)

        new_record = build_suggestion_record(artifact, contact, suggestions)
        async with self.unit.savepoint():
            try:
                record = await self.suggestions.insert_suggestion_record(new_record)
            except Exception as e:
                raise PipelineError(
                    PipelineStage.PERSIST,
                    f"Could not store suggestions: {e}",
                    cause=e,
                )
            await self._mark_completed(artifact.id)

        logger.info(
            "Stored %d suggestions for artifact %s as record %s (priority %s)",
            len(suggestions),
            artifact.id,
            record.id,
            record.priority,
        )
        return ExtractionResult(
            status="completed",
            suggestion_count=len(suggestions),
            suggestion_record_id=record.id,
        )

    async def _call_llm(self, system_prompt: str, user_prompt: str) -> str:
        timeout = self.settings.extraction_timeout_seconds
        logger.info("Calling LLM for contact updates (timeout %gs)", timeout)
        try:
            return await asyncio.wait_for(
                self.chat.complete(
                    system_prompt,
                    user_prompt,
                    max_tokens=self.settings.extraction_max_tokens,
                    temperature=self.settings.extraction_temperature,
                    json_mode=self.settings.extraction_json_mode,
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, ChatTimeoutError) as e:
            raise PipelineError(PipelineStage.LLM, f"LLM call timeout after {timeout:g}s", cause=e)
        except ChatServiceError as e:
            raise PipelineError(PipelineStage.LLM, f"LLM call failed: {e}", cause=e)

    async def _mark_completed(self, artifact_id: str) -> None:
        try:
            await self.artifacts.update_artifact_status(
                artifact_id,
                {"ai_parsing_status": "completed", "ai_processing_completed_at": _utcnow()},
            )
        except Exception as e:
            raise PipelineError(PipelineStage.FINALIZE, f"Could not mark artifact completed: {e}", cause=e)

    async def _finalize_failed(self, artifact_id: str, error: str) -> ExtractionResult:
        try:
            await self.artifacts.update_artifact_status(
                artifact_id,
                {"ai_parsing_status": "failed", "ai_processing_completed_at": _utcnow()},
            )
        except Exception:
            logger.exception("Could not mark artifact %s failed", artifact_id)
        return ExtractionResult(status="failed", error=error)


async def run_extraction_job(artifact_id: str) -> ExtractionResult:
    """Run one extraction in its own session (background tasks, scripts)."""
    from cultivate.db.session import async_session
    from cultivate.providers import get_chat_provider
    from cultivate.stores import sql_stores

    try:
        chat = get_chat_provider()
    except RuntimeError as e:
        logger.error("Extraction for artifact %s not started: %s", artifact_id, e)
        return ExtractionResult(status="failed", error=str(e))

    async with async_session() as db:
        stores = sql_stores(db, commit_status_writes=True)
        pipeline = ExtractionPipeline(stores.contacts, stores.artifacts, stores.suggestions, stores.unit, chat)
        result = await pipeline.run_extraction(artifact_id)
        await db.commit()
        return result
