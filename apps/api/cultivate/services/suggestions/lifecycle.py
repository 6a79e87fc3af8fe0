"""
Review transitions for suggestion records and write-back to the contact.

    pending --approve(all)--> approved
    pending --approve(some)--> partial --approve(rest)--> approved
    pending --approve(none)--> rejected
    pending --reject--> rejected
    pending --skip--> skipped

approved, rejected and skipped are terminal. Every timestamp is stamped once.
On approve the contact write and the status change share one savepoint: if
either fails, the contact and the record are left exactly as they were. Bulk
operations handle each record in its own savepoint, so one failure does not
touch the others.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from cultivate.domain import (
    APPROVABLE_SUGGESTION_STATUSES,
    HIGH_CONFIDENCE_THRESHOLD,
    SuggestionRecordSnapshot,
    SuggestionStatus,
)
from cultivate.services.suggestions.contact_patch import build_contact_patch
from cultivate.services.suggestions.errors import (
    SuggestionApplyError,
    SuggestionNotFoundError,
    SuggestionStateError,
)
from cultivate.stores.base import ContactStore, SuggestionStore, UnitOfWork

logger = logging.getLogger(__name__)


class PendingSuggestions(BaseModel):
    records: list[SuggestionRecordSnapshot] = Field(default_factory=list)
    pending_count: int = 0
    high_confidence_count: int = 0


class BulkReviewResult(BaseModel):
    record_id: str
    ok: bool
    status: Optional[SuggestionStatus] = None
    error: Optional[str] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stamp_once(record: SuggestionRecordSnapshot, fields: dict[str, Any], column: str, now: datetime) -> None:
    if getattr(record, column) is None:
        fields[column] = now


class SuggestionLifecycle:
    def __init__(self, contacts: ContactStore, suggestions: SuggestionStore, unit: UnitOfWork):
        self.contacts = contacts
        self.suggestions = suggestions
        self.unit = unit

    async def _load(self, record_id: str, user_id: Optional[str]) -> SuggestionRecordSnapshot:
        record = await self.suggestions.get_suggestion_record(record_id, user_id)
        if record is None:
            raise SuggestionNotFoundError(f"Suggestion {record_id} not found")
        return record

    async def _transition(
        self, record: SuggestionRecordSnapshot, fields: dict[str, Any]
    ) -> SuggestionRecordSnapshot:
        await self.suggestions.update_suggestion_record_status(record.id, fields)
        return record.model_copy(update=fields)

    async def approve(
        self,
        record_id: str,
        selected_paths: Optional[Iterable[str]] = None,
        user_id: Optional[str] = None,
    ) -> SuggestionRecordSnapshot:
        """
        Apply the selected suggestions (all when selected_paths is None).

        Raises:
            SuggestionNotFoundError, SuggestionStateError
            ValueError: selection names a path not in the record
            SuggestionApplyError: contact write failed; record unchanged
        """
        record = await self._load(record_id, user_id)
        if record.status not in APPROVABLE_SUGGESTION_STATUSES:
            raise SuggestionStateError(record.id, record.status, "approve")

        all_paths = set(record.field_paths) | {s.field_path for s in record.suggestions}
        selected = set(all_paths if selected_paths is None else selected_paths)
        unknown = selected - all_paths
        if unknown:
            raise ValueError(f"Selected paths not in suggestion {record.id}: {sorted(unknown)}")

        already_applied = {p for p, chosen in record.user_selections.items() if chosen}
        to_apply = selected - already_applied
        now = _utcnow()

        if not to_apply:
            if record.status == "partial":
                return record
            # nothing selected on a fresh batch counts as declining it
            fields: dict[str, Any] = {
                "status": "rejected",
                "user_selections": {p: False for p in sorted(all_paths)},
            }
            _stamp_once(record, fields, "reviewed_at", now)
            logger.info("Suggestion %s approved with empty selection; recorded as rejected", record.id)
            return await self._transition(record, fields)

        contact = await self.contacts.get_contact(record.contact_id, user_id)
        if contact is None:
            raise SuggestionApplyError(f"Contact {record.contact_id} not found")

        chosen = [s for s in record.suggestions if s.field_path in to_apply]
        applied = already_applied | to_apply
        fields = {
            "status": "approved" if applied >= all_paths else "partial",
            "user_selections": {p: p in applied for p in sorted(all_paths)},
        }
        _stamp_once(record, fields, "reviewed_at", now)
        _stamp_once(record, fields, "applied_at", now)

        async with self.unit.savepoint():
            try:
                patch = build_contact_patch(contact, chosen, record.artifact_id)
                await self.contacts.update_contact_fields(contact.id, patch)
            except Exception as e:
                logger.error("Applying suggestion %s to contact %s failed: %s", record.id, contact.id, e)
                raise SuggestionApplyError(f"Could not update contact: {e}") from e
            updated = await self._transition(record, fields)

        logger.info(
            "Suggestion %s %s: applied %d of %d field paths to contact %s",
            record.id,
            updated.status,
            len(applied),
            len(all_paths),
            contact.id,
        )
        return updated

    async def reject(self, record_id: str, user_id: Optional[str] = None) -> SuggestionRecordSnapshot:
        record = await self._load(record_id, user_id)
        if record.status != "pending":
            raise SuggestionStateError(record.id, record.status, "reject")
        fields: dict[str, Any] = {"status": "rejected"}
        _stamp_once(record, fields, "reviewed_at", _utcnow())
        logger.info("Suggestion %s rejected", record.id)
        return await self._transition(record, fields)

    async def skip(self, record_id: str, user_id: Optional[str] = None) -> SuggestionRecordSnapshot:
        record = await self._load(record_id, user_id)
        if record.status != "pending":
            raise SuggestionStateError(record.id, record.status, "skip")
        fields: dict[str, Any] = {"status": "skipped"}
        _stamp_once(record, fields, "dismissed_at", _utcnow())
        logger.info("Suggestion %s skipped", record.id)
        return await self._transition(record, fields)

    async def mark_viewed(self, record_id: str, user_id: Optional[str] = None) -> SuggestionRecordSnapshot:
        record = await self._load(record_id, user_id)
        if record.viewed_at is not None:
            return record
        return await self._transition(record, {"viewed_at": _utcnow()})

    async def bulk_reject(
        self, record_ids: Iterable[str], user_id: Optional[str] = None
    ) -> list[BulkReviewResult]:
        results = []
        for record_id in record_ids:
            try:
                async with self.unit.savepoint():
                    record = await self.reject(record_id, user_id)
                results.append(BulkReviewResult(record_id=record_id, ok=True, status=record.status))
            except (SuggestionNotFoundError, SuggestionStateError) as e:
                results.append(BulkReviewResult(record_id=record_id, ok=False, error=str(e)))
            except Exception as e:
                logger.exception("Bulk reject of suggestion %s failed", record_id)
                results.append(BulkReviewResult(record_id=record_id, ok=False, error=f"Unexpected error: {e}"))
        return results

    async def bulk_approve(
        self,
        selections: dict[str, Optional[list[str]]],
        user_id: Optional[str] = None,
    ) -> list[BulkReviewResult]:
        """selections: record id -> selected paths (None = all)."""
        results = []
        for record_id, paths in selections.items():
            try:
                async with self.unit.savepoint():
                    record = await self.approve(record_id, paths, user_id)
                results.append(BulkReviewResult(record_id=record_id, ok=True, status=record.status))
            except (SuggestionNotFoundError, SuggestionStateError, SuggestionApplyError, ValueError) as e:
                results.append(BulkReviewResult(record_id=record_id, ok=False, error=str(e)))
            except Exception as e:
                logger.exception("Bulk approve of suggestion %s failed", record_id)
                results.append(BulkReviewResult(record_id=record_id, ok=False, error=f"Unexpected error: {e}"))
        return results

    async def list_pending(self, contact_id: str, user_id: Optional[str] = None) -> PendingSuggestions:
        records = await self.suggestions.list_for_contact(contact_id, user_id, statuses=("pending",))
        high = sum(
            1
            for r in records
            for s in r.suggestions
            if s.confidence >= HIGH_CONFIDENCE_THRESHOLD
        )
        return PendingSuggestions(records=records, pending_count=len(records), high_confidence_count=high)
