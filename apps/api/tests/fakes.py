"""In-memory stores and a scripted chat provider for tests."""

import asyncio
import copy
import itertools
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Iterable, Optional

from cultivate.domain import (
    ArtifactSnapshot,
    ContactSnapshot,
    NewSuggestionRecord,
    SuggestionRecordSnapshot,
)
from cultivate.providers import ChatProvider, ChatServiceError
from cultivate.stores import ArtifactStore, ContactStore, Stores, SuggestionStore, UnitOfWork

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


def _owned(owner: str, user_id: Optional[str]) -> bool:
    return user_id is None or owner == user_id


class FakeContactStore(ContactStore):
    def __init__(self, *contacts: ContactSnapshot):
        self.rows: dict[str, ContactSnapshot] = {c.id: c for c in contacts}
        self.fail_updates = False
        self.update_calls: list[tuple[str, dict[str, Any]]] = []

    async def get_contact(self, contact_id, user_id=None):
        row = self.rows.get(contact_id)
        if row is None or not _owned(row.user_id, user_id):
            return None
        return row.model_copy(deep=True)

    async def update_contact_fields(self, contact_id, patch):
        self.update_calls.append((contact_id, copy.deepcopy(patch)))
        if self.fail_updates:
            raise RuntimeError("contact store unavailable")
        row = self.rows[contact_id]
        values = copy.deepcopy(patch)
        field_sources = values.pop("field_sources", {}) or {}
        merged = {**row.field_sources, **field_sources}
        self.rows[contact_id] = row.model_copy(update={**values, "field_sources": merged}, deep=True)


class FakeArtifactStore(ArtifactStore):
    def __init__(self, *artifacts: ArtifactSnapshot):
        self.rows: dict[str, ArtifactSnapshot] = {a.id: a for a in artifacts}
        self.status_writes: list[tuple[str, dict[str, Any]]] = []
        self.fail_claims = False

    async def get_artifact(self, artifact_id, user_id=None):
        row = self.rows.get(artifact_id)
        if row is None or not _owned(row.user_id, user_id):
            return None
        return row.model_copy(deep=True)

    async def claim_for_processing(self, artifact_id, now):
        row = self.rows.get(artifact_id)
        if self.fail_claims or row is None or row.ai_parsing_status != "pending":
            return False
        self.rows[artifact_id] = row.model_copy(update={
            "ai_parsing_status": "processing",
            "ai_processing_started_at": row.ai_processing_started_at or now,
            "ai_processing_completed_at": None,
        })
        return True

    async def update_artifact_status(self, artifact_id, fields):
        self.status_writes.append((artifact_id, dict(fields)))
        self.rows[artifact_id] = self.rows[artifact_id].model_copy(update=fields)

    async def reset_for_reprocess(self, artifact_id):
        row = self.rows[artifact_id]
        if row.ai_parsing_status == "processing":
            return False
        self.rows[artifact_id] = row.model_copy(update={
            "ai_parsing_status": "pending",
            "ai_processing_completed_at": None,
        })
        return True


class FakeSuggestionStore(SuggestionStore):
    def __init__(self, *records: SuggestionRecordSnapshot):
        self.rows: dict[str, SuggestionRecordSnapshot] = {r.id: r for r in records}
        self.fail_inserts = False
        self._ids = itertools.count(1)
        self._clock = datetime(2026, 1, 1, tzinfo=timezone.utc)

    async def insert_suggestion_record(self, record: NewSuggestionRecord):
        if self.fail_inserts:
            raise RuntimeError("insert failed")
        self._clock += timedelta(seconds=1)
        snapshot = SuggestionRecordSnapshot(
            id=f"rec-{next(self._ids)}",
            created_at=self._clock,
            **record.model_dump(),
        )
        self.rows[snapshot.id] = snapshot
        return snapshot.model_copy(deep=True)

    async def get_suggestion_record(self, record_id, user_id=None):
        row = self.rows.get(record_id)
        if row is None or not _owned(row.user_id, user_id):
            return None
        return row.model_copy(deep=True)

    async def update_suggestion_record_status(self, record_id, fields):
        self.rows[record_id] = self.rows[record_id].model_copy(update=copy.deepcopy(fields))

    def _newest_first(self, rows: Iterable[SuggestionRecordSnapshot]) -> list[SuggestionRecordSnapshot]:
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(
            (r.model_copy(deep=True) for r in rows),
            key=lambda r: r.created_at or epoch,
            reverse=True,
        )

    async def list_for_contact(self, contact_id, user_id=None, statuses=None):
        wanted = set(statuses) if statuses is not None else None
        return self._newest_first(
            r for r in self.rows.values()
            if r.contact_id == contact_id
            and _owned(r.user_id, user_id)
            and (wanted is None or r.status in wanted)
        )

    async def list_for_artifact(self, artifact_id, user_id=None):
        return self._newest_first(
            r for r in self.rows.values()
            if r.artifact_id == artifact_id and _owned(r.user_id, user_id)
        )


class FakeUnitOfWork(UnitOfWork):
    """Snapshots the rows of every store on entry; restores them if the block raises."""

    def __init__(self, *stores: Any):
        self.stores = stores
        self.rollbacks = 0

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        saved = [copy.deepcopy(s.rows) for s in self.stores]
        try:
            yield
        except Exception:
            for store, rows in zip(self.stores, saved):
                store.rows = rows
            self.rollbacks += 1
            raise


class FakeChatProvider(ChatProvider):
    """Returns queued responses in order; an Exception in the queue is raised instead."""

    def __init__(self, *responses: Any, delay: float = 0.0):
        self.responses = list(responses)
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def _chat(self, messages, max_tokens=4096, temperature=None, response_format=None):
        self.calls.append({
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "response_format": response_format,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.responses:
            raise ChatServiceError("no scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_contact(**overrides: Any) -> ContactSnapshot:
    data: dict[str, Any] = {
        "id": "contact-1",
        "user_id": USER_ID,
        "name": "Dana Whitfield",
        "company": "Northwind",
        "title": "Director of Engineering",
        "professional_context": {"skills": ["Hiring"]},
        "personal_context": {"interests": ["Cycling"]},
        "field_sources": {},
    }
    data.update(overrides)
    return ContactSnapshot(**data)


def make_artifact(**overrides: Any) -> ArtifactSnapshot:
    data: dict[str, Any] = {
        "id": "artifact-1",
        "contact_id": "contact-1",
        "user_id": USER_ID,
        "type": "voice_memo",
        "transcription": "My partner Sarah and I are moving to Boston next month.",
        "transcription_status": "completed",
        "ai_parsing_status": "pending",
        "created_at": datetime(2026, 1, 1, 9, 30, tzinfo=timezone.utc),
    }
    data.update(overrides)
    return ArtifactSnapshot(**data)


def make_stores(
    contacts: Iterable[ContactSnapshot] = (),
    artifacts: Iterable[ArtifactSnapshot] = (),
    records: Iterable[SuggestionRecordSnapshot] = (),
) -> Stores:
    return stores_from(
        FakeContactStore(*contacts),
        FakeArtifactStore(*artifacts),
        FakeSuggestionStore(*records),
    )


def stores_from(contacts: Any, artifacts: Any, suggestions: Any) -> Stores:
    return Stores(
        contacts=contacts,
        artifacts=artifacts,
        suggestions=suggestions,
        unit=FakeUnitOfWork(contacts, artifacts, suggestions),
    )
