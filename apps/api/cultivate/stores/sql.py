"""SQLAlchemy (async) implementations of the store interfaces."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Iterable, Optional

from sqlalchemy import func, literal, select, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession

from cultivate.db.models import Artifact, Contact, ContactUpdateSuggestion
from cultivate.domain import (
    CONTEXT_ROOTS,
    DIRECT_CONTACT_FIELDS,
    ArtifactSnapshot,
    ContactSnapshot,
    ContactUpdateSuggestion as Suggestion,
    NewSuggestionRecord,
    SuggestionRecordSnapshot,
)
from cultivate.stores.base import ArtifactStore, ContactStore, SuggestionStore, UnitOfWork

_CONTACT_PATCH_COLUMNS = frozenset(DIRECT_CONTACT_FIELDS) | frozenset(CONTEXT_ROOTS)

_ARTIFACT_STATUS_COLUMNS = frozenset({
    "ai_parsing_status",
    "ai_processing_started_at",
    "ai_processing_completed_at",
})

_RECORD_STATUS_COLUMNS = frozenset({
    "status",
    "user_selections",
    "reviewed_at",
    "applied_at",
    "dismissed_at",
    "viewed_at",
})


def contact_to_snapshot(row: Contact) -> ContactSnapshot:
    return ContactSnapshot(
        id=str(row.id),
        user_id=str(row.user_id),
        name=row.name,
        email=row.email,
        phone=row.phone,
        title=row.title,
        company=row.company,
        location=row.location,
        linkedin_url=row.linkedin_url,
        notes=row.notes,
        professional_context=row.professional_context,
        personal_context=row.personal_context,
        field_sources=row.field_sources,
    )


def artifact_to_snapshot(row: Artifact) -> ArtifactSnapshot:
    return ArtifactSnapshot(
        id=str(row.id),
        contact_id=str(row.contact_id),
        user_id=str(row.user_id),
        type=row.type,
        content=row.content,
        transcription=row.transcription,
        transcription_status=row.transcription_status,
        ai_parsing_status=row.ai_parsing_status,
        ai_processing_started_at=row.ai_processing_started_at,
        ai_processing_completed_at=row.ai_processing_completed_at,
        metadata=row.metadata_,
        created_at=row.created_at,
    )


def record_to_snapshot(row: ContactUpdateSuggestion) -> SuggestionRecordSnapshot:
    payload = row.suggested_updates if isinstance(row.suggested_updates, dict) else {}
    return SuggestionRecordSnapshot(
        id=str(row.id),
        artifact_id=str(row.artifact_id),
        contact_id=str(row.contact_id),
        user_id=str(row.user_id),
        suggestions=[Suggestion.model_validate(s) for s in payload.get("suggestions") or []],
        field_paths=list(row.field_paths or []),
        confidence_scores=row.confidence_scores or {},
        status=row.status,
        priority=row.priority,
        user_selections=row.user_selections or {},
        created_at=row.created_at,
        reviewed_at=row.reviewed_at,
        applied_at=row.applied_at,
        dismissed_at=row.dismissed_at,
        viewed_at=row.viewed_at,
    )


def _pick(fields: dict[str, Any], allowed: frozenset[str], what: str) -> dict[str, Any]:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unsupported {what} fields: {sorted(unknown)}")
    return dict(fields)


class SqlContactStore(ContactStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_contact(self, contact_id: str, user_id: Optional[str] = None) -> Optional[ContactSnapshot]:
        stmt = select(Contact).where(Contact.id == contact_id)
        if user_id is not None:
            stmt = stmt.where(Contact.user_id == user_id)
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return contact_to_snapshot(row) if row else None

    async def update_contact_fields(self, contact_id: str, patch: dict[str, Any]) -> None:
        values = dict(patch)
        field_sources = values.pop("field_sources", None) or {}
        values = _pick(values, _CONTACT_PATCH_COLUMNS, "contact")
        if field_sources:
            values["field_sources"] = Contact.field_sources.op("||")(literal(field_sources, JSONB))
        if not values:
            return
        result = await self.db.execute(
            update(Contact).where(Contact.id == contact_id).values(**values)
        )
        if result.rowcount == 0:
            raise LookupError(f"Contact {contact_id} not found")


class SqlArtifactStore(ArtifactStore):
    """
    commit_status_writes=True commits after every status write, for callers
    (background jobs) that own their session; request handlers leave commits
    to get_db.
    """

    def __init__(self, db: AsyncSession, commit_status_writes: bool = False):
        self.db = db
        self.commit_status_writes = commit_status_writes

    async def _maybe_commit(self) -> None:
        # inside a savepoint the unit of work commits once the block succeeds
        if self.commit_status_writes and not self.db.in_nested_transaction():
            await self.db.commit()

    async def get_artifact(self, artifact_id: str, user_id: Optional[str] = None) -> Optional[ArtifactSnapshot]:
        stmt = select(Artifact).where(Artifact.id == artifact_id)
        if user_id is not None:
            stmt = stmt.where(Artifact.user_id == user_id)
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return artifact_to_snapshot(row) if row else None

    async def claim_for_processing(self, artifact_id: str, now: datetime) -> bool:
        result = await self.db.execute(
            update(Artifact)
            .where(Artifact.id == artifact_id, Artifact.ai_parsing_status == "pending")
            .values(
                ai_parsing_status="processing",
                ai_processing_started_at=func.coalesce(Artifact.ai_processing_started_at, now),
                ai_processing_completed_at=None,
            )
        )
        await self._maybe_commit()
        return result.rowcount == 1

    async def update_artifact_status(self, artifact_id: str, fields: dict[str, Any]) -> None:
        values = _pick(fields, _ARTIFACT_STATUS_COLUMNS, "artifact")
        await self.db.execute(update(Artifact).where(Artifact.id == artifact_id).values(**values))
        await self._maybe_commit()

    async def reset_for_reprocess(self, artifact_id: str) -> bool:
        result = await self.db.execute(
            update(Artifact)
            .where(
                Artifact.id == artifact_id,
                Artifact.ai_parsing_status.is_distinct_from("processing"),
            )
            .values(ai_parsing_status="pending", ai_processing_completed_at=None)
        )
        await self._maybe_commit()
        return result.rowcount == 1


class SqlSuggestionStore(SuggestionStore):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def insert_suggestion_record(self, record: NewSuggestionRecord) -> SuggestionRecordSnapshot:
        row = ContactUpdateSuggestion(
            artifact_id=record.artifact_id,
            contact_id=record.contact_id,
            user_id=record.user_id,
            suggested_updates={"suggestions": [s.model_dump(mode="json") for s in record.suggestions]},
            field_paths=list(record.field_paths),
            confidence_scores=dict(record.confidence_scores),
            status=record.status,
            priority=record.priority,
        )
        # savepoint: a failed insert rolls back only this row
        async with self.db.begin_nested():
            self.db.add(row)
            await self.db.flush()
        await self.db.refresh(row)
        return record_to_snapshot(row)

    async def get_suggestion_record(
        self, record_id: str, user_id: Optional[str] = None
    ) -> Optional[SuggestionRecordSnapshot]:
        stmt = select(ContactUpdateSuggestion).where(ContactUpdateSuggestion.id == record_id)
        if user_id is not None:
            stmt = stmt.where(ContactUpdateSuggestion.user_id == user_id)
        row = (await self.db.execute(stmt)).scalar_one_or_none()
        return record_to_snapshot(row) if row else None

    async def update_suggestion_record_status(self, record_id: str, fields: dict[str, Any]) -> None:
        values = _pick(fields, _RECORD_STATUS_COLUMNS, "suggestion record")
        result = await self.db.execute(
            update(ContactUpdateSuggestion)
            .where(ContactUpdateSuggestion.id == record_id)
            .values(**values)
        )
        if result.rowcount == 0:
            raise LookupError(f"Suggestion record {record_id} not found")

    async def list_for_contact(
        self,
        contact_id: str,
        user_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> list[SuggestionRecordSnapshot]:
        stmt = select(ContactUpdateSuggestion).where(ContactUpdateSuggestion.contact_id == contact_id)
        if user_id is not None:
            stmt = stmt.where(ContactUpdateSuggestion.user_id == user_id)
        if statuses is not None:
            stmt = stmt.where(ContactUpdateSuggestion.status.in_(list(statuses)))
        stmt = stmt.order_by(ContactUpdateSuggestion.created_at.desc())
        rows = (await self.db.execute(stmt)).scalars().all()
        return [record_to_snapshot(r) for r in rows]

    async def list_for_artifact(
        self, artifact_id: str, user_id: Optional[str] = None
    ) -> list[SuggestionRecordSnapshot]:
        stmt = select(ContactUpdateSuggestion).where(ContactUpdateSuggestion.artifact_id == artifact_id)
        if user_id is not None:
            stmt = stmt.where(ContactUpdateSuggestion.user_id == user_id)
        stmt = stmt.order_by(ContactUpdateSuggestion.created_at.desc())
        rows = (await self.db.execute(stmt)).scalars().all()
        return [record_to_snapshot(r) for r in rows]


class SqlUnitOfWork(UnitOfWork):
    """
    savepoint() is a SAVEPOINT on the shared session. With commit=True the
    outer transaction is committed once the outermost block succeeds.
    """

    def __init__(self, db: AsyncSession, commit: bool = False):
        self.db = db
        self.commit = commit

    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        async with self.db.begin_nested():
            yield
        if self.commit and not self.db.in_nested_transaction():
            await self.db.commit()
