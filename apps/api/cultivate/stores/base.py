"""
Store interfaces the suggestion services depend on.

Services never touch the database directly; they are handed one object per
store (SQL in production, in-memory fakes in tests). All reads accept an
optional user_id that scopes the lookup to that owner.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, AsyncContextManager, Iterable, Optional

from cultivate.domain import (
    ArtifactSnapshot,
    ContactSnapshot,
    NewSuggestionRecord,
    SuggestionRecordSnapshot,
)


class ContactStore(ABC):
    @abstractmethod
    async def get_contact(self, contact_id: str, user_id: Optional[str] = None) -> Optional[ContactSnapshot]:
        pass

    @abstractmethod
    async def update_contact_fields(self, contact_id: str, patch: dict[str, Any]) -> None:
        """
        Write direct columns and context trees from patch. The "field_sources"
        entry is merged into the stored map, not replaced.
        """
        pass


class ArtifactStore(ABC):
    @abstractmethod
    async def get_artifact(self, artifact_id: str, user_id: Optional[str] = None) -> Optional[ArtifactSnapshot]:
        pass

    @abstractmethod
    async def claim_for_processing(self, artifact_id: str, now: datetime) -> bool:
        """
        pending -> processing, only if still pending. Stamps
        ai_processing_started_at when unset and clears ai_processing_completed_at.
        Returns False if another caller got there first.
        """
        pass

    @abstractmethod
    async def update_artifact_status(self, artifact_id: str, fields: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def reset_for_reprocess(self, artifact_id: str) -> bool:
        """
        Any status but processing -> pending, clearing ai_processing_completed_at.
        Returns False when the artifact is processing.
        """
        pass


class SuggestionStore(ABC):
    @abstractmethod
    async def insert_suggestion_record(self, record: NewSuggestionRecord) -> SuggestionRecordSnapshot:
        pass

    @abstractmethod
    async def get_suggestion_record(
        self, record_id: str, user_id: Optional[str] = None
    ) -> Optional[SuggestionRecordSnapshot]:
        pass

    @abstractmethod
    async def update_suggestion_record_status(self, record_id: str, fields: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def list_for_contact(
        self,
        contact_id: str,
        user_id: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
    ) -> list[SuggestionRecordSnapshot]:
        """Newest first."""
        pass

    @abstractmethod
    async def list_for_artifact(
        self, artifact_id: str, user_id: Optional[str] = None
    ) -> list[SuggestionRecordSnapshot]:
        """Newest first."""
        pass


class UnitOfWork(ABC):
    @abstractmethod
    def savepoint(self) -> AsyncContextManager[None]:
        """
        Store writes made inside the block land together or not at all: an
        exception rolls them back and is re-raised, leaving earlier writes and
        the session usable.
        """
        pass
