from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from .base import ArtifactStore, ContactStore, SuggestionStore, UnitOfWork
from .sql import SqlArtifactStore, SqlContactStore, SqlSuggestionStore, SqlUnitOfWork


@dataclass
class Stores:
    contacts: ContactStore
    artifacts: ArtifactStore
    suggestions: SuggestionStore
    unit: UnitOfWork


def sql_stores(db: AsyncSession, commit_status_writes: bool = False) -> Stores:
    return Stores(
        contacts=SqlContactStore(db),
        artifacts=SqlArtifactStore(db, commit_status_writes=commit_status_writes),
        suggestions=SqlSuggestionStore(db),
        unit=SqlUnitOfWork(db, commit=commit_status_writes),
    )


__all__ = [
    "ArtifactStore",
    "ContactStore",
    "SuggestionStore",
    "UnitOfWork",
    "SqlArtifactStore",
    "SqlContactStore",
    "SqlSuggestionStore",
    "SqlUnitOfWork",
    "Stores",
    "sql_stores",
]
