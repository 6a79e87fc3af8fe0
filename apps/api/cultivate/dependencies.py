from typing import Annotated, AsyncGenerator, Awaitable, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from cultivate.core import decode_access_token
from cultivate.db.session import async_session
from cultivate.domain import ExtractionResult
from cultivate.providers import get_chat_provider
from cultivate.services.suggestions import (
    ExtractionPipeline,
    ProvenanceService,
    ReprocessController,
    SuggestionLifecycle,
    run_extraction_job,
)
from cultivate.stores import Stores, sql_stores

security = HTTPBearer(auto_error=False)

ExtractionRunner = Callable[[str], Awaitable[ExtractionResult]]


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user_id = decode_access_token(credentials.credentials)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


async def get_stores(db: Annotated[AsyncSession, Depends(get_db)]) -> Stores:
    return sql_stores(db)


async def get_lifecycle(stores: Annotated[Stores, Depends(get_stores)]) -> SuggestionLifecycle:
    return SuggestionLifecycle(stores.contacts, stores.suggestions, stores.unit)


async def get_provenance(stores: Annotated[Stores, Depends(get_stores)]) -> ProvenanceService:
    return ProvenanceService(stores.contacts, stores.artifacts, stores.suggestions)


async def get_reprocess_controller(db: Annotated[AsyncSession, Depends(get_db)]) -> ReprocessController:
    """Commits the reset itself so a background run sees it."""
    return ReprocessController(sql_stores(db, commit_status_writes=True).artifacts)


async def get_extraction_pipeline() -> AsyncGenerator[ExtractionPipeline, None]:
    """Pipeline on its own session; status writes commit as they happen."""
    try:
        chat = get_chat_provider()
    except RuntimeError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    async with async_session() as session:
        stores = sql_stores(session, commit_status_writes=True)
        yield ExtractionPipeline(stores.contacts, stores.artifacts, stores.suggestions, stores.unit, chat)
        await session.commit()


async def get_extraction_runner() -> ExtractionRunner:
    """Callable used to run extraction after the response (background tasks)."""
    return run_extraction_job
