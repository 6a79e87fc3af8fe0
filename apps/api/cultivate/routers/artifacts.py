import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status

from cultivate.core import get_settings, limiter
from cultivate.dependencies import (
    ExtractionRunner,
    get_current_user_id,
    get_extraction_pipeline,
    get_extraction_runner,
    get_reprocess_controller,
    get_stores,
)
from cultivate.domain import ExtractionResult, ReprocessResult
from cultivate.services.suggestions import (
    ArtifactNotFoundError,
    ArtifactNotReprocessableError,
    ExtractionPipeline,
    ReprocessConflictError,
    ReprocessController,
)
from cultivate.stores import Stores

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/artifacts", tags=["artifacts"])


def _reprocess_limit() -> str:
    return get_settings().reprocess_rate_limit


@router.post("/{artifact_id}/parse", response_model=ExtractionResult)
async def parse_artifact(
    artifact_id: str,
    user_id: str = Depends(get_current_user_id),
    stores: Stores = Depends(get_stores),
    pipeline: ExtractionPipeline = Depends(get_extraction_pipeline),
):
    """Run extraction now. Ineligible artifacts come back as skipped, not as errors."""
    if await stores.artifacts.get_artifact(artifact_id, user_id) is None:
        raise HTTPException(status_code=404, detail="Artifact not found")
    return await pipeline.run_extraction(artifact_id)


@router.post(
    "/{artifact_id}/reprocess",
    response_model=ReprocessResult,
    status_code=status.HTTP_202_ACCEPTED,
)
@limiter.limit(_reprocess_limit)
async def reprocess_artifact(
    request: Request,
    artifact_id: str,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(get_current_user_id),
    controller: ReprocessController = Depends(get_reprocess_controller),
    run_extraction: ExtractionRunner = Depends(get_extraction_runner),
):
    try:
        result = await controller.reprocess(artifact_id, user_id)
    except ArtifactNotFoundError:
        raise HTTPException(status_code=404, detail="Artifact not found")
    except ArtifactNotReprocessableError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ReprocessConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    background_tasks.add_task(run_extraction, artifact_id)
    logger.info("Scheduled re-analysis of artifact %s", artifact_id)
    return result
