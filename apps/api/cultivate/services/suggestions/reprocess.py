"""Re-analyze: put a finished voice memo back in the extraction queue."""

import logging
from typing import Optional

from cultivate.domain import ReprocessResult
from cultivate.services.suggestions.errors import (
    ArtifactNotFoundError,
    ArtifactNotReprocessableError,
    ReprocessConflictError,
)
from cultivate.stores.base import ArtifactStore

logger = logging.getLogger(__name__)


class ReprocessController:
    """
    Resets ai_parsing_status to pending so the next extraction run picks the
    artifact up again. Earlier suggestion records are left untouched; the new
    run adds its own record next to them.
    """

    def __init__(self, artifacts: ArtifactStore):
        self.artifacts = artifacts

    async def reprocess(self, artifact_id: str, user_id: Optional[str] = None) -> ReprocessResult:
        """
        Raises:
            ArtifactNotFoundError
            ArtifactNotReprocessableError: not a voice memo, or no completed transcription
            ReprocessConflictError: a run currently holds the artifact
        """
        artifact = await self.artifacts.get_artifact(artifact_id, user_id)
        if artifact is None:
            raise ArtifactNotFoundError(f"Artifact {artifact_id} not found")
        if artifact.type != "voice_memo":
            raise ArtifactNotReprocessableError(f"Artifact {artifact_id} is a {artifact.type}, not a voice memo")
        if artifact.transcription_status != "completed":
            raise ArtifactNotReprocessableError(
                f"Artifact {artifact_id} has no completed transcription ({artifact.transcription_status})"
            )

        if not await self.artifacts.reset_for_reprocess(artifact_id):
            logger.warning("Reprocess rejected: artifact %s is being processed", artifact_id)
            raise ReprocessConflictError(f"Artifact {artifact_id} is currently being processed")

        logger.info(
            "Artifact %s reset for reprocessing (was %s)",
            artifact_id,
            artifact.ai_parsing_status,
        )
        return ReprocessResult(status="pending", artifact_id=artifact_id)
