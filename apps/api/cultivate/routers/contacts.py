from fastapi import APIRouter, Depends, HTTPException

from cultivate.dependencies import get_current_user_id, get_lifecycle, get_provenance
from cultivate.domain import FieldSourceInfo
from cultivate.field_registry import is_valid_field_path
from cultivate.schemas import ArtifactContributionsResponse, SuggestionListResponse
from cultivate.services.suggestions import (
    ArtifactNotFoundError,
    ProvenanceService,
    SuggestionLifecycle,
)

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.get("/{contact_id}/suggestions", response_model=SuggestionListResponse)
async def list_pending_suggestions(
    contact_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: SuggestionLifecycle = Depends(get_lifecycle),
):
    pending = await lifecycle.list_pending(contact_id, user_id)
    return SuggestionListResponse(
        records=pending.records,
        pending_count=pending.pending_count,
        high_confidence_count=pending.high_confidence_count,
    )


@router.get(
    "/{contact_id}/artifacts/{artifact_id}/contributions",
    response_model=ArtifactContributionsResponse,
)
async def get_artifact_contributions(
    contact_id: str,
    artifact_id: str,
    user_id: str = Depends(get_current_user_id),
    provenance: ProvenanceService = Depends(get_provenance),
):
    contributions = await provenance.get_artifact_contributions(contact_id, artifact_id, user_id)
    return ArtifactContributionsResponse(
        contact_id=contact_id,
        artifact_id=artifact_id,
        contributions=contributions,
    )


@router.get("/{contact_id}/field-sources/{field_path}", response_model=FieldSourceInfo)
async def get_field_source(
    contact_id: str,
    field_path: str,
    user_id: str = Depends(get_current_user_id),
    provenance: ProvenanceService = Depends(get_provenance),
):
    if not is_valid_field_path(field_path):
        raise HTTPException(status_code=400, detail=f"Unknown field path: {field_path}")
    try:
        info = await provenance.describe_field_source(contact_id, field_path, user_id)
    except ArtifactNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if info is None:
        raise HTTPException(status_code=404, detail="No source recorded for this field")
    return info
