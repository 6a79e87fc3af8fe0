from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from cultivate.dependencies import get_current_user_id, get_lifecycle
from cultivate.domain import SuggestionRecordSnapshot
from cultivate.schemas import (
    ApproveSuggestionRequest,
    BulkApproveRequest,
    BulkRejectRequest,
    BulkReviewResponse,
)
from cultivate.services.suggestions import (
    SuggestionApplyError,
    SuggestionLifecycle,
    SuggestionNotFoundError,
    SuggestionStateError,
)

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


def _to_http(e: Exception) -> HTTPException:
    if isinstance(e, SuggestionNotFoundError):
        return HTTPException(status_code=404, detail="Suggestion not found")
    if isinstance(e, SuggestionStateError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, SuggestionApplyError):
        return HTTPException(status_code=500, detail=str(e))
    return HTTPException(status_code=400, detail=str(e))


@router.post("/bulk-reject", response_model=BulkReviewResponse)
async def bulk_reject(
    body: BulkRejectRequest,
    user_id: str = Depends(get_current_user_id),
    lifecycle: SuggestionLifecycle = Depends(get_lifecycle),
):
    return BulkReviewResponse(results=await lifecycle.bulk_reject(body.record_ids, user_id))


@router.post("/bulk-approve", response_model=BulkReviewResponse)
async def bulk_approve(
    body: BulkApproveRequest,
    user_id: str = Depends(get_current_user_id),
    lifecycle: SuggestionLifecycle = Depends(get_lifecycle),
):
    return BulkReviewResponse(results=await lifecycle.bulk_approve(body.selections, user_id))


@router.post("/{record_id}/approve", response_model=SuggestionRecordSnapshot)
async def approve_suggestion(
    record_id: str,
    body: Optional[ApproveSuggestionRequest] = None,
    user_id: str = Depends(get_current_user_id),
    lifecycle: SuggestionLifecycle = Depends(get_lifecycle),
):
    selected = body.selected_paths if body else None
    try:
        return await lifecycle.approve(record_id, selected, user_id)
    except (SuggestionNotFoundError, SuggestionStateError, SuggestionApplyError, ValueError) as e:
        raise _to_http(e)


@router.post("/{record_id}/reject", response_model=SuggestionRecordSnapshot)
async def reject_suggestion(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: SuggestionLifecycle = Depends(get_lifecycle),
):
    try:
        return await lifecycle.reject(record_id, user_id)
    except (SuggestionNotFoundError, SuggestionStateError) as e:
        raise _to_http(e)


@router.post("/{record_id}/skip", response_model=SuggestionRecordSnapshot)
async def skip_suggestion(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: SuggestionLifecycle = Depends(get_lifecycle),
):
    try:
        return await lifecycle.skip(record_id, user_id)
    except (SuggestionNotFoundError, SuggestionStateError) as e:
        raise _to_http(e)


@router.post("/{record_id}/view", response_model=SuggestionRecordSnapshot)
async def mark_suggestion_viewed(
    record_id: str,
    user_id: str = Depends(get_current_user_id),
    lifecycle: SuggestionLifecycle = Depends(get_lifecycle),
):
    try:
        return await lifecycle.mark_viewed(record_id, user_id)
    except SuggestionNotFoundError as e:
        raise _to_http(e)
