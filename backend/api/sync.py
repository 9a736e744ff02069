"""Sync API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.helpers import current_request_id
from api.plaid import get_sync_service
from database import get_db
from schemas import SyncRequest, SyncResponse
from services.connection_service import ConnectionService, ItemNotFoundError
from services.sync_service import SyncInProgressError, SyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plaid", tags=["sync"])


@router.post("/sync", response_model=SyncResponse)
def trigger_sync(
    body: SyncRequest,
    db: Session = Depends(get_db),
    sync_service: SyncService = Depends(get_sync_service),
    request_id: str = Depends(current_request_id),
):
    """Pull outstanding transaction changes for one linked Item.

    Always returns 200 once the sync has run. Provider and feed failures
    are reported in the body via ``status="failed"`` and ``error``;
    progress committed before the failure is kept.

    Raises:
        HTTPException:
            - 404 Not Found: Unknown item_id
            - 409 Conflict: A sync of this Item is already in progress
            - 500 Internal Server Error: Unexpected sync error
    """
    try:
        item = ConnectionService.get_item(db, body.item_id)
    except ItemNotFoundError:
        raise HTTPException(status_code=404, detail=f"Item not found: {body.item_id}")

    try:
        result = sync_service.sync_item(db, item, correlation_id=request_id)
    except SyncInProgressError:
        raise HTTPException(
            status_code=409,
            detail="Sync already in progress. Please wait for the current sync to complete.",
        )
    except Exception:
        # Safety catch for truly unexpected errors; never expose str(e)
        logger.error("Unexpected error during sync of item=%s", body.item_id, exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred during sync.",
        )

    return SyncResponse(
        item_id=result.item_id,
        status=result.status,
        applied_count=result.applied_count,
        final_cursor=result.final_cursor,
        pages_applied=result.pages_applied,
        added=result.added,
        modified=result.modified,
        removed=result.removed,
        skipped=result.skipped,
        failed=result.failed,
        error=result.error,
        request_id=request_id,
    )
