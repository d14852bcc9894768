"""
Sync and reset API endpoints
"""
from fastapi import APIRouter, HTTPException, Depends
from typing import Optional
import logging

from progress_engine.models.progression import SyncRequest, SyncResponse, ResetResponse
from progress_engine.core.exceptions import SnapshotStoreError
from progress_engine.services.progression_service import ProgressionService
from progress_engine.api.deps import get_identity, get_progression_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post(
    "/sync",
    response_model=SyncResponse
)
async def sync_progress(
    request: Optional[SyncRequest] = None,
    identity: Optional[str] = Depends(get_identity),
    service: ProgressionService = Depends(get_progression_service)
):
    """
    Reconcile local progress with the remote copy

    Failures never block the caller: the response reports the status, the
    number of consecutive failures and when to retry.
    """
    force = request.force if request else False

    try:
        result = await service.sync(identity, force=force)
        return SyncResponse(**result.model_dump())

    except (HTTPException, SnapshotStoreError):
        raise
    except Exception as e:
        logger.error(f"Error syncing progress: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/reset",
    response_model=ResetResponse
)
async def reset_progress(
    identity: Optional[str] = Depends(get_identity),
    service: ProgressionService = Depends(get_progression_service)
):
    """Reset the caller's XP, progress and league to their defaults"""
    try:
        return await service.reset(identity)

    except (HTTPException, SnapshotStoreError):
        raise
    except Exception as e:
        logger.error(f"Error resetting progress: {e}")
        raise HTTPException(status_code=500, detail=str(e))
