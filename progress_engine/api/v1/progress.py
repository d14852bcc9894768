"""
Progress API endpoints
"""
from fastapi import APIRouter, HTTPException, Depends
from typing import Optional
import logging

from progress_engine.models.progression import ProgressResponse
from progress_engine.core.exceptions import SnapshotStoreError
from progress_engine.services.progression_service import ProgressionService
from progress_engine.api.deps import get_identity, get_progression_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/progress",
    response_model=ProgressResponse
)
async def get_progress(
    identity: Optional[str] = Depends(get_identity),
    service: ProgressionService = Depends(get_progression_service)
):
    """
    Get the caller's activity progress

    Returns:
    - Problem counts overall and per topic
    - Practice time, current and longest streak
    - Today's stats and the last seven days' totals
    """
    try:
        return await service.get_progress(identity)

    except (HTTPException, SnapshotStoreError):
        raise
    except Exception as e:
        logger.error(f"Error getting progress: {e}")
        raise HTTPException(status_code=500, detail=str(e))
