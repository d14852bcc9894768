"""
League API endpoints
"""
from fastapi import APIRouter, HTTPException, Depends, Query
from typing import Optional
import logging

from progress_engine.models.progression import LeagueResponse
from progress_engine.core.exceptions import SnapshotStoreError
from progress_engine.domain.leagues import DEFAULT_RANK
from progress_engine.services.progression_service import ProgressionService
from progress_engine.api.deps import get_identity, get_progression_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/league",
    response_model=LeagueResponse
)
async def get_league(
    rank: int = Query(default=DEFAULT_RANK, ge=1, description="Leaderboard rank, used for the zone and the week rollover"),
    identity: Optional[str] = Depends(get_identity),
    service: ProgressionService = Depends(get_progression_service)
):
    """
    Get the caller's league standing

    Closes the previous week first if it has ended, then reports the
    league, weekly XP, current zone and time left in the week.
    The rank comes from the leaderboard; without one it defaults to 1.
    """
    try:
        return await service.get_league(identity, rank=rank)

    except (HTTPException, SnapshotStoreError):
        raise
    except Exception as e:
        logger.error(f"Error getting league: {e}")
        raise HTTPException(status_code=500, detail=str(e))
