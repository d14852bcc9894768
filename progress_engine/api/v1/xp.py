"""
XP API endpoints: summary and XP-earning events
"""
from fastapi import APIRouter, HTTPException, Depends
from typing import Optional
import logging

from progress_engine.models.progression import (
    ProblemCompletedRequest,
    ArithmeticCompletedRequest,
    MultiplayerCompletedRequest,
    MasteryRequest,
    XPSummaryResponse,
    XPAwardResponse
)
from progress_engine.core.exceptions import SnapshotStoreError
from progress_engine.services.progression_service import ProgressionService
from progress_engine.api.deps import get_identity, get_progression_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get(
    "/xp",
    response_model=XPSummaryResponse
)
async def get_xp(
    identity: Optional[str] = Depends(get_identity),
    service: ProgressionService = Depends(get_progression_service)
):
    """
    Get the caller's XP summary

    Returns:
    - Total XP, level and level title
    - XP needed for the next level and progress within the current one
    - Mastered subtopics and topics
    """
    try:
        return await service.get_xp_summary(identity)

    except (HTTPException, SnapshotStoreError):
        raise
    except Exception as e:
        logger.error(f"Error getting XP summary: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/xp/problem",
    response_model=XPAwardResponse
)
async def complete_problem(
    request: ProblemCompletedRequest,
    identity: Optional[str] = Depends(get_identity),
    service: ProgressionService = Depends(get_progression_service)
):
    """
    Record a solved problem

    Updates problem counts, practice time and the daily streak, awards XP
    adjusted for how the problem was completed and credits it to the
    current league week.
    """
    try:
        return await service.record_problem(
            identity,
            topic_id=request.topic_id,
            difficulty=request.difficulty,
            mode=request.mode,
            accuracy=request.accuracy,
            failed_attempts=request.failed_attempts,
            steps_completed=request.steps_completed,
            time_spent_seconds=request.time_spent_seconds
        )

    except (HTTPException, SnapshotStoreError):
        raise
    except Exception as e:
        logger.error(f"Error recording problem: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/xp/arithmetic",
    response_model=XPAwardResponse
)
async def complete_arithmetic(
    request: ArithmeticCompletedRequest,
    identity: Optional[str] = Depends(get_identity),
    service: ProgressionService = Depends(get_progression_service)
):
    """Award XP for a mental-math speed drill"""
    try:
        return await service.record_arithmetic(
            identity,
            correct_answers=request.correct_answers,
            streak=request.streak
        )

    except (HTTPException, SnapshotStoreError):
        raise
    except Exception as e:
        logger.error(f"Error recording arithmetic drill: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/xp/multiplayer",
    response_model=XPAwardResponse
)
async def complete_multiplayer(
    request: MultiplayerCompletedRequest,
    identity: Optional[str] = Depends(get_identity),
    service: ProgressionService = Depends(get_progression_service)
):
    """Award XP for a multiplayer match"""
    try:
        return await service.record_multiplayer(identity, won=request.won)

    except (HTTPException, SnapshotStoreError):
        raise
    except Exception as e:
        logger.error(f"Error recording multiplayer match: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post(
    "/xp/mastery",
    response_model=XPAwardResponse
)
async def award_mastery(
    request: MasteryRequest,
    identity: Optional[str] = Depends(get_identity),
    service: ProgressionService = Depends(get_progression_service)
):
    """
    Award a one-time mastery bonus

    A subtopic or topic pays its bonus once per profile. Repeats return
    `awarded: false` and leave XP unchanged.
    """
    try:
        return await service.record_mastery(
            identity,
            kind=request.kind,
            mastery_id=request.mastery_id
        )

    except (HTTPException, SnapshotStoreError):
        raise
    except Exception as e:
        logger.error(f"Error awarding mastery: {e}")
        raise HTTPException(status_code=500, detail=str(e))
