"""
Main API router - combines all endpoint routers
"""
from fastapi import APIRouter

from progress_engine.api.v1 import meta, xp, progress, league, sync

# Create main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(
    xp.router,
    tags=["XP"]
)

api_router.include_router(
    progress.router,
    tags=["Progress"]
)

api_router.include_router(
    league.router,
    tags=["League"]
)

api_router.include_router(
    sync.router,
    tags=["Sync"]
)

api_router.include_router(
    meta.router,
    tags=["Meta"]
)
