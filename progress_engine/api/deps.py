"""
Dependency injection for FastAPI routes
Provides the progression service, the caller identity and health checks
"""

from typing import Optional

import structlog
from fastapi import Header, HTTPException, status

from progress_engine.services.progression_service import ProgressionService, progression_service
from progress_engine.services.redis_client import snapshot_store
from progress_engine.services.snapshot_service import RemoteSnapshotService

logger = structlog.get_logger(__name__)

IDENTITY_HEADER = "X-User-Id"


# Service Dependencies

async def get_progression_service() -> ProgressionService:
    """Get the progression service instance"""
    return progression_service


# Identity Dependencies

async def get_identity(
    x_user_id: Optional[str] = Header(default=None, alias=IDENTITY_HEADER)
) -> Optional[str]:
    """
    Identity of the caller

    A missing or blank header means the guest pseudo-identity, represented
    as None.
    """
    if x_user_id is None:
        return None

    user_id = x_user_id.strip()
    if not user_id:
        return None

    if ":" in user_id:
        # Identities become part of the snapshot key namespace
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id must not contain ':'"
        )

    return user_id


# Health Check Dependencies

async def check_database_health():
    """
    Check remote snapshot service connectivity

    Raises:
        HTTPException: If the database is not available
    """
    try:
        service = RemoteSnapshotService()
        service.db(service.table).select("user_id").limit(1).execute()
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service unavailable"
        )


async def check_redis_health():
    """
    Check Redis connectivity

    Raises:
        HTTPException: If Redis is not available
    """
    if not await snapshot_store.health_check():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Redis service unavailable"
        )
