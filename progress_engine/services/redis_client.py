"""
Redis client and the local snapshot store

Each identity (or the "guest" pseudo-identity) gets its own key namespace
holding JSON blobs for the XP, progress and league snapshots plus its sync
bookkeeping.
"""

import json
from datetime import datetime
from typing import Optional, Type, TypeVar

import redis.asyncio as redis
import structlog
from pydantic import BaseModel, ValidationError

from progress_engine.core.config import settings
from progress_engine.core.exceptions import SnapshotStoreError
from progress_engine.domain.leagues import new_league_profile
from progress_engine.domain.models import LeagueProfile, ProgressProfile, SyncState, XPProfile
from progress_engine.domain.xp_curve import level_from_xp

logger = structlog.get_logger(__name__)

GUEST_IDENTITY = "guest"

ModelT = TypeVar("ModelT", bound=BaseModel)

# Global Redis connection pool
_redis_pool: Optional[redis.ConnectionPool] = None
_redis_client: Optional[redis.Redis] = None


async def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client with connection pooling
    """
    global _redis_pool, _redis_client

    if _redis_client is None:
        try:
            _redis_pool = redis.ConnectionPool.from_url(settings.REDIS_URL, decode_responses=True)
            _redis_client = redis.Redis(connection_pool=_redis_pool)

            # Test connection
            await _redis_client.ping()
            logger.info("Redis client created successfully")

        except Exception as e:
            logger.error("Failed to create Redis client", error=str(e))
            _redis_client = None
            raise

    return _redis_client


async def close_redis_client():
    """Close the shared client and its pool, if one was opened"""
    global _redis_pool, _redis_client

    if _redis_client is not None:
        await _redis_client.aclose()
    if _redis_pool is not None:
        await _redis_pool.disconnect()
    _redis_client = None
    _redis_pool = None


def namespace(identity: Optional[str]) -> str:
    """Key namespace for an identity; no identity means guest"""
    return identity or GUEST_IDENTITY


def is_guest(identity: Optional[str]) -> bool:
    return namespace(identity) == GUEST_IDENTITY


class LocalSnapshotStore:
    """Redis-backed key-value store for per-identity snapshots"""

    def __init__(self, client: Optional[redis.Redis] = None, prefix: Optional[str] = None):
        self.redis = client
        self.prefix = prefix or settings.SNAPSHOT_KEY_PREFIX

    async def initialize(self):
        """Initialize Redis connection"""
        self.redis = await get_redis_client()

    def _key(self, identity: Optional[str], kind: str) -> str:
        """Get Redis key for one snapshot of an identity"""
        return f"{self.prefix}:{namespace(identity)}:{kind}"

    async def _read(self, identity: Optional[str], kind: str, model: Type[ModelT]) -> Optional[ModelT]:
        """
        Read and parse a snapshot blob

        Returns None when the blob is missing or malformed; a malformed blob
        is logged and left for the next write to replace.
        """
        if not self.redis:
            await self.initialize()

        key = self._key(identity, kind)
        try:
            raw = await self.redis.get(key)
        except Exception as e:
            logger.error("Failed to read snapshot from Redis", key=key, error=str(e))
            raise SnapshotStoreError(f"Could not read {key}") from e

        if raw is None:
            return None

        try:
            return model.model_validate(json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.warning("Discarding malformed snapshot", key=key, error=str(e))
            return None

    async def _write(self, identity: Optional[str], kind: str, value: BaseModel):
        if not self.redis:
            await self.initialize()

        key = self._key(identity, kind)
        try:
            await self.redis.set(key, value.model_dump_json())
        except Exception as e:
            logger.error("Failed to write snapshot to Redis", key=key, error=str(e))
            raise SnapshotStoreError(f"Could not write {key}") from e

        logger.debug("Snapshot saved", key=key)

    # ==================== SNAPSHOTS ====================

    async def load_xp(self, identity: Optional[str]) -> XPProfile:
        profile = await self._read(identity, "xp", XPProfile)
        if profile is None:
            return XPProfile()

        # The level is a cache of total_xp
        expected_level = level_from_xp(profile.total_xp)
        if profile.level != expected_level:
            logger.warning("Repairing cached level",
                           identity=namespace(identity),
                           stored_level=profile.level,
                           level=expected_level)
            profile = profile.model_copy(update={"level": expected_level})
        return profile

    async def save_xp(self, identity: Optional[str], profile: XPProfile):
        await self._write(identity, "xp", profile)

    async def load_progress(self, identity: Optional[str]) -> ProgressProfile:
        profile = await self._read(identity, "progress", ProgressProfile)
        return profile if profile is not None else ProgressProfile()

    async def save_progress(self, identity: Optional[str], profile: ProgressProfile):
        await self._write(identity, "progress", profile)

    async def load_league(self, identity: Optional[str], now: datetime) -> LeagueProfile:
        profile = await self._read(identity, "league", LeagueProfile)
        return profile if profile is not None else new_league_profile(now)

    async def save_league(self, identity: Optional[str], profile: LeagueProfile):
        await self._write(identity, "league", profile)

    # ==================== SYNC STATE ====================

    async def load_sync_state(self, identity: Optional[str]) -> SyncState:
        state = await self._read(identity, "sync", SyncState)
        return state if state is not None else SyncState()

    async def save_sync_state(self, identity: Optional[str], state: SyncState):
        await self._write(identity, "sync", state)

    async def mark_sync_pending(self, identity: Optional[str]):
        state = await self.load_sync_state(identity)
        if not state.pending:
            await self.save_sync_state(identity, state.model_copy(update={"pending": True}))

    # ==================== RESET ====================

    async def clear(self, identity: Optional[str]):
        """Delete every snapshot of an identity"""
        if not self.redis:
            await self.initialize()

        keys = [self._key(identity, kind) for kind in ("xp", "progress", "league", "sync")]
        try:
            await self.redis.delete(*keys)
        except Exception as e:
            logger.error("Failed to clear snapshots", identity=namespace(identity), error=str(e))
            raise SnapshotStoreError(f"Could not clear snapshots for {namespace(identity)}") from e

        logger.info("Local snapshots cleared", identity=namespace(identity))

    async def health_check(self) -> bool:
        """
        Check Redis connection health
        """
        try:
            if not self.redis:
                await self.initialize()

            await self.redis.ping()
            return True

        except Exception as e:
            logger.error("Redis health check failed", error=str(e))
            return False


# Global snapshot store instance
snapshot_store = LocalSnapshotStore()
