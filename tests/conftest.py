"""Shared fixtures: in-memory Redis, a scripted remote snapshot service and a fixed clock."""
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from progress_engine.core.exceptions import RemoteSyncError
from progress_engine.domain.models import ProgressProfile, ProgressSnapshot, XPProfile
from progress_engine.services.progression_service import ProgressionService
from progress_engine.services.redis_client import LocalSnapshotStore
from progress_engine.services.sync_service import SyncRetryPolicy, SyncService


class FakeRedis:
    """The subset of redis.asyncio.Redis the snapshot store uses."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.fail = False

    def _check(self):
        if self.fail:
            raise ConnectionError("redis unavailable")

    async def get(self, key):
        self._check()
        return self.data.get(key)

    async def set(self, key, value):
        self._check()
        self.data[key] = value
        return True

    async def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def ping(self):
        self._check()
        return True


class FakeRemote:
    """Remote snapshot service keeping one snapshot per user in memory."""

    def __init__(self):
        self.snapshots: Dict[str, ProgressSnapshot] = {}
        self.fetch_fails = False
        self.push_fails = False
        self.pushes: List[str] = []

    async def fetch(self, user_id: str) -> Optional[ProgressSnapshot]:
        if self.fetch_fails:
            raise RemoteSyncError("remote unavailable")
        return self.snapshots.get(user_id)

    async def push(self, user_id: str, progress: ProgressProfile, xp: XPProfile) -> bool:
        if self.push_fails:
            return False
        self.pushes.append(user_id)
        self.snapshots[user_id] = ProgressSnapshot(progress=progress, xp=xp)
        return True


# Wednesday 2024-05-15 12:00 UTC
FIXED_NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return LocalSnapshotStore(client=fake_redis, prefix="test")


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def policy():
    return SyncRetryPolicy(base_seconds=2.0, multiplier=2.0, max_seconds=60.0, max_attempts=8)


@pytest.fixture
def sync_service(store, remote, policy):
    return SyncService(store, remote=remote, policy=policy)


class Clock:
    """Settable clock for the progression service."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def clock():
    return Clock(FIXED_NOW)


@pytest.fixture
def service(store, sync_service, clock):
    progression = ProgressionService(store=store, sync=sync_service, timezone="UTC")
    progression.now = clock
    return progression
