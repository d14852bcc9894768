"""Tests for the Redis-backed local snapshot store."""
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from progress_engine.core.exceptions import SnapshotStoreError
from progress_engine.domain.models import LeagueId, ProgressProfile, SyncState, XPProfile
from progress_engine.services.redis_client import LocalSnapshotStore

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_missing_snapshots_load_as_defaults(store):
    assert await store.load_xp("u1") == XPProfile()
    assert await store.load_progress("u1") == ProgressProfile()
    assert await store.load_sync_state("u1") == SyncState()

    league = await store.load_league("u1", NOW)
    assert league.current_league_id == LeagueId.BRONZE
    assert league.week_start_date.isoformat() == "2024-05-13"


@pytest.mark.asyncio
async def test_snapshots_round_trip_under_identity_namespace(store, fake_redis):
    profile = XPProfile(total_xp=600, level=3, mastered_topics={"algebra"})

    await store.save_xp("u1", profile)

    assert await store.load_xp("u1") == profile
    assert await store.load_xp("u2") == XPProfile()
    stored = json.loads(fake_redis.data["test:u1:xp"])
    assert stored["mastered_topics"] == ["algebra"]


@pytest.mark.asyncio
async def test_guest_namespace(store, fake_redis):
    await store.save_progress(None, ProgressProfile(total_problems_completed=3))

    assert "test:guest:progress" in fake_redis.data
    assert (await store.load_progress(None)).total_problems_completed == 3


@pytest.mark.asyncio
async def test_malformed_blob_falls_back_to_defaults(store, fake_redis):
    fake_redis.data["test:u1:progress"] = "{not json"
    fake_redis.data["test:u1:xp"] = json.dumps({"total_xp": -5})

    assert await store.load_progress("u1") == ProgressProfile()
    assert await store.load_xp("u1") == XPProfile()


@pytest.mark.asyncio
async def test_inconsistent_cached_level_is_repaired(store, fake_redis):
    fake_redis.data["test:u1:xp"] = json.dumps({"total_xp": 600, "level": 1})

    profile = await store.load_xp("u1")

    assert profile.level == 3


@pytest.mark.asyncio
async def test_unreachable_redis_raises(store, fake_redis):
    fake_redis.fail = True

    with pytest.raises(SnapshotStoreError):
        await store.load_xp("u1")
    with pytest.raises(SnapshotStoreError):
        await store.save_progress("u1", ProgressProfile())
    assert await store.health_check() is False


@pytest.mark.asyncio
async def test_mark_sync_pending_and_clear(store, fake_redis):
    await store.save_xp("u1", XPProfile(total_xp=10))
    await store.mark_sync_pending("u1")

    assert (await store.load_sync_state("u1")).pending is True

    await store.clear("u1")

    assert not any(key.startswith("test:u1:") for key in fake_redis.data)
    assert await store.health_check() is True


@pytest.mark.asyncio
async def test_store_initializes_client_lazily(fake_redis):
    store = LocalSnapshotStore(prefix="lazy")
    with patch("progress_engine.services.redis_client.get_redis_client", AsyncMock(return_value=fake_redis)):
        await store.save_xp("u1", XPProfile(total_xp=5))

    assert "lazy:u1:xp" in fake_redis.data
