"""Tests for the progression service: event handling per identity."""
import asyncio
import gc
from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from progress_engine.core.exceptions import SnapshotStoreError
from progress_engine.domain.models import (
    CompletionMode, Difficulty, LeagueId, LeagueOutcome, LeagueProfile,
    MasteryKind, SyncStatus
)


@pytest.mark.asyncio
async def test_record_problem_updates_progress_xp_and_league(service, store):
    result = await service.record_problem(
        "u1", topic_id="fractions", difficulty=Difficulty.MEDIUM, mode=CompletionMode.INDEPENDENT
    )

    assert result.awarded is True
    assert result.gain.amount == 155
    assert result.gain.breakdown.first_topic == 50
    assert result.xp.total_xp == 155
    assert result.weekly_xp == 155
    assert result.current_streak == 1
    assert result.sync_pending is True

    progress = await store.load_progress("u1")
    assert progress.total_problems_completed == 1
    assert progress.problems_by_topic == {"fractions": 1}
    assert (await store.load_sync_state("u1")).pending is True


@pytest.mark.asyncio
async def test_failed_attempts_lower_accuracy(service):
    result = await service.record_problem(
        "u1", topic_id="fractions", difficulty=Difficulty.EASY,
        mode=CompletionMode.GUIDED, failed_attempts=3
    )

    # accuracy 40%: base 25, accuracy -13, first topic 50, then x0.75
    assert result.gain.breakdown.accuracy == -13
    assert result.gain.amount == 46


@pytest.mark.asyncio
async def test_guest_progress_is_never_pending_sync(service, store):
    result = await service.record_multiplayer(None, won=False)

    assert result.gain.amount == 25
    assert result.sync_pending is False
    assert (await store.load_xp(None)).total_xp == 25


@pytest.mark.asyncio
async def test_week_rollover_happens_before_weekly_xp(service, store, clock):
    stale_week = LeagueProfile(weekly_xp=500, week_start_date=date(2024, 5, 6))
    await store.save_league("u1", stale_week)

    result = await service.record_arithmetic("u1", correct_answers=12, streak=7)

    league = await store.load_league("u1", clock())
    assert result.weekly_xp == 145
    assert league.weekly_xp == 145
    assert league.current_league_id == LeagueId.SILVER
    assert league.week_start_date == date(2024, 5, 13)
    assert len(league.history) == 1


@pytest.mark.asyncio
async def test_mastery_bonus_paid_once(service):
    first = await service.record_mastery("u1", MasteryKind.TOPIC, "algebra")
    second = await service.record_mastery("u1", MasteryKind.TOPIC, "algebra")

    assert first.awarded is True
    assert first.gain.amount == 500
    assert second.awarded is False
    assert second.gain is None
    assert second.xp.total_xp == 500
    assert second.weekly_xp == 500
    assert second.xp.mastered_topics == ["algebra"]


@pytest.mark.asyncio
async def test_identities_are_isolated(service):
    await service.record_multiplayer("u1", won=True)

    assert (await service.get_xp_summary("u1")).total_xp == 100
    assert (await service.get_xp_summary("u2")).total_xp == 0
    assert (await service.get_xp_summary(None)).total_xp == 0


@pytest.mark.asyncio
async def test_concurrent_events_do_not_lose_updates(service):
    await asyncio.gather(*[service.record_multiplayer("u1", won=False) for _ in range(5)])

    summary = await service.get_xp_summary("u1")
    league = await service.get_league("u1")
    assert summary.total_xp == 125
    assert league.weekly_xp == 125


@pytest.mark.asyncio
async def test_get_progress_breaks_stale_streak(service, clock):
    await service.record_problem("u1", topic_id="algebra", difficulty=Difficulty.EASY, mode=CompletionMode.GUIDED)

    today = await service.get_progress("u1")
    assert today.progress.current_streak == 1
    assert today.today.problems_completed == 1
    assert today.week.problems == 1

    clock.current = clock.current + timedelta(days=2)
    later = await service.get_progress("u1")

    assert later.progress.current_streak == 0
    assert later.progress.longest_streak == 1
    assert later.today is None
    assert later.local_date == date(2024, 5, 17)


@pytest.mark.asyncio
async def test_get_league_reports_zone_and_time_remaining(service):
    league = await service.get_league("u1")

    assert league.league.id == LeagueId.BRONZE
    assert league.rank == 1
    assert league.zone == LeagueOutcome.PROMOTE
    assert league.time_remaining_label == "4d 11h"
    assert league.next_league_id == LeagueId.SILVER
    assert league.previous_league_id is None
    assert league.history == []


@pytest.mark.asyncio
async def test_sync_pushes_pending_progress(service, remote):
    await service.record_multiplayer("u1", won=True)

    result = await service.sync("u1")

    assert result.status == SyncStatus.SYNCED
    assert result.pending is False
    assert remote.snapshots["u1"].xp.total_xp == 100


@pytest.mark.asyncio
async def test_reset_restores_defaults(service, store):
    await service.record_problem("u1", topic_id="algebra", difficulty=Difficulty.HARD, mode=CompletionMode.INDEPENDENT)
    await service.record_mastery("u1", MasteryKind.SUBTOPIC, "linear")

    result = await service.reset("u1")

    assert result.identity == "u1"
    summary = await service.get_xp_summary("u1")
    assert summary.total_xp == 0
    assert summary.mastered_subtopics == []
    assert (await store.load_progress("u1")).total_problems_completed == 0
    assert (await service.get_league("u1")).weekly_xp == 0
    assert (await store.load_sync_state("u1")).pending is False


@pytest.mark.asyncio
async def test_week_rollover_uses_requested_rank(service, store):
    stale_week = LeagueProfile(current_league_id=LeagueId.SILVER, weekly_xp=300, week_start_date=date(2024, 5, 6))
    await store.save_league("u1", stale_week)

    league = await service.get_league("u1", rank=27)

    assert league.league.id == LeagueId.BRONZE
    assert league.history[0].final_rank == 27
    assert league.history[0].outcome == LeagueOutcome.DEMOTE


@pytest.mark.asyncio
async def test_failed_xp_write_leaves_problem_uncounted(service, store):
    with patch.object(store, "save_xp", AsyncMock(side_effect=SnapshotStoreError("down"))):
        with pytest.raises(SnapshotStoreError):
            await service.record_problem(
                "u1", topic_id="algebra", difficulty=Difficulty.EASY, mode=CompletionMode.GUIDED
            )

    assert (await store.load_progress("u1")).total_problems_completed == 0
    assert (await store.load_xp("u1")).total_xp == 0


@pytest.mark.asyncio
async def test_idle_identity_locks_are_released(service):
    await service.record_multiplayer("u1", won=False)
    await service.record_multiplayer(None, won=False)
    gc.collect()

    assert "u1" not in service._locks
    assert "guest" not in service._locks
