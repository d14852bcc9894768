"""
Progression service: per-identity load, reduce and save cycle

Every event runs under the identity's lock. The league week rollover is
checked and persisted first, so weekly XP never lands in a closed week.
Snapshots are always read from the store for the identity of the call; an
identity change therefore never leaks another user's cached state.
"""
import asyncio
from datetime import date, datetime
from typing import Optional, Tuple
from weakref import WeakValueDictionary
from zoneinfo import ZoneInfo

import structlog

from progress_engine.core.config import settings
from progress_engine.domain import leagues, progress, rewards
from progress_engine.domain.models import (
    CompletionMode, Difficulty, LeagueProfile, MasteryKind, SyncResult,
    XPGain, XPProfile
)
from progress_engine.domain.xp_curve import level_info
from progress_engine.models.progression import (
    LeagueResponse, ProgressResponse, ResetResponse, XPAwardResponse,
    XPSummaryResponse
)
from progress_engine.services.redis_client import LocalSnapshotStore, is_guest, namespace, snapshot_store
from progress_engine.services.sync_service import SyncService

logger = structlog.get_logger(__name__)


class ProgressionService:
    """Apply learning events to an identity's XP, progress and league snapshots"""

    def __init__(
        self,
        store: Optional[LocalSnapshotStore] = None,
        sync: Optional[SyncService] = None,
        timezone: Optional[str] = None
    ):
        self.store = store or snapshot_store
        self.sync_service = sync or SyncService(self.store)
        self.tz = ZoneInfo(timezone or settings.TIMEZONE)
        # Dropped once no coroutine holds or waits on them
        self._locks: "WeakValueDictionary[str, asyncio.Lock]" = WeakValueDictionary()

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def _lock(self, identity: Optional[str]) -> asyncio.Lock:
        key = namespace(identity)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _local_date(self, now: datetime) -> date:
        return now.astimezone(self.tz).date()

    # ==================== HELPERS ====================

    async def _current_league(
        self,
        identity: Optional[str],
        now: datetime,
        rank: int = leagues.DEFAULT_RANK
    ) -> LeagueProfile:
        """Load the league snapshot, rolling the week over at the given rank if it has closed"""
        league = await self.store.load_league(identity, now)
        league, rolled = leagues.check_week_reset(league, now, rank)
        if rolled:
            await self.store.save_league(identity, league)
        return league

    async def _credit(
        self,
        identity: Optional[str],
        xp: XPProfile,
        gain: XPGain,
        now: datetime
    ) -> Tuple[int, bool]:
        """Persist an awarded XP profile and credit the week; returns (weekly_xp, sync_pending)"""
        league = await self._current_league(identity, now)
        league = leagues.add_weekly_xp(league, gain.amount)

        await self.store.save_xp(identity, xp)
        await self.store.save_league(identity, league)

        # Guests have no remote copy to reconcile with
        sync_pending = not is_guest(identity)
        if sync_pending:
            await self.store.mark_sync_pending(identity)

        logger.info("XP awarded",
                    identity=namespace(identity),
                    amount=gain.amount,
                    total_xp=xp.total_xp,
                    level=xp.level,
                    weekly_xp=league.weekly_xp)
        return league.weekly_xp, sync_pending

    @staticmethod
    def summarize_xp(xp: XPProfile) -> XPSummaryResponse:
        return XPSummaryResponse(
            **level_info(xp.total_xp),
            mastered_subtopics=sorted(xp.mastered_subtopics),
            mastered_topics=sorted(xp.mastered_topics),
            first_problem_topics=sorted(xp.first_problem_topics)
        )

    # ==================== EVENTS ====================

    async def record_problem(
        self,
        identity: Optional[str],
        topic_id: str,
        difficulty: Difficulty,
        mode: CompletionMode,
        accuracy: Optional[float] = None,
        failed_attempts: int = 0,
        steps_completed: int = 0,
        time_spent_seconds: int = 0
    ) -> XPAwardResponse:
        """
        Record a solved problem and award its XP

        The reward uses the streak including today's practice. XP and the
        league week are written before the progress snapshot, so a problem is
        never counted without its XP.
        """
        if accuracy is None:
            accuracy = rewards.accuracy_from_attempts(failed_attempts)

        async with self._lock(identity):
            now = self.now()
            today = self._local_date(now)

            current = await self.store.load_progress(identity)
            current = progress.complete_problem(current, topic_id, today, time_spent_seconds)

            xp = await self.store.load_xp(identity)
            xp, gain = rewards.award_problem(
                xp,
                topic_id=topic_id,
                accuracy=accuracy,
                difficulty=difficulty,
                streak_days=current.current_streak,
                mode=mode,
                steps_completed=steps_completed
            )

            weekly_xp, sync_pending = await self._credit(identity, xp, gain, now)
            await self.store.save_progress(identity, current)

        return XPAwardResponse(
            gain=gain,
            xp=self.summarize_xp(xp),
            weekly_xp=weekly_xp,
            current_streak=current.current_streak,
            sync_pending=sync_pending
        )

    async def record_arithmetic(
        self,
        identity: Optional[str],
        correct_answers: int,
        streak: int
    ) -> XPAwardResponse:
        async with self._lock(identity):
            now = self.now()
            xp = await self.store.load_xp(identity)
            xp, gain = rewards.award_arithmetic(xp, correct_answers, streak)
            weekly_xp, sync_pending = await self._credit(identity, xp, gain, now)

        return XPAwardResponse(
            gain=gain,
            xp=self.summarize_xp(xp),
            weekly_xp=weekly_xp,
            sync_pending=sync_pending
        )

    async def record_multiplayer(self, identity: Optional[str], won: bool) -> XPAwardResponse:
        async with self._lock(identity):
            now = self.now()
            xp = await self.store.load_xp(identity)
            xp, gain = rewards.award_multiplayer(xp, won)
            weekly_xp, sync_pending = await self._credit(identity, xp, gain, now)

        return XPAwardResponse(
            gain=gain,
            xp=self.summarize_xp(xp),
            weekly_xp=weekly_xp,
            sync_pending=sync_pending
        )

    async def record_mastery(
        self,
        identity: Optional[str],
        kind: MasteryKind,
        mastery_id: str
    ) -> XPAwardResponse:
        """Pay a one-time mastery bonus; a repeat is reported with awarded=False"""
        async with self._lock(identity):
            now = self.now()
            xp = await self.store.load_xp(identity)
            xp, gain = rewards.award_mastery(xp, kind, mastery_id)

            if gain is None:
                league = await self._current_league(identity, now)
                sync_state = await self.store.load_sync_state(identity)
                return XPAwardResponse(
                    awarded=False,
                    xp=self.summarize_xp(xp),
                    weekly_xp=league.weekly_xp,
                    sync_pending=sync_state.pending
                )

            weekly_xp, sync_pending = await self._credit(identity, xp, gain, now)

        return XPAwardResponse(
            gain=gain,
            xp=self.summarize_xp(xp),
            weekly_xp=weekly_xp,
            sync_pending=sync_pending
        )

    # ==================== QUERIES ====================

    async def get_xp_summary(self, identity: Optional[str]) -> XPSummaryResponse:
        xp = await self.store.load_xp(identity)
        return self.summarize_xp(xp)

    async def get_progress(self, identity: Optional[str]) -> ProgressResponse:
        """Progress snapshot with the streak broken if a day was skipped"""
        async with self._lock(identity):
            today = self._local_date(self.now())
            current = await self.store.load_progress(identity)
            refreshed = progress.refresh_streak(current, today)
            if refreshed != current:
                logger.info("Streak broken",
                            identity=namespace(identity),
                            last_practice_date=str(current.last_practice_date),
                            previous_streak=current.current_streak)
                await self.store.save_progress(identity, refreshed)

        return ProgressResponse(
            progress=refreshed,
            today=progress.today_stats(refreshed, today),
            week=progress.week_stats(refreshed, today),
            local_date=today
        )

    async def get_league(self, identity: Optional[str], rank: int = leagues.DEFAULT_RANK) -> LeagueResponse:
        """League standing after applying any pending week rollover"""
        async with self._lock(identity):
            now = self.now()
            league_profile = await self._current_league(identity, now, rank)

        league = leagues.get_league(league_profile.current_league_id)
        promoted = leagues.next_league(league.id)
        demoted = leagues.previous_league(league.id)

        return LeagueResponse(
            league=league,
            weekly_xp=league_profile.weekly_xp,
            rank=rank,
            zone=leagues.promotion_status(league_profile, rank),
            week_start_date=league_profile.week_start_date,
            time_remaining=leagues.time_remaining_in_week(now),
            time_remaining_label=leagues.format_time_remaining(now),
            next_league_id=promoted.id if promoted else None,
            previous_league_id=demoted.id if demoted else None,
            last_promotion_check=league_profile.last_promotion_check,
            history=league_profile.history
        )

    # ==================== SYNC / RESET ====================

    async def sync(self, identity: Optional[str], force: bool = False) -> SyncResult:
        async with self._lock(identity):
            return await self.sync_service.reconcile(identity, self.now(), force=force)

    async def reset(self, identity: Optional[str]) -> ResetResponse:
        """Destructive reset of every local snapshot of the identity"""
        async with self._lock(identity):
            now = self.now()
            await self.store.clear(identity)
            await self.store.save_xp(identity, rewards.reset_xp())
            await self.store.save_progress(identity, progress.reset_progress())
            await self.store.save_league(identity, leagues.reset_league(now))

        logger.warning("Progress reset", identity=namespace(identity))
        return ResetResponse(identity=namespace(identity), reset_at=now)


# Global service instance
progression_service = ProgressionService()
