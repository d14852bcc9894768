"""
Monotonic merge of local and remote progress snapshots

Every counter takes the maximum of both sides and every badge set takes the
union, so merging never loses progress either side has made. The merge is
symmetric and idempotent, which makes repeated or retried reconciliation safe.
"""

from typing import Dict, List, Optional

from progress_engine.domain.models import (
    DailyStats, ProgressProfile, ProgressSnapshot, XPProfile
)
from progress_engine.domain.xp_curve import level_from_xp


def _streak_source(local: ProgressProfile, remote: ProgressProfile) -> ProgressProfile:
    """
    Snapshot whose streak anchor is newer

    Streak and last practice date always come from the same side. On a tie
    (same date, or neither has practiced) the longer streak wins.
    """
    if local.last_practice_date != remote.last_practice_date:
        if local.last_practice_date is None:
            return remote
        if remote.last_practice_date is None:
            return local
        return local if local.last_practice_date > remote.last_practice_date else remote

    return local if local.current_streak >= remote.current_streak else remote


def _merge_counts(local: Dict[str, int], remote: Dict[str, int]) -> Dict[str, int]:
    return {
        key: max(local.get(key, 0), remote.get(key, 0))
        for key in sorted(set(local) | set(remote))
    }


def _merge_daily_stats(local: ProgressProfile, remote: ProgressProfile) -> List[DailyStats]:
    # ProgressProfile folds days seen on both sides into their per-field maximum
    return list(local.daily_stats) + list(remote.daily_stats)


def merge_progress(
    local: ProgressProfile,
    remote: Optional[ProgressProfile]
) -> ProgressProfile:
    """
    Merge two independently-evolved progress snapshots

    An absent remote snapshot is treated as all defaults, so the local one wins.
    """
    if remote is None:
        remote = ProgressProfile()

    streak_source = _streak_source(local, remote)

    return ProgressProfile(
        total_problems_completed=max(local.total_problems_completed, remote.total_problems_completed),
        total_time_spent_seconds=max(local.total_time_spent_seconds, remote.total_time_spent_seconds),
        current_streak=streak_source.current_streak,
        longest_streak=max(local.longest_streak, remote.longest_streak, streak_source.current_streak),
        last_practice_date=streak_source.last_practice_date,
        problems_by_topic=_merge_counts(local.problems_by_topic, remote.problems_by_topic),
        daily_stats=_merge_daily_stats(local, remote)
    )


def merge_xp(local: XPProfile, remote: Optional[XPProfile]) -> XPProfile:
    """Merge two XP snapshots; the level is recomputed, never merged"""
    if remote is None:
        remote = XPProfile()

    total_xp = max(local.total_xp, remote.total_xp)

    return XPProfile(
        total_xp=total_xp,
        level=level_from_xp(total_xp),
        mastered_subtopics=local.mastered_subtopics | remote.mastered_subtopics,
        mastered_topics=local.mastered_topics | remote.mastered_topics,
        first_problem_topics=local.first_problem_topics | remote.first_problem_topics
    )


def merge_snapshots(
    local: ProgressSnapshot,
    remote: Optional[ProgressSnapshot]
) -> ProgressSnapshot:
    return ProgressSnapshot(
        progress=merge_progress(local.progress, remote.progress if remote is not None else None),
        xp=merge_xp(local.xp, remote.xp if remote is not None else None)
    )
