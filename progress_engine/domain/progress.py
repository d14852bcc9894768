"""
Activity progress: problem counts, practice time, daily streak and per-day stats
"""

from datetime import date, datetime, timedelta
from typing import List, Optional

from progress_engine.domain.models import DAILY_STATS_LIMIT, DailyStats, PeriodStats, ProgressProfile

# A problem left open longer than this only counts for this long
MAX_TIME_PER_PROBLEM_SECONDS = 600

WEEK_STATS_DAYS = 7


def elapsed_seconds(started_at: Optional[datetime], finished_at: datetime) -> int:
    """Whole seconds spent on a problem, capped per problem"""
    if started_at is None:
        return 0
    elapsed = int((finished_at - started_at).total_seconds())
    return cap_time_spent(elapsed)


def cap_time_spent(seconds: int) -> int:
    return min(max(0, seconds), MAX_TIME_PER_PROBLEM_SECONDS)


def trim_daily_stats(stats: List[DailyStats]) -> List[DailyStats]:
    """Newest first, most recent DAILY_STATS_LIMIT days only"""
    return sorted(stats, key=lambda d: d.day, reverse=True)[:DAILY_STATS_LIMIT]


def _next_streak(profile: ProgressProfile, today: date) -> int:
    last = profile.last_practice_date
    if last == today:
        return profile.current_streak
    if last == today - timedelta(days=1):
        return profile.current_streak + 1
    return 1


def complete_problem(
    profile: ProgressProfile,
    topic_id: str,
    today: date,
    time_spent_seconds: int = 0
) -> ProgressProfile:
    """
    Record a completed problem

    Args:
        profile: Current progress snapshot
        topic_id: Topic the problem belongs to
        today: Local calendar day of the completion
        time_spent_seconds: Time on the problem, capped before accumulating

    Returns:
        New progress snapshot
    """
    time_spent = cap_time_spent(time_spent_seconds)

    stats = [s for s in profile.daily_stats if s.day != today]
    existing = next((s for s in profile.daily_stats if s.day == today), None)
    if existing:
        todays = existing.model_copy(update={
            "problems_completed": existing.problems_completed + 1,
            "time_spent_seconds": existing.time_spent_seconds + time_spent,
        })
    else:
        todays = DailyStats(day=today, problems_completed=1, time_spent_seconds=time_spent)
    stats.append(todays)

    current_streak = _next_streak(profile, today)

    problems_by_topic = dict(profile.problems_by_topic)
    problems_by_topic[topic_id] = problems_by_topic.get(topic_id, 0) + 1

    return profile.model_copy(update={
        "total_problems_completed": profile.total_problems_completed + 1,
        "total_time_spent_seconds": profile.total_time_spent_seconds + time_spent,
        "current_streak": current_streak,
        "longest_streak": max(profile.longest_streak, current_streak),
        "last_practice_date": today,
        "problems_by_topic": problems_by_topic,
        "daily_stats": trim_daily_stats(stats),
    })


def refresh_streak(profile: ProgressProfile, today: date) -> ProgressProfile:
    """Break the streak if a calendar day was skipped since the last practice"""
    last = profile.last_practice_date
    if last is None or last >= today - timedelta(days=1):
        return profile
    if profile.current_streak == 0:
        return profile
    return profile.model_copy(update={"current_streak": 0})


def today_stats(profile: ProgressProfile, today: date) -> Optional[DailyStats]:
    return next((s for s in profile.daily_stats if s.day == today), None)


def week_stats(profile: ProgressProfile, today: date) -> PeriodStats:
    """Problems and minutes over the last seven days"""
    cutoff = today - timedelta(days=WEEK_STATS_DAYS)
    recent = [s for s in profile.daily_stats if s.day >= cutoff]

    return PeriodStats(
        problems=sum(s.problems_completed for s in recent),
        time_minutes=round(sum(s.time_spent_seconds for s in recent) / 60)
    )


def reset_progress() -> ProgressProfile:
    return ProgressProfile()
