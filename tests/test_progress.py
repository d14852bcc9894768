"""Tests for the activity progress reducer."""
from datetime import date, datetime, timedelta, timezone

from progress_engine.domain.models import DailyStats, ProgressProfile
from progress_engine.domain.progress import (
    DAILY_STATS_LIMIT,
    MAX_TIME_PER_PROBLEM_SECONDS,
    complete_problem,
    elapsed_seconds,
    refresh_streak,
    reset_progress,
    today_stats,
    week_stats,
)

TODAY = date(2024, 5, 15)


def test_first_problem_starts_streak():
    profile = complete_problem(ProgressProfile(), "fractions", TODAY, time_spent_seconds=45)

    assert profile.total_problems_completed == 1
    assert profile.total_time_spent_seconds == 45
    assert profile.current_streak == 1
    assert profile.longest_streak == 1
    assert profile.last_practice_date == TODAY
    assert profile.problems_by_topic == {"fractions": 1}
    assert profile.daily_stats == [DailyStats(day=TODAY, problems_completed=1, time_spent_seconds=45)]


def test_consecutive_day_extends_streak():
    profile = ProgressProfile(current_streak=3, longest_streak=3, last_practice_date=TODAY - timedelta(days=1))

    profile = complete_problem(profile, "algebra", TODAY)

    assert profile.current_streak == 4
    assert profile.longest_streak == 4


def test_same_day_keeps_streak():
    profile = ProgressProfile(current_streak=3, longest_streak=8, last_practice_date=TODAY)

    profile = complete_problem(profile, "algebra", TODAY)

    assert profile.current_streak == 3
    assert profile.longest_streak == 8


def test_skipped_day_restarts_streak():
    profile = ProgressProfile(current_streak=6, longest_streak=6, last_practice_date=TODAY - timedelta(days=2))

    profile = complete_problem(profile, "algebra", TODAY)

    assert profile.current_streak == 1
    assert profile.longest_streak == 6


def test_time_spent_is_capped_per_problem():
    profile = complete_problem(ProgressProfile(), "geometry", TODAY, time_spent_seconds=3600)
    profile = complete_problem(profile, "geometry", TODAY, time_spent_seconds=-20)

    assert profile.total_time_spent_seconds == MAX_TIME_PER_PROBLEM_SECONDS
    assert profile.daily_stats[0].problems_completed == 2
    assert profile.problems_by_topic == {"geometry": 2}


def test_elapsed_seconds():
    started = datetime(2024, 5, 15, 10, 0, tzinfo=timezone.utc)

    assert elapsed_seconds(None, started) == 0
    assert elapsed_seconds(started, started + timedelta(minutes=5)) == 300
    assert elapsed_seconds(started, started + timedelta(minutes=20)) == MAX_TIME_PER_PROBLEM_SECONDS
    assert elapsed_seconds(started, started - timedelta(minutes=1)) == 0


def test_daily_stats_newest_first_and_bounded():
    profile = ProgressProfile()
    start = TODAY - timedelta(days=40)
    for offset in range(41):
        profile = complete_problem(profile, "drill", start + timedelta(days=offset))

    assert len(profile.daily_stats) == DAILY_STATS_LIMIT
    assert profile.daily_stats[0].day == TODAY
    assert profile.daily_stats[-1].day == TODAY - timedelta(days=DAILY_STATS_LIMIT - 1)
    assert profile.current_streak == 41
    assert profile.total_problems_completed == 41


def test_refresh_streak_breaks_after_missed_day():
    profile = ProgressProfile(current_streak=5, longest_streak=9, last_practice_date=TODAY - timedelta(days=2))

    refreshed = refresh_streak(profile, TODAY)

    assert refreshed.current_streak == 0
    assert refreshed.longest_streak == 9


def test_refresh_streak_keeps_yesterdays_streak():
    profile = ProgressProfile(current_streak=5, longest_streak=5, last_practice_date=TODAY - timedelta(days=1))

    assert refresh_streak(profile, TODAY) == profile
    assert refresh_streak(ProgressProfile(), TODAY) == ProgressProfile()


def test_today_and_week_stats():
    profile = ProgressProfile(daily_stats=[
        DailyStats(day=TODAY, problems_completed=2, time_spent_seconds=90),
        DailyStats(day=TODAY - timedelta(days=5), problems_completed=1, time_spent_seconds=30),
        DailyStats(day=TODAY - timedelta(days=14), problems_completed=5, time_spent_seconds=600),
    ])

    assert today_stats(profile, TODAY).problems_completed == 2
    assert today_stats(profile, TODAY - timedelta(days=1)) is None

    week = week_stats(profile, TODAY)
    assert week.problems == 3
    assert week.time_minutes == 2


def test_reset_progress():
    assert reset_progress() == ProgressProfile()
