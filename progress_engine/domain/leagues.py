"""
Weekly league ladder and its promotion/demotion state machine

Weeks run Monday 00:00:00 to Sunday 23:59:59 in local time. All functions
take the current time as a parameter; none of them read the clock.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Tuple

import structlog

from progress_engine.domain.models import (
    League, LeagueHistoryEntry, LeagueId, LeagueOutcome, LeagueProfile,
    TimeRemaining
)

logger = structlog.get_logger(__name__)

HISTORY_LIMIT = 10

# Rank used while only the local learner is tracked
DEFAULT_RANK = 1

LEAGUES: List[League] = [
    League(id=LeagueId.BRONZE, name="Bronze", icon="🥉", color="#CD7F32", position=0,
           promotion_zone=10, demotion_zone=0, safe_zone=20),
    League(id=LeagueId.SILVER, name="Silver", icon="🥈", color="#C0C0C0", position=1,
           promotion_zone=10, demotion_zone=5, safe_zone=15),
    League(id=LeagueId.GOLD, name="Gold", icon="🥇", color="#FFD700", position=2,
           promotion_zone=10, demotion_zone=5, safe_zone=15),
    League(id=LeagueId.PLATINUM, name="Platinum", icon="💎", color="#E5E4E2", position=3,
           promotion_zone=10, demotion_zone=5, safe_zone=15),
    League(id=LeagueId.DIAMOND, name="Diamond", icon="💠", color="#B9F2FF", position=4,
           promotion_zone=10, demotion_zone=5, safe_zone=15),
    League(id=LeagueId.MASTER, name="Master", icon="👑", color="#9333EA", position=5,
           promotion_zone=0, demotion_zone=5, safe_zone=25),
]

_LEAGUES_BY_ID: Dict[LeagueId, League] = {league.id: league for league in LEAGUES}

DEFAULT_LEAGUE = LEAGUES[0]


# ==================== LADDER ====================

def get_league(league_id: LeagueId) -> League:
    """Look up a league, falling back to the bottom of the ladder for unknown ids"""
    try:
        return _LEAGUES_BY_ID[LeagueId(league_id)]
    except ValueError:
        logger.warning("Unknown league id, using default", league_id=str(league_id))
        return DEFAULT_LEAGUE


def next_league(league_id: LeagueId) -> Optional[League]:
    position = get_league(league_id).position
    if position >= len(LEAGUES) - 1:
        return None
    return LEAGUES[position + 1]


def previous_league(league_id: LeagueId) -> Optional[League]:
    position = get_league(league_id).position
    if position <= 0:
        return None
    return LEAGUES[position - 1]


def classify_rank(league: League, rank: int) -> LeagueOutcome:
    """
    Zone a final rank falls into

    A zero-sized promotion zone (top league) never promotes and a zero-sized
    demotion zone (bottom league) never demotes.
    """
    if league.promotion_zone > 0 and rank <= league.promotion_zone:
        return LeagueOutcome.PROMOTE
    if league.demotion_zone > 0 and rank > league.max_rank - league.demotion_zone:
        return LeagueOutcome.DEMOTE
    return LeagueOutcome.SAFE


# ==================== WEEK CALENDAR ====================

def current_week_start(now: datetime) -> datetime:
    """Most recent Monday 00:00:00 at or before now, in now's timezone"""
    monday = now - timedelta(days=now.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)


def week_end(now: datetime) -> datetime:
    """Sunday 23:59:59.999999 closing the week that contains now"""
    return current_week_start(now) + timedelta(days=7) - timedelta(microseconds=1)


def time_remaining_in_week(now: datetime) -> TimeRemaining:
    remaining = max(timedelta(0), week_end(now) - now)
    total_minutes = int(remaining.total_seconds() // 60)

    return TimeRemaining(
        days=remaining.days,
        hours=(total_minutes // 60) % 24,
        minutes=total_minutes % 60
    )


def format_time_remaining(now: datetime) -> str:
    remaining = time_remaining_in_week(now)
    if remaining.days > 0:
        return f"{remaining.days}d {remaining.hours}h"
    if remaining.hours > 0:
        return f"{remaining.hours}h {remaining.minutes}m"
    return f"{remaining.minutes}m"


def week_boundary(now: datetime, stored_week_start: date) -> bool:
    """Whether the stored week has closed and a rollover is due"""
    if isinstance(stored_week_start, datetime):
        stored_week_start = stored_week_start.date()
    return stored_week_start < current_week_start(now).date()


# ==================== PROFILE TRANSITIONS ====================

def new_league_profile(now: datetime) -> LeagueProfile:
    """Default league state for a learner seen for the first time"""
    return LeagueProfile(
        current_league_id=DEFAULT_LEAGUE.id,
        weekly_xp=0,
        week_start_date=current_week_start(now).date()
    )


def reset_league(now: datetime) -> LeagueProfile:
    return new_league_profile(now)


def promotion_status(profile: LeagueProfile, rank: int = DEFAULT_RANK) -> LeagueOutcome:
    """Zone the learner currently sits in, before the week closes"""
    return classify_rank(get_league(profile.current_league_id), rank)


def process_week_end(
    profile: LeagueProfile,
    now: datetime,
    rank: int = DEFAULT_RANK
) -> LeagueProfile:
    """
    Close the stored week and open the current one

    The league moves at most one step. The closed week is appended to the
    history, which keeps only the most recent HISTORY_LIMIT entries.
    """
    league = get_league(profile.current_league_id)
    outcome = classify_rank(league, rank)

    new_league_id = league.id
    if outcome == LeagueOutcome.PROMOTE:
        promoted = next_league(league.id)
        if promoted:
            new_league_id = promoted.id
    elif outcome == LeagueOutcome.DEMOTE:
        demoted = previous_league(league.id)
        if demoted:
            new_league_id = demoted.id

    entry = LeagueHistoryEntry(
        league_id=league.id,
        week_start=profile.week_start_date,
        final_rank=rank,
        outcome=outcome
    )

    logger.info("League week processed",
                league=league.id.value,
                new_league=new_league_id.value,
                rank=rank,
                outcome=outcome.value,
                weekly_xp=profile.weekly_xp)

    return profile.model_copy(update={
        "current_league_id": new_league_id,
        "weekly_xp": 0,
        "week_start_date": current_week_start(now).date(),
        "last_promotion_check": now,
        "history": (list(profile.history) + [entry])[-HISTORY_LIMIT:],
    })


def check_week_reset(
    profile: LeagueProfile,
    now: datetime,
    rank: int = DEFAULT_RANK
) -> Tuple[LeagueProfile, bool]:
    """Roll the week over if it has closed; returns the profile and whether it rolled"""
    if not week_boundary(now, profile.week_start_date):
        return profile, False
    return process_week_end(profile, now, rank), True


def add_weekly_xp(profile: LeagueProfile, amount: int) -> LeagueProfile:
    """
    Credit XP to the current week

    Callers must run check_week_reset first so XP never lands in a week that
    has already closed.
    """
    return profile.model_copy(update={"weekly_xp": profile.weekly_xp + max(0, amount)})
