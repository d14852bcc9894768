"""
Domain models for the progression engine: XP, activity progress and league snapshots
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator


class Difficulty(str, Enum):
    """Problem difficulty enumeration"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class CompletionMode(str, Enum):
    """How a problem was completed"""
    GUIDED = "guided"            # step-by-step
    INDEPENDENT = "independent"  # full problem, no step guidance
    REVEALED = "revealed"        # answer was revealed before solving


class MasteryKind(str, Enum):
    """One-time mastery bonus kinds"""
    SUBTOPIC = "subtopic"
    TOPIC = "topic"


class LeagueId(str, Enum):
    """League ladder, lowest first"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"
    MASTER = "master"


class LeagueOutcome(str, Enum):
    """Result of a week in a league"""
    PROMOTE = "promote"
    DEMOTE = "demote"
    SAFE = "safe"


# ==================== XP ====================

class XPProfile(BaseModel):
    """Per-user progression record"""
    total_xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    mastered_subtopics: Set[str] = Field(default_factory=set)
    mastered_topics: Set[str] = Field(default_factory=set)
    first_problem_topics: Set[str] = Field(default_factory=set)

    @field_serializer("mastered_subtopics", "mastered_topics", "first_problem_topics")
    def _serialize_badges(self, value: Set[str]) -> List[str]:
        return sorted(value)


class RewardBreakdown(BaseModel):
    """Per-component XP breakdown shown to the learner"""
    base: int = 0
    accuracy: int = 0
    streak: int = 0
    steps: int = 0
    first_topic: int = 0


class RewardResult(BaseModel):
    """XP computed for a single event"""
    total: int
    breakdown: RewardBreakdown


class LevelUp(BaseModel):
    """Outcome of applying XP to a profile"""
    leveled_up: bool
    new_level: int


class XPGain(BaseModel):
    """Everything a caller needs to display an XP award"""
    amount: int
    breakdown: RewardBreakdown
    leveled_up: bool
    new_level: Optional[int] = None


# ==================== PROGRESS ====================

DAILY_STATS_LIMIT = 30

class DailyStats(BaseModel):
    """Activity for one local calendar day"""
    day: date
    problems_completed: int = Field(default=0, ge=0)
    time_spent_seconds: int = Field(default=0, ge=0)


class ProgressProfile(BaseModel):
    """Per-user activity record, decoupled from XP"""
    total_problems_completed: int = Field(default=0, ge=0)
    total_time_spent_seconds: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_practice_date: Optional[date] = None
    problems_by_topic: Dict[str, int] = Field(default_factory=dict)
    daily_stats: List[DailyStats] = Field(default_factory=list)

    @field_validator("daily_stats")
    @classmethod
    def _normalize_daily_stats(cls, value: List[DailyStats]) -> List[DailyStats]:
        # One entry per day, newest first, DAILY_STATS_LIMIT days kept
        by_day: Dict[date, DailyStats] = {}
        for stats in value:
            seen = by_day.get(stats.day)
            if seen is not None:
                stats = DailyStats(
                    day=stats.day,
                    problems_completed=max(seen.problems_completed, stats.problems_completed),
                    time_spent_seconds=max(seen.time_spent_seconds, stats.time_spent_seconds)
                )
            by_day[stats.day] = stats
        return sorted(by_day.values(), key=lambda d: d.day, reverse=True)[:DAILY_STATS_LIMIT]

    @model_validator(mode="after")
    def _longest_covers_current(self):
        if self.longest_streak < self.current_streak:
            self.longest_streak = self.current_streak
        return self


class PeriodStats(BaseModel):
    """Aggregated activity over a window of days"""
    problems: int
    time_minutes: int


# ==================== LEAGUES ====================

class League(BaseModel):
    """Static definition of a league on the ladder"""
    id: LeagueId
    name: str
    icon: str
    color: str
    position: int
    min_rank: int = 1
    max_rank: int = 30
    promotion_zone: int
    demotion_zone: int
    safe_zone: int


class LeagueHistoryEntry(BaseModel):
    """Audit record of a finished week"""
    league_id: LeagueId
    week_start: date
    final_rank: int
    outcome: LeagueOutcome


class LeagueProfile(BaseModel):
    """Per-user weekly competitive state"""
    current_league_id: LeagueId = LeagueId.BRONZE
    weekly_xp: int = Field(default=0, ge=0)
    week_start_date: date
    last_promotion_check: Optional[datetime] = None
    history: List[LeagueHistoryEntry] = Field(default_factory=list)


class TimeRemaining(BaseModel):
    """Time left in the current competitive week"""
    days: int
    hours: int
    minutes: int


# ==================== SNAPSHOTS ====================

class ProgressSnapshot(BaseModel):
    """The progress + XP pair exchanged with the remote snapshot service"""
    progress: ProgressProfile = Field(default_factory=ProgressProfile)
    xp: XPProfile = Field(default_factory=XPProfile)


class SyncState(BaseModel):
    """Bookkeeping for reconciling the local snapshot with the remote one"""
    pending: bool = False
    failures: int = Field(default=0, ge=0)
    last_attempt_at: Optional[datetime] = None
    last_synced_at: Optional[datetime] = None


class SyncStatus(str, Enum):
    """Outcome of a reconciliation attempt"""
    SYNCED = "synced"      # merged and pushed
    PENDING = "pending"    # merged locally, push did not land
    OFFLINE = "offline"    # remote could not be fetched
    BACKOFF = "backoff"    # skipped, retry delay not yet elapsed
    SKIPPED = "skipped"    # guest identity, nothing to sync with


class SyncResult(BaseModel):
    """Sync status surfaced to the client as a non-blocking indicator"""
    status: SyncStatus
    pending: bool
    failures: int = 0
    retry_in_seconds: Optional[float] = None
    last_synced_at: Optional[datetime] = None
