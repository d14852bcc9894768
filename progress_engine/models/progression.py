"""
Pydantic models for XP, progress, league and sync endpoints
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime

from progress_engine.domain.models import (
    CompletionMode, DailyStats, Difficulty, League, LeagueHistoryEntry,
    LeagueId, LeagueOutcome, MasteryKind, PeriodStats, ProgressProfile,
    SyncResult, TimeRemaining, XPGain
)


# ==================== XP REQUESTS ====================

class ProblemCompletedRequest(BaseModel):
    """A solved practice problem"""
    topic_id: str = Field(..., min_length=1)
    difficulty: Difficulty = Difficulty.MEDIUM
    mode: CompletionMode = CompletionMode.INDEPENDENT
    accuracy: Optional[float] = Field(
        default=None, ge=0, le=100,
        description="Accuracy percentage; derived from failed_attempts when omitted"
    )
    failed_attempts: int = Field(default=0, ge=0)
    steps_completed: int = Field(default=0, ge=0)
    time_spent_seconds: int = Field(default=0, ge=0, description="Capped at 600 per problem")


class ArithmeticCompletedRequest(BaseModel):
    """A finished mental-math speed drill"""
    correct_answers: int = Field(..., ge=0)
    streak: int = Field(default=0, ge=0, description="Longest run of consecutive correct answers")


class MultiplayerCompletedRequest(BaseModel):
    """A finished multiplayer match"""
    won: bool


class MasteryRequest(BaseModel):
    """A mastered subtopic or topic"""
    kind: MasteryKind
    mastery_id: str = Field(..., min_length=1)


# ==================== XP RESPONSES ====================

class XPSummaryResponse(BaseModel):
    """User XP summary"""
    total_xp: int
    level: int
    title: str
    xp_for_current_level: int
    xp_for_next_level: int
    xp_to_next_level: int
    progress: float = Field(..., description="Fraction of the current level completed (0-1)")
    mastered_subtopics: List[str]
    mastered_topics: List[str]
    first_problem_topics: List[str]


class XPAwardResponse(BaseModel):
    """Result of an XP-earning event"""
    awarded: bool = True
    gain: Optional[XPGain] = None
    xp: XPSummaryResponse
    weekly_xp: int
    current_streak: Optional[int] = None
    sync_pending: bool


# ==================== PROGRESS ====================

class ProgressResponse(BaseModel):
    """Activity progress with today's and this week's totals"""
    progress: ProgressProfile
    today: Optional[DailyStats] = None
    week: PeriodStats
    local_date: date


# ==================== LEAGUE ====================

class LeagueResponse(BaseModel):
    """Current league standing"""
    league: League
    weekly_xp: int
    rank: int
    zone: LeagueOutcome
    week_start_date: date
    time_remaining: TimeRemaining
    time_remaining_label: str
    next_league_id: Optional[LeagueId] = None
    previous_league_id: Optional[LeagueId] = None
    last_promotion_check: Optional[datetime] = None
    history: List[LeagueHistoryEntry]


# ==================== SYNC / RESET ====================

class SyncRequest(BaseModel):
    """Reconciliation trigger"""
    force: bool = Field(default=False, description="Ignore the retry delay")


class SyncResponse(SyncResult):
    """Sync status shown as a non-blocking indicator"""
    pass


class ResetResponse(BaseModel):
    """Explicit reset confirmation"""
    identity: str
    reset: bool = True
    reset_at: datetime
