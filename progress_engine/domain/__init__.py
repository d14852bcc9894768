# progress_engine/domain/__init__.py
"""
Domain package for the progression engine
Contains snapshot models and the pure XP, league, progress and merge logic
"""

from .models import (
    Difficulty, CompletionMode, MasteryKind, LeagueId, LeagueOutcome,
    XPProfile, RewardBreakdown, RewardResult, LevelUp, XPGain,
    DailyStats, ProgressProfile, PeriodStats,
    League, LeagueHistoryEntry, LeagueProfile, TimeRemaining,
    ProgressSnapshot, SyncState, SyncStatus, SyncResult
)
from .xp_curve import required_xp, level_from_xp, level_progress, xp_to_next_level, level_title, level_info
from .merge import merge_progress, merge_xp, merge_snapshots

__all__ = [
    "Difficulty", "CompletionMode", "MasteryKind", "LeagueId", "LeagueOutcome",
    "XPProfile", "RewardBreakdown", "RewardResult", "LevelUp", "XPGain",
    "DailyStats", "ProgressProfile", "PeriodStats",
    "League", "LeagueHistoryEntry", "LeagueProfile", "TimeRemaining",
    "ProgressSnapshot", "SyncState", "SyncStatus", "SyncResult",
    "required_xp", "level_from_xp", "level_progress", "xp_to_next_level",
    "level_title", "level_info",
    "merge_progress", "merge_xp", "merge_snapshots"
]
