"""
Reward calculator: converts learning events into XP and applies XP to a profile
"""

import math
from typing import Iterable, Optional, Tuple

import structlog

from progress_engine.domain.models import (
    CompletionMode, Difficulty, LevelUp, MasteryKind, RewardBreakdown,
    RewardResult, XPGain, XPProfile
)
from progress_engine.domain.xp_curve import level_from_xp

logger = structlog.get_logger(__name__)


# Base XP rewards
XP_REWARDS = {
    # Practice
    "problem_complete": 25,
    "step_complete": 5,

    # Multiplayer
    "multiplayer_win": 100,
    "multiplayer_participation": 25,

    # Mental math speed drills
    "arithmetic_correct": 10,
    "arithmetic_streak_5": 25,
    "arithmetic_streak_10": 75,

    # One-time bonuses
    "first_problem_in_topic": 50,
    "subtopic_mastery": 200,
    "topic_mastery": 500,
}

DIFFICULTY_MULTIPLIERS = {
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 1.5,
    Difficulty.HARD: 2.0,
}

# (minimum accuracy %, multiplier), highest breakpoint first
ACCURACY_MULTIPLIERS = [
    (100, 2.0),
    (90, 1.5),
    (80, 1.2),
    (70, 1.0),
    (60, 0.8),
]
ACCURACY_FLOOR_MULTIPLIER = 0.5

# (minimum streak days, multiplier), highest breakpoint first
STREAK_MULTIPLIERS = [
    (100, 2.0),
    (60, 1.75),
    (30, 1.5),
    (14, 1.4),
    (7, 1.25),
    (3, 1.1),
]

COMPLETION_MODE_MULTIPLIERS = {
    CompletionMode.GUIDED: 0.75,
    CompletionMode.INDEPENDENT: 1.25,
    CompletionMode.REVEALED: 0.10,
}

# Accuracy lost per failed attempt before the correct answer
ATTEMPT_ACCURACY_PENALTY = 20


def accuracy_multiplier(accuracy: float) -> float:
    for threshold, multiplier in ACCURACY_MULTIPLIERS:
        if accuracy >= threshold:
            return multiplier
    return ACCURACY_FLOOR_MULTIPLIER


def streak_multiplier(streak_days: int) -> float:
    for threshold, multiplier in STREAK_MULTIPLIERS:
        if streak_days >= threshold:
            return multiplier
    return 1.0


def accuracy_from_attempts(failed_attempts: int) -> int:
    """Accuracy percentage for a problem solved after some wrong answers"""
    return max(0, 100 - max(0, failed_attempts) * ATTEMPT_ACCURACY_PENALTY)


def compute_problem_reward(
    accuracy: float,
    difficulty: Difficulty,
    streak_days: int,
    steps_completed: int = 0,
    is_first_in_topic: bool = False,
    base_xp: int = XP_REWARDS["problem_complete"]
) -> RewardResult:
    """
    Calculate XP for completing a problem

    Accuracy and streak bonuses are relative to the difficulty-scaled base,
    so a low accuracy (below 70%) yields a negative accuracy component.

    Args:
        accuracy: Accuracy percentage (0-100)
        difficulty: Problem difficulty
        streak_days: Current daily practice streak
        steps_completed: Steps solved in step-by-step mode
        is_first_in_topic: Whether this is the first problem in the topic
        base_xp: Base XP before multipliers

    Returns:
        RewardResult with total and per-component breakdown
    """
    base = math.floor(base_xp * DIFFICULTY_MULTIPLIERS[Difficulty(difficulty)])
    accuracy_bonus = math.floor(base * (accuracy_multiplier(accuracy) - 1))
    streak_bonus = math.floor(base * (streak_multiplier(streak_days) - 1))
    step_bonus = steps_completed * XP_REWARDS["step_complete"]
    first_topic_bonus = XP_REWARDS["first_problem_in_topic"] if is_first_in_topic else 0

    breakdown = RewardBreakdown(
        base=base,
        accuracy=accuracy_bonus,
        streak=streak_bonus,
        steps=step_bonus,
        first_topic=first_topic_bonus
    )

    return RewardResult(
        total=base + accuracy_bonus + streak_bonus + step_bonus + first_topic_bonus,
        breakdown=breakdown
    )


def apply_completion_mode(total: int, mode: CompletionMode) -> int:
    """Scale a problem reward by how the problem was completed"""
    adjusted = math.floor(total * COMPLETION_MODE_MULTIPLIERS[CompletionMode(mode)])
    if mode == CompletionMode.REVEALED:
        # Revealing the answer still earns a token amount
        return max(1, adjusted)
    return adjusted


def compute_completion_reward(
    accuracy: float,
    difficulty: Difficulty,
    streak_days: int,
    mode: CompletionMode,
    steps_completed: int = 0,
    is_first_in_topic: bool = False
) -> RewardResult:
    """
    Problem reward with the completion-mode adjustment applied to the total

    A revealed answer forfeits the accuracy and streak multipliers before the
    10% scaling. The breakdown is left unscaled.
    """
    if mode == CompletionMode.REVEALED:
        accuracy = 0
        streak_days = 0

    result = compute_problem_reward(
        accuracy=accuracy,
        difficulty=difficulty,
        streak_days=streak_days,
        steps_completed=steps_completed,
        is_first_in_topic=is_first_in_topic
    )

    return RewardResult(
        total=apply_completion_mode(result.total, mode),
        breakdown=result.breakdown
    )


def compute_arithmetic_reward(correct_answers: int, streak: int) -> RewardResult:
    """XP for a mental-math speed drill"""
    base = correct_answers * XP_REWARDS["arithmetic_correct"]

    if streak >= 10:
        streak_bonus = XP_REWARDS["arithmetic_streak_10"]
    elif streak >= 5:
        streak_bonus = XP_REWARDS["arithmetic_streak_5"]
    else:
        streak_bonus = 0

    return RewardResult(
        total=base + streak_bonus,
        breakdown=RewardBreakdown(base=base, streak=streak_bonus)
    )


def compute_multiplayer_reward(won: bool) -> int:
    if won:
        return XP_REWARDS["multiplayer_win"]
    return XP_REWARDS["multiplayer_participation"]


def compute_mastery_reward(
    kind: MasteryKind,
    mastery_id: str,
    already_awarded: Iterable[str]
) -> Optional[int]:
    """
    One-time mastery bonus

    Returns None when the bonus was already paid for this id. The caller must
    record the id together with the XP (see award_mastery).
    """
    if mastery_id in set(already_awarded):
        return None

    if MasteryKind(kind) == MasteryKind.SUBTOPIC:
        return XP_REWARDS["subtopic_mastery"]
    return XP_REWARDS["topic_mastery"]


def apply_xp(profile: XPProfile, amount: int) -> Tuple[XPProfile, LevelUp]:
    """
    Add XP to a profile, keeping total and level consistent

    Negative amounts are treated as zero; no operation removes XP.
    """
    new_total = profile.total_xp + max(0, amount)
    new_level = level_from_xp(new_total)
    leveled_up = new_level > profile.level

    updated = profile.model_copy(update={"total_xp": new_total, "level": new_level})

    if leveled_up:
        logger.info("Level up", old_level=profile.level, new_level=new_level, total_xp=new_total)

    return updated, LevelUp(leveled_up=leveled_up, new_level=new_level)


def _gain(amount: int, breakdown: RewardBreakdown, level_up: LevelUp) -> XPGain:
    return XPGain(
        amount=amount,
        breakdown=breakdown,
        leveled_up=level_up.leveled_up,
        new_level=level_up.new_level if level_up.leveled_up else None
    )


def award_problem(
    profile: XPProfile,
    topic_id: str,
    accuracy: float,
    difficulty: Difficulty,
    streak_days: int,
    mode: CompletionMode,
    steps_completed: int = 0
) -> Tuple[XPProfile, XPGain]:
    """Award XP for a solved problem, paying the first-in-topic bonus once"""
    is_first_in_topic = topic_id not in profile.first_problem_topics

    result = compute_completion_reward(
        accuracy=accuracy,
        difficulty=difficulty,
        streak_days=streak_days,
        mode=mode,
        steps_completed=steps_completed,
        is_first_in_topic=is_first_in_topic
    )

    if is_first_in_topic:
        profile = profile.model_copy(
            update={"first_problem_topics": profile.first_problem_topics | {topic_id}}
        )

    updated, level_up = apply_xp(profile, result.total)
    return updated, _gain(result.total, result.breakdown, level_up)


def award_arithmetic(
    profile: XPProfile,
    correct_answers: int,
    streak: int
) -> Tuple[XPProfile, XPGain]:
    result = compute_arithmetic_reward(correct_answers, streak)
    updated, level_up = apply_xp(profile, result.total)
    return updated, _gain(result.total, result.breakdown, level_up)


def award_multiplayer(profile: XPProfile, won: bool) -> Tuple[XPProfile, XPGain]:
    amount = compute_multiplayer_reward(won)
    updated, level_up = apply_xp(profile, amount)
    return updated, _gain(amount, RewardBreakdown(base=amount), level_up)


def award_mastery(
    profile: XPProfile,
    kind: MasteryKind,
    mastery_id: str
) -> Tuple[XPProfile, Optional[XPGain]]:
    """
    Pay a one-time mastery bonus

    The id is recorded and the XP applied in the same returned snapshot, so
    a bonus is paid exactly once per id for the lifetime of the profile.
    Returns the unchanged profile and None when already awarded.
    """
    field = "mastered_subtopics" if MasteryKind(kind) == MasteryKind.SUBTOPIC else "mastered_topics"
    awarded_ids = getattr(profile, field)

    amount = compute_mastery_reward(kind, mastery_id, awarded_ids)
    if amount is None:
        logger.debug("Mastery bonus already awarded", kind=MasteryKind(kind).value, mastery_id=mastery_id)
        return profile, None

    profile = profile.model_copy(update={field: awarded_ids | {mastery_id}})
    updated, level_up = apply_xp(profile, amount)
    return updated, _gain(amount, RewardBreakdown(base=amount), level_up)


def reset_xp() -> XPProfile:
    """Default XP profile, used for an explicit user reset"""
    return XPProfile()
