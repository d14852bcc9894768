"""
XP curve: mapping between cumulative XP and level

XP required for a level grows as BASE * level ^ EXPONENT, so higher levels
are progressively harder to reach. There is no level cap.

    Level 2   =       282 XP
    Level 3   =       519 XP
    Level 5   =     1,118 XP
    Level 10  =     3,162 XP
    Level 20  =     8,944 XP
    Level 100 =   100,000 XP
"""

import math
from typing import Any, Dict

LEVEL_CONFIG = {
    "base": 100,
    "exponent": 1.5,
}

# Highest threshold first; the first one the level reaches wins
LEVEL_TITLES = [
    (100, "Grandmaster"),
    (75, "Master"),
    (50, "Expert"),
    (35, "Advanced"),
    (25, "Proficient"),
    (15, "Intermediate"),
    (10, "Apprentice"),
    (5, "Beginner"),
    (1, "Novice"),
]


def required_xp(level: int) -> int:
    """Total XP needed to reach a level (level 1 starts at 0)"""
    if level <= 1:
        return 0
    return math.floor(LEVEL_CONFIG["base"] * level ** LEVEL_CONFIG["exponent"])


def level_from_xp(total_xp: int) -> int:
    """
    Calculate the level reached with a total amount of XP

    The closed-form inverse can land one level off at exact thresholds
    because required_xp floors, so the estimate is corrected against
    required_xp until required_xp(level) <= total_xp < required_xp(level + 1).
    """
    if total_xp <= 0:
        return 1

    estimate = math.pow(total_xp / LEVEL_CONFIG["base"], 1 / LEVEL_CONFIG["exponent"])
    level = max(1, math.floor(estimate))

    while required_xp(level + 1) <= total_xp:
        level += 1
    while level > 1 and required_xp(level) > total_xp:
        level -= 1

    return level


def level_progress(total_xp: int) -> float:
    """Fraction of the way from the current level to the next one, in [0, 1]"""
    total_xp = max(0, total_xp)
    level = level_from_xp(total_xp)
    current_threshold = required_xp(level)
    next_threshold = required_xp(level + 1)

    span = next_threshold - current_threshold
    if span <= 0:
        return 1.0

    return min(1.0, max(0.0, (total_xp - current_threshold) / span))


def xp_to_next_level(total_xp: int) -> int:
    """XP still needed to reach the next level"""
    total_xp = max(0, total_xp)
    return max(0, required_xp(level_from_xp(total_xp) + 1) - total_xp)


def level_title(level: int) -> str:
    for threshold, title in LEVEL_TITLES:
        if level >= threshold:
            return title
    return LEVEL_TITLES[-1][1]


def level_info(total_xp: int) -> Dict[str, Any]:
    """Display bundle for a learner's level"""
    total_xp = max(0, total_xp)
    level = level_from_xp(total_xp)

    return {
        "level": level,
        "title": level_title(level),
        "total_xp": total_xp,
        "xp_for_current_level": required_xp(level),
        "xp_for_next_level": required_xp(level + 1),
        "xp_to_next_level": xp_to_next_level(total_xp),
        "progress": level_progress(total_xp),
    }
