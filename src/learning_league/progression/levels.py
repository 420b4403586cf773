"""Level curve.

Cumulative XP needed to reach level ``n`` is ``base * n * (n - 1) / 2``, so
with the default base of 100 the thresholds are 0, 100, 300, 600, 1000, ...
Each level costs ``base`` more XP than the one before.
"""

import math

from pydantic import BaseModel

DEFAULT_XP_LEVEL_BASE = 100


class LevelProgress(BaseModel):
    """Progress within the current level, for the header progress bar."""

    level: int
    xp: int
    level_start_xp: int
    next_level_xp: int

    @property
    def xp_into_level(self) -> int:
        return self.xp - self.level_start_xp

    @property
    def xp_span(self) -> int:
        return self.next_level_xp - self.level_start_xp

    @property
    def fraction(self) -> float:
        return self.xp_into_level / self.xp_span


def xp_for_level(level: int, base: int = DEFAULT_XP_LEVEL_BASE) -> int:
    """Cumulative XP at which ``level`` starts."""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return base * level * (level - 1) // 2


def level_for_xp(xp: int, base: int = DEFAULT_XP_LEVEL_BASE) -> int:
    """Highest level whose threshold is at or below ``xp``.

    Args:
        xp: Lifetime XP, non-negative.
        base: XP cost of the first level-up.

    Returns:
        Level, starting at 1 for 0 XP.
    """
    if xp < 0:
        raise ValueError(f"xp must be non-negative, got {xp}")
    # Largest n with n * (n - 1) <= 2 * xp / base
    k = 2 * xp // base
    return (1 + math.isqrt(4 * k + 1)) // 2


def xp_to_next_level(level: int, base: int = DEFAULT_XP_LEVEL_BASE) -> int:
    """Cumulative XP required to reach ``level + 1``."""
    return xp_for_level(level + 1, base)


def level_progress(xp: int, base: int = DEFAULT_XP_LEVEL_BASE) -> LevelProgress:
    level = level_for_xp(xp, base)
    return LevelProgress(
        level=level,
        xp=xp,
        level_start_xp=xp_for_level(level, base),
        next_level_xp=xp_to_next_level(level, base),
    )
