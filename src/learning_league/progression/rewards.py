"""Reward application for completed lessons and goals."""

from pydantic import BaseModel

from learning_league.errors import InvalidReward
from learning_league.models.user import Student
from learning_league.progression.levels import DEFAULT_XP_LEVEL_BASE, level_for_xp


class Reward(BaseModel):
    xp: int = 0
    gems: int = 0

    def validate_amounts(self) -> None:
        """Raise InvalidReward for negative amounts or an empty reward.

        Zero is rejected for the reward as a whole, not per field: a reward
        may pay only gems (``xp=0``) or only XP (``gems=0``).
        """
        if self.xp < 0 or self.gems < 0 or (self.xp == 0 and self.gems == 0):
            raise InvalidReward(self.xp, self.gems)


def apply_reward(
    student: Student, reward: Reward, base: int = DEFAULT_XP_LEVEL_BASE
) -> Student:
    """Add a reward's XP and gems and recompute the level.

    The XP also counts toward ``weekly_xp``. Duplicate completions are
    filtered by the store before this is called.
    """
    reward.validate_amounts()
    xp = student.xp + reward.xp
    return student.model_copy(update={
        "xp": xp,
        "weekly_xp": student.weekly_xp + reward.xp,
        "gems": student.gems + reward.gems,
        "level": level_for_xp(xp, base),
    })
