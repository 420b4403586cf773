"""Penalty box state machine.

Two states: Clear (no active penalty) and Penalized. A student enters the
penalty box when a visit on or after the weekly checkpoint finds too little
weekly XP, and leaves it only by completing a lesson or goal. The weekly
reset alone never clears it.
"""

from datetime import date

import structlog
from pydantic import BaseModel

from learning_league.engagement.weekly import THURSDAY, day_index, week_start_for
from learning_league.models.user import PenaltyBox, Student, Tutor

logger = structlog.get_logger()


class PenaltyPolicy(BaseModel):
    """Checkpoint rules for the automatic penalty."""

    checkpoint_day: int = THURSDAY
    weekly_xp_threshold: int = 10
    reason: str = "Low weekly engagement. Earn at least 10 XP this week."
    redemption_task: str = "Complete one quest to exit the Penalty Box."

    @classmethod
    def from_settings(cls, settings) -> "PenaltyPolicy":
        return cls(
            checkpoint_day=settings.penalty_checkpoint_day,
            weekly_xp_threshold=settings.penalty_weekly_xp_threshold,
            reason=settings.penalty_reason,
            redemption_task=settings.penalty_redemption_task,
        )


def is_restricted(user: Student | Tutor) -> bool:
    """Whether non-learning features (the shop) should be blocked."""
    return isinstance(user, Student) and user.in_penalty_box


def should_penalize(today: date, student: Student, policy: PenaltyPolicy) -> bool:
    """Evaluate the checkpoint rule for one visit.

    The automatic penalty fires at most once per weekly window, so a student
    who redeems early in a slow week is not boxed again on the next visit.
    """
    if student.in_penalty_box:
        return False
    if day_index(today) < policy.checkpoint_day:
        return False
    if student.weekly_xp >= policy.weekly_xp_threshold:
        return False
    return student.last_penalty_week != week_start_for(today)


def activate(
    student: Student, reason: str, redemption_task: str, today: date | None = None
) -> Student:
    """Clear -> Penalized. No-op when a penalty is already active."""
    if student.in_penalty_box:
        return student
    update: dict = {
        "penalty_box": PenaltyBox(
            is_active=True, reason=reason, redemption_task=redemption_task
        ),
    }
    if today is not None:
        update["last_penalty_week"] = week_start_for(today)
    logger.info("penalty_activated", user_id=student.id, reason=reason)
    return student.model_copy(update=update)


def redeem(student: Student) -> Student:
    """Penalized -> Clear. The record is kept with ``is_active`` off."""
    if not student.in_penalty_box:
        return student
    logger.info("penalty_redeemed", user_id=student.id)
    return student.model_copy(update={
        "penalty_box": student.penalty_box.model_copy(update={"is_active": False}),
    })
