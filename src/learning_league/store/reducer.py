"""Pure command reducer: (user, command) -> next user.

Idempotence violations come back as the unchanged user. Economic and
validation errors raise before anything is copied, so a failed command never
leaves a partially updated snapshot.
"""

from collections.abc import Callable
from datetime import date

import structlog
from pydantic import BaseModel, ConfigDict

from learning_league.engagement import penalty
from learning_league.engagement.penalty import PenaltyPolicy
from learning_league.engagement.streak import on_login
from learning_league.engagement.weekly import roll_week
from learning_league.errors import AlreadyOwned, InsufficientFunds, NotFound, NotOwned
from learning_league.models.catalog import Catalog, ItemCategory
from learning_league.models.user import Student, Tutor
from learning_league.progression.levels import DEFAULT_XP_LEVEL_BASE
from learning_league.progression.rewards import Reward, apply_reward
from learning_league.store.commands import (
    ActivatePenalty,
    AwardBadge,
    CompleteGoal,
    CompleteLesson,
    EquipAvatar,
    EvaluatePenalty,
    Logout,
    PurchaseItem,
    RecordLogin,
)

logger = structlog.get_logger()


class ReduceContext(BaseModel):
    """Inputs a reducer needs besides the user and the command."""

    model_config = ConfigDict(frozen=True)

    today: date
    catalog: Catalog | None = None
    policy: PenaltyPolicy = PenaltyPolicy()
    xp_level_base: int = DEFAULT_XP_LEVEL_BASE


def _complete_lesson(student: Student, cmd: CompleteLesson, ctx: ReduceContext) -> Student:
    if cmd.lesson_id in student.completed_lessons:
        return student
    if ctx.catalog is not None:
        ctx.catalog.lesson(cmd.lesson_id)
    student = apply_reward(student, Reward(xp=cmd.xp, gems=cmd.gems), ctx.xp_level_base)
    student = student.model_copy(update={
        "completed_lessons": student.completed_lessons | {cmd.lesson_id},
        "lessons_completed_this_week": student.lessons_completed_this_week + 1,
    })
    logger.info("lesson_completed", user_id=student.id, lesson_id=cmd.lesson_id, xp=cmd.xp)
    return penalty.redeem(student)


def _complete_goal(student: Student, cmd: CompleteGoal, ctx: ReduceContext) -> Student:
    if cmd.goal_id in student.completed_goals:
        return student
    if ctx.catalog is not None:
        ctx.catalog.goal(cmd.goal_id)
    student = apply_reward(student, Reward(xp=cmd.xp, gems=cmd.gems), ctx.xp_level_base)
    student = student.model_copy(update={
        "completed_goals": student.completed_goals | {cmd.goal_id},
    })
    logger.info("goal_completed", user_id=student.id, goal_id=cmd.goal_id, xp=cmd.xp)
    return penalty.redeem(student)


def _award_badge(student: Student, cmd: AwardBadge, ctx: ReduceContext) -> Student:
    if cmd.badge_id in student.badges:
        return student
    if ctx.catalog is not None:
        ctx.catalog.badge(cmd.badge_id)
    logger.info("badge_awarded", user_id=student.id, badge_id=cmd.badge_id)
    return student.model_copy(update={"badges": student.badges | {cmd.badge_id}})


def _purchase_item(student: Student, cmd: PurchaseItem, ctx: ReduceContext) -> Student:
    if cmd.item_id in student.inventory:
        raise AlreadyOwned(cmd.item_id)
    if ctx.catalog is not None:
        ctx.catalog.shop_item(cmd.item_id)
    if cmd.price > student.gems:
        raise InsufficientFunds(cmd.price, student.gems)
    logger.info("item_purchased", user_id=student.id, item_id=cmd.item_id, price=cmd.price)
    return student.model_copy(update={
        "gems": student.gems - cmd.price,
        "inventory": student.inventory | {cmd.item_id},
    })


def _equip_avatar(student: Student, cmd: EquipAvatar, ctx: ReduceContext) -> Student:
    if ctx.catalog is None:
        raise NotFound("item", cmd.item_id)
    item = ctx.catalog.shop_item(cmd.item_id)
    if item.category != ItemCategory.AVATAR:
        raise NotFound("avatar", cmd.item_id)
    if cmd.item_id not in student.inventory:
        raise NotOwned(cmd.item_id)
    return student.model_copy(update={"avatar": item.asset})


def _record_login(student: Student, cmd: RecordLogin, ctx: ReduceContext) -> Student:
    update = on_login(ctx.today, student)
    return student.model_copy(update=update.model_dump())


def _activate_penalty(student: Student, cmd: ActivatePenalty, ctx: ReduceContext) -> Student:
    return penalty.activate(student, cmd.reason, cmd.redemption_task)


def _evaluate_penalty(student: Student, cmd: EvaluatePenalty, ctx: ReduceContext) -> Student:
    if not penalty.should_penalize(ctx.today, student, ctx.policy):
        return student
    return penalty.activate(
        student, ctx.policy.reason, ctx.policy.redemption_task, today=ctx.today
    )


_HANDLERS: dict[type, Callable] = {
    CompleteLesson: _complete_lesson,
    CompleteGoal: _complete_goal,
    AwardBadge: _award_badge,
    PurchaseItem: _purchase_item,
    EquipAvatar: _equip_avatar,
    RecordLogin: _record_login,
    ActivatePenalty: _activate_penalty,
    EvaluatePenalty: _evaluate_penalty,
}


def reduce(user: Student | Tutor, command, ctx: ReduceContext) -> Student | Tutor:
    """Apply one command to a user snapshot and return the next snapshot."""
    if isinstance(command, Logout):
        return user
    handler = _HANDLERS.get(type(command))
    if handler is None:
        raise TypeError(f"Unsupported command: {type(command).__name__}")
    if isinstance(user, Tutor):
        # Tutors have no progression state
        logger.debug("tutor_command_ignored", user_id=user.id, command=command.type)
        return user
    student = roll_week(ctx.today, user)
    return handler(student, command, ctx)
