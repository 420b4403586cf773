"""Commands accepted by the user store, one per lifecycle event."""

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Command(BaseModel):
    model_config = ConfigDict(frozen=True)


class CompleteLesson(_Command):
    type: Literal["COMPLETE_LESSON"] = "COMPLETE_LESSON"
    lesson_id: str
    xp: int
    gems: int


class CompleteGoal(_Command):
    type: Literal["COMPLETE_GOAL"] = "COMPLETE_GOAL"
    goal_id: str
    xp: int
    gems: int


class AwardBadge(_Command):
    type: Literal["AWARD_BADGE"] = "AWARD_BADGE"
    badge_id: str


class PurchaseItem(_Command):
    type: Literal["PURCHASE_ITEM"] = "PURCHASE_ITEM"
    item_id: str
    price: int = Field(ge=0)


class EquipAvatar(_Command):
    type: Literal["EQUIP_AVATAR"] = "EQUIP_AVATAR"
    item_id: str


class RecordLogin(_Command):
    type: Literal["RECORD_LOGIN"] = "RECORD_LOGIN"


class ActivatePenalty(_Command):
    type: Literal["ACTIVATE_PENALTY"] = "ACTIVATE_PENALTY"
    reason: str
    redemption_task: str


class EvaluatePenalty(_Command):
    type: Literal["EVALUATE_PENALTY"] = "EVALUATE_PENALTY"


class Logout(_Command):
    type: Literal["LOGOUT"] = "LOGOUT"


Command = Annotated[
    CompleteLesson
    | CompleteGoal
    | AwardBadge
    | PurchaseItem
    | EquipAvatar
    | RecordLogin
    | ActivatePenalty
    | EvaluatePenalty
    | Logout,
    Field(discriminator="type"),
]

command_adapter: TypeAdapter = TypeAdapter(Command)


def parse_command(data: dict):
    """Validate a raw command payload into its command model."""
    return command_adapter.validate_python(data)
