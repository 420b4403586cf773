"""Static catalog data: courses, shop items, badges and external goals.

The catalog is reference data. Users only ever store ids that point into it.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from learning_league.errors import NotFound


class ItemCategory(StrEnum):
    """Shop item categories."""

    AVATAR = "Avatar"
    REWARD = "Reward"


class GoalPlatform(StrEnum):
    """External platforms that goals are assigned on."""

    IXL = "IXL"
    NEARPOD = "Nearpod"
    TUTOR = "Tutor"


class Lesson(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    topic: str = ""


class Course(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    icon: str = ""
    lessons: tuple[Lesson, ...] = ()


class ShopItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: ItemCategory
    price: int = Field(ge=0)
    asset: str  # emoji or image URL
    description: str | None = None


class Badge(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    icon: str = ""


class ExternalGoal(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    platform: GoalPlatform
    title: str
    description: str = ""
    xp: int = Field(ge=0)
    gems: int = Field(ge=0)


class Catalog(BaseModel):
    """Immutable lookup tables keyed by id."""

    model_config = ConfigDict(frozen=True)

    courses: tuple[Course, ...] = ()
    shop_items: tuple[ShopItem, ...] = ()
    badges: tuple[Badge, ...] = ()
    external_goals: tuple[ExternalGoal, ...] = ()

    def lesson(self, lesson_id: str) -> Lesson:
        for course in self.courses:
            for lesson in course.lessons:
                if lesson.id == lesson_id:
                    return lesson
        raise NotFound("lesson", lesson_id)

    def shop_item(self, item_id: str) -> ShopItem:
        for item in self.shop_items:
            if item.id == item_id:
                return item
        raise NotFound("item", item_id)

    def badge(self, badge_id: str) -> Badge:
        for badge in self.badges:
            if badge.id == badge_id:
                return badge
        raise NotFound("badge", badge_id)

    def goal(self, goal_id: str) -> ExternalGoal:
        for goal in self.external_goals:
            if goal.id == goal_id:
                return goal
        raise NotFound("goal", goal_id)

    def with_goals(self, goals: list[ExternalGoal]) -> "Catalog":
        """Return a copy with extra goals registered (e.g. tutor-assigned ones)."""
        known = {g.id for g in self.external_goals}
        extra = tuple(g for g in goals if g.id not in known)
        return self.model_copy(update={"external_goals": self.external_goals + extra})
