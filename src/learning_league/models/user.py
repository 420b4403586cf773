"""User records. A user is either a Student or a Tutor, tagged by ``role``."""

from datetime import date
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer


class Role(StrEnum):
    STUDENT = "student"
    TUTOR = "tutor"


class PenaltyBox(BaseModel):
    """Active or redeemed penalty box record."""

    model_config = ConfigDict(frozen=True)

    is_active: bool = True
    reason: str
    redemption_task: str


class Student(BaseModel):
    """Student progression snapshot.

    Snapshots are immutable; the store replaces the whole record on every
    command. ``level`` is always derived from ``xp`` and never set directly.
    """

    model_config = ConfigDict(frozen=True)

    role: Literal["student"] = "student"
    id: str
    name: str
    avatar: str = "🙂"
    tutor_id: str | None = None

    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)
    weekly_xp: int = Field(default=0, ge=0)
    gems: int = Field(default=0, ge=0)

    inventory: frozenset[str] = frozenset()
    completed_lessons: frozenset[str] = frozenset()
    completed_goals: frozenset[str] = frozenset()
    badges: frozenset[str] = frozenset()

    login_streak: int = Field(default=0, ge=0)
    last_login_date: date | None = None
    week_start: date | None = None  # Sunday opening the window weekly_xp belongs to
    last_penalty_week: date | None = None

    penalty_box: PenaltyBox | None = None

    # Reporting-only metadata for the weekly parent summary
    parent_name: str | None = None
    parent_email: str | None = None
    lessons_completed_this_week: int = Field(default=0, ge=0)

    @field_serializer(
        "inventory", "completed_lessons", "completed_goals", "badges", when_used="json"
    )
    def _serialize_sorted(self, value: frozenset[str]) -> list[str]:
        return sorted(value)

    @property
    def in_penalty_box(self) -> bool:
        return self.penalty_box is not None and self.penalty_box.is_active


class Tutor(BaseModel):
    """Tutor record. Tutors do not take part in progression."""

    model_config = ConfigDict(frozen=True)

    role: Literal["tutor"] = "tutor"
    id: str
    name: str
    avatar: str = "🧑‍🏫"
    student_ids: tuple[str, ...] = ()


User = Annotated[Student | Tutor, Field(discriminator="role")]

_user_adapter: TypeAdapter[Student | Tutor] = TypeAdapter(User)


def parse_user(data: dict | str | bytes) -> Student | Tutor:
    """Validate a stored user record into the matching variant."""
    if isinstance(data, (str, bytes)):
        return _user_adapter.validate_json(data)
    return _user_adapter.validate_python(data)
