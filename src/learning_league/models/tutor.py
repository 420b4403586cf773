"""Tutor-owned records: custom goals and notes about a student."""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from learning_league.models.catalog import ExternalGoal, GoalPlatform


class CustomGoal(BaseModel):
    """A goal a tutor assigned to one student, with its own reward."""

    id: str = Field(default_factory=lambda: f"custom-{uuid.uuid4().hex[:12]}")
    student_id: str
    tutor_id: str
    title: str
    description: str = ""
    xp: int = Field(ge=0)
    gems: int = Field(ge=0)
    is_completed: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def _grants_something(self) -> "CustomGoal":
        if self.xp == 0 and self.gems == 0:
            raise ValueError("A goal must grant XP or gems")
        return self

    def as_catalog_goal(self) -> ExternalGoal:
        return ExternalGoal(
            id=self.id,
            platform=GoalPlatform.TUTOR,
            title=self.title,
            description=self.description,
            xp=self.xp,
            gems=self.gems,
        )


class TutorNote(BaseModel):
    id: str = Field(default_factory=lambda: f"note-{uuid.uuid4().hex[:12]}")
    student_id: str
    tutor_id: str
    note: str
    created_at: datetime = Field(default_factory=datetime.now)
