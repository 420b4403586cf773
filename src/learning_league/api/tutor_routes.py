"""Tutor-facing routes: roster, custom goals, notes and penalty assignment."""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, model_validator

from learning_league.api.routes import get_registry, get_store, raise_http, user_payload
from learning_league.errors import LeagueError, NotFound
from learning_league.models.tutor import CustomGoal, TutorNote
from learning_league.models.user import Student, Tutor
from learning_league.storage import tutor_records
from learning_league.store.commands import ActivatePenalty, CompleteGoal
from learning_league.store.registry import SessionRegistry

logger = structlog.get_logger()
router = APIRouter(prefix="/api")


class GoalRequest(BaseModel):
    title: str
    description: str = ""
    xp: int = Field(ge=0)
    gems: int = Field(ge=0)

    @model_validator(mode="after")
    def _grants_something(self) -> "GoalRequest":
        if self.xp == 0 and self.gems == 0:
            raise ValueError("A goal must grant XP or gems")
        return self


class NoteRequest(BaseModel):
    note: str


class PenaltyRequest(BaseModel):
    reason: str
    redemption_task: str = "Complete one quest to exit the Penalty Box."


def _tutor_and_student(
    registry: SessionRegistry, tutor_id: str, student_id: str
) -> tuple[Tutor, Student]:
    tutor = get_store(registry, tutor_id).snapshot
    if not isinstance(tutor, Tutor):
        raise HTTPException(status_code=403, detail="Not a tutor")
    student = get_store(registry, student_id).snapshot
    if not isinstance(student, Student):
        raise HTTPException(status_code=400, detail="Not a student")
    if student.tutor_id != tutor.id and student.id not in tutor.student_ids:
        raise HTTPException(status_code=403, detail="Student is not assigned to this tutor")
    return tutor, student


def _records_dir(registry: SessionRegistry):
    if registry.records_dir is None:
        raise HTTPException(status_code=503, detail="Tutor records are not configured")
    return registry.records_dir


@router.get("/tutors/{tutor_id}/students")
async def list_students(
    tutor_id: str, registry: SessionRegistry = Depends(get_registry)
) -> list[dict]:
    tutor = get_store(registry, tutor_id).snapshot
    if not isinstance(tutor, Tutor):
        raise HTTPException(status_code=403, detail="Not a tutor")
    return [
        u.model_dump(mode="json")
        for u in registry.all_users()
        if isinstance(u, Student) and (u.tutor_id == tutor.id or u.id in tutor.student_ids)
    ]


@router.post("/tutors/{tutor_id}/students/{student_id}/goals", status_code=201)
async def assign_goal(
    tutor_id: str,
    student_id: str,
    request: GoalRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> dict:
    """Assign a custom goal with its own XP and gem reward."""
    _tutor_and_student(registry, tutor_id, student_id)
    goal = CustomGoal(student_id=student_id, tutor_id=tutor_id, **request.model_dump())
    tutor_records.add_custom_goal(_records_dir(registry), goal)
    registry.refresh_catalog(student_id)
    logger.info("custom_goal_assigned", tutor_id=tutor_id, student_id=student_id, goal_id=goal.id)
    return goal.model_dump(mode="json")


@router.get("/tutors/{tutor_id}/students/{student_id}/goals")
async def list_goals(
    tutor_id: str, student_id: str, registry: SessionRegistry = Depends(get_registry)
) -> list[dict]:
    _tutor_and_student(registry, tutor_id, student_id)
    goals = tutor_records.list_custom_goals(_records_dir(registry), student_id)
    return [g.model_dump(mode="json") for g in goals]


@router.post("/students/{student_id}/goals/{goal_id}/complete")
async def complete_custom_goal(
    student_id: str, goal_id: str, registry: SessionRegistry = Depends(get_registry)
) -> dict:
    """Student completes a tutor-assigned goal and earns its reward."""
    records_dir = _records_dir(registry)
    goals = {g.id: g for g in tutor_records.list_custom_goals(records_dir, student_id)}
    goal = goals.get(goal_id)
    if goal is None:
        raise_http(NotFound("goal", goal_id))
    store = get_store(registry, student_id)
    try:
        store.dispatch(CompleteGoal(goal_id=goal.id, xp=goal.xp, gems=goal.gems))
    except LeagueError as e:
        raise_http(e)
    if not goal.is_completed:
        tutor_records.mark_goal_completed(records_dir, student_id, goal_id)
    return user_payload(store)


@router.post("/tutors/{tutor_id}/students/{student_id}/notes", status_code=201)
async def add_note(
    tutor_id: str,
    student_id: str,
    request: NoteRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> dict:
    _tutor_and_student(registry, tutor_id, student_id)
    note = TutorNote(student_id=student_id, tutor_id=tutor_id, note=request.note)
    tutor_records.add_note(_records_dir(registry), note)
    return note.model_dump(mode="json")


@router.get("/tutors/{tutor_id}/students/{student_id}/notes")
async def list_notes(
    tutor_id: str, student_id: str, registry: SessionRegistry = Depends(get_registry)
) -> list[dict]:
    _tutor_and_student(registry, tutor_id, student_id)
    notes = tutor_records.list_notes(_records_dir(registry), student_id)
    return [n.model_dump(mode="json") for n in notes]


@router.post("/tutors/{tutor_id}/students/{student_id}/penalty")
async def assign_penalty(
    tutor_id: str,
    student_id: str,
    request: PenaltyRequest,
    registry: SessionRegistry = Depends(get_registry),
) -> dict:
    """Put a student in the penalty box with the tutor's own reason."""
    _tutor_and_student(registry, tutor_id, student_id)
    store = get_store(registry, student_id)
    store.dispatch(ActivatePenalty(reason=request.reason, redemption_task=request.redemption_task))
    return user_payload(store)
