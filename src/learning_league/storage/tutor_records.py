"""Tutor-assigned goals and notes, one JSON file per student."""

import fcntl
import json
import os
import tempfile
from pathlib import Path

from learning_league.errors import NotFound
from learning_league.models.tutor import CustomGoal, TutorNote
from learning_league.storage.users import validate_user_id


def _records_path(records_dir: Path, student_id: str) -> Path:
    return records_dir / f"{validate_user_id(student_id)}.json"


def _read(path: Path) -> dict:
    if not path.exists():
        return {"goals": [], "notes": []}
    return json.loads(path.read_text(encoding="utf-8"))


def _update(records_dir: Path, student_id: str, mutate) -> dict:
    """Read-modify-write the student's records under an exclusive lock."""
    path = _records_path(records_dir, student_id)
    lock_path = records_dir / (path.name + ".lock")
    with open(lock_path, "w") as lock_file:
        fcntl.flock(lock_file, fcntl.LOCK_EX)
        data = _read(path)
        mutate(data)
        with tempfile.NamedTemporaryFile(
            "w", dir=records_dir, delete=False, suffix=".json", encoding="utf-8"
        ) as tmp:
            json.dump(data, tmp, indent=2, default=str)
        os.replace(tmp.name, path)
    return data


def add_custom_goal(records_dir: Path, goal: CustomGoal) -> CustomGoal:
    _update(
        records_dir,
        goal.student_id,
        lambda data: data["goals"].append(goal.model_dump(mode="json")),
    )
    return goal


def list_custom_goals(records_dir: Path, student_id: str) -> list[CustomGoal]:
    data = _read(_records_path(records_dir, student_id))
    return [CustomGoal(**g) for g in data["goals"]]


def mark_goal_completed(records_dir: Path, student_id: str, goal_id: str) -> CustomGoal:
    found: list[dict] = []

    def mutate(data: dict) -> None:
        for g in data["goals"]:
            if g["id"] == goal_id:
                g["is_completed"] = True
                found.append(g)

    _update(records_dir, student_id, mutate)
    if not found:
        raise NotFound("goal", goal_id)
    return CustomGoal(**found[0])


def add_note(records_dir: Path, note: TutorNote) -> TutorNote:
    _update(
        records_dir,
        note.student_id,
        lambda data: data["notes"].append(note.model_dump(mode="json")),
    )
    return note


def list_notes(records_dir: Path, student_id: str) -> list[TutorNote]:
    data = _read(_records_path(records_dir, student_id))
    return [TutorNote(**n) for n in data["notes"]]
