"""Weekly summary for a student's parent."""

from datetime import date

from pydantic import BaseModel

from learning_league.engagement.weekly import roll_week, week_start_for
from learning_league.models.user import Student


class WeeklySummary(BaseModel):
    student_id: str
    student_name: str
    parent_name: str | None
    parent_email: str | None
    week_start: date
    lessons_completed_this_week: int
    weekly_xp: int
    level: int
    login_streak: int
    in_penalty_box: bool
    penalty_reason: str | None = None
    headline: str


def build_weekly_summary(student: Student, today: date) -> WeeklySummary:
    """Summarize the current weekly window as of ``today``.

    Counters from an earlier window read as zero.
    """
    current = roll_week(today, student)
    lessons = current.lessons_completed_this_week
    if current.in_penalty_box:
        headline = f"{current.name} is in the Penalty Box this week."
    elif lessons == 0:
        headline = f"{current.name} has not completed a lesson yet this week."
    else:
        plural = "lesson" if lessons == 1 else "lessons"
        headline = f"{current.name} completed {lessons} {plural} this week."

    return WeeklySummary(
        student_id=current.id,
        student_name=current.name,
        parent_name=current.parent_name,
        parent_email=current.parent_email,
        week_start=week_start_for(today),
        lessons_completed_this_week=lessons,
        weekly_xp=current.weekly_xp,
        level=current.level,
        login_streak=current.login_streak,
        in_penalty_box=current.in_penalty_box,
        penalty_reason=current.penalty_box.reason if current.in_penalty_box else None,
        headline=headline,
    )
