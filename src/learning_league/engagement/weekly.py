"""Weekly engagement window.

A window runs Sunday through Saturday. ``weekly_xp`` belongs to the window
that opened on ``Student.week_start``; once ``today`` falls in a later
window the count starts again from zero. The Thursday penalty checkpoint
lies inside the window and does not reset anything.
"""

from datetime import date, timedelta

from learning_league.models.user import Student

SUNDAY = 0
THURSDAY = 4


def day_index(today: date) -> int:
    """Day of week with Sunday = 0 ... Saturday = 6."""
    return today.isoweekday() % 7


def week_start_for(today: date) -> date:
    """The Sunday opening the window that contains ``today``."""
    return today - timedelta(days=day_index(today))


def crossed_boundary(today: date, student: Student) -> bool:
    return student.week_start is None or week_start_for(today) > student.week_start


def weekly_reset(today: date, student: Student) -> int:
    """The ``weekly_xp`` value that should hold on ``today``."""
    if student.week_start is not None and crossed_boundary(today, student):
        return 0
    return student.weekly_xp


def roll_week(today: date, student: Student) -> Student:
    """Move the student into today's window, zeroing weekly counters if needed."""
    if not crossed_boundary(today, student):
        return student
    return student.model_copy(update={
        "weekly_xp": weekly_reset(today, student),
        "lessons_completed_this_week": (
            0 if student.week_start is not None else student.lessons_completed_this_week
        ),
        "week_start": week_start_for(today),
    })
