"""Login streak tracking across calendar days."""

from datetime import date, timedelta

from pydantic import BaseModel

from learning_league.models.user import Student


class LoginUpdate(BaseModel):
    login_streak: int
    last_login_date: date


def on_login(today: date, student: Student) -> LoginUpdate:
    """Compute the streak after a login on ``today``.

    Same-day logins leave the streak alone, a login on the following day
    extends it, and anything else (first login, a gap, or a clock that went
    backwards) starts a new streak at 1.
    """
    last = student.last_login_date
    if last == today:
        streak = student.login_streak
    elif last is not None and today - last == timedelta(days=1):
        streak = student.login_streak + 1
    else:
        streak = 1
    return LoginUpdate(login_streak=streak, last_login_date=today)
