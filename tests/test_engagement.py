"""Tests for login streaks and the weekly window."""

from datetime import date, timedelta

import pytest

from learning_league.engagement.streak import on_login
from learning_league.engagement.weekly import (
    day_index,
    roll_week,
    week_start_for,
    weekly_reset,
)
from learning_league.models.user import Student

SUNDAY = date(2026, 10, 18)
MONDAY = date(2026, 10, 19)
THURSDAY = date(2026, 10, 22)
SATURDAY = date(2026, 10, 24)
NEXT_SUNDAY = date(2026, 10, 25)


class TestOnLogin:
    @pytest.fixture
    def student(self):
        return Student(id="s1", name="Ada", login_streak=5, last_login_date=MONDAY)

    def test_next_day_extends_streak(self, student):
        update = on_login(MONDAY + timedelta(days=1), student)
        assert update.login_streak == 6
        assert update.last_login_date == MONDAY + timedelta(days=1)

    def test_gap_resets_streak(self, student):
        update = on_login(MONDAY + timedelta(days=3), student)
        assert update.login_streak == 1

    def test_two_day_gap_resets_streak(self, student):
        assert on_login(MONDAY + timedelta(days=2), student).login_streak == 1

    def test_same_day_is_unchanged(self, student):
        update = on_login(MONDAY, student)
        assert update.login_streak == 5
        assert update.last_login_date == MONDAY

    def test_first_login_starts_at_one(self):
        update = on_login(MONDAY, Student(id="s2", name="Bo"))
        assert update.login_streak == 1
        assert update.last_login_date == MONDAY

    def test_earlier_date_starts_new_streak(self, student):
        update = on_login(MONDAY - timedelta(days=1), student)
        assert update.login_streak == 1


class TestWeeklyWindow:
    def test_day_index_sunday_is_zero(self):
        assert day_index(SUNDAY) == 0
        assert day_index(MONDAY) == 1
        assert day_index(THURSDAY) == 4
        assert day_index(SATURDAY) == 6

    def test_week_start_is_sunday(self):
        for offset in range(7):
            assert week_start_for(SUNDAY + timedelta(days=offset)) == SUNDAY
        assert week_start_for(NEXT_SUNDAY) == NEXT_SUNDAY

    def test_weekly_reset_same_window(self):
        student = Student(id="s1", name="Ada", weekly_xp=30, week_start=SUNDAY)
        assert weekly_reset(THURSDAY, student) == 30
        assert weekly_reset(SATURDAY, student) == 30

    def test_weekly_reset_next_window(self):
        student = Student(id="s1", name="Ada", weekly_xp=30, week_start=SUNDAY)
        assert weekly_reset(NEXT_SUNDAY, student) == 0

    def test_thursday_checkpoint_does_not_reset(self):
        student = Student(id="s1", name="Ada", weekly_xp=7, week_start=SUNDAY)
        assert roll_week(THURSDAY, student) == student

    def test_roll_week_zeroes_counters(self):
        student = Student(
            id="s1",
            name="Ada",
            xp=120,
            weekly_xp=30,
            lessons_completed_this_week=3,
            week_start=SUNDAY,
        )
        rolled = roll_week(NEXT_SUNDAY + timedelta(days=2), student)
        assert rolled.weekly_xp == 0
        assert rolled.lessons_completed_this_week == 0
        assert rolled.week_start == NEXT_SUNDAY
        assert rolled.xp == 120

    def test_first_roll_only_records_window(self):
        student = Student(id="s1", name="Ada", weekly_xp=5)
        rolled = roll_week(THURSDAY, student)
        assert rolled.weekly_xp == 5
        assert rolled.week_start == SUNDAY
