"""Calendar clocks. The core only ever asks for today's date."""

from datetime import date, timedelta
from typing import Protocol


class Clock(Protocol):
    def today(self) -> date: ...


class SystemClock:
    """Local wall-clock date."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    """Clock pinned to a given date; advance it manually in tests."""

    def __init__(self, current: date):
        self.current = current

    def today(self) -> date:
        return self.current

    def advance(self, days: int = 1) -> date:
        self.current = self.current + timedelta(days=days)
        return self.current
