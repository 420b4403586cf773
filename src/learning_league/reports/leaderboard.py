"""Student leaderboard."""

from pydantic import BaseModel

from learning_league.models.user import Student, Tutor


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    name: str
    avatar: str
    level: int
    xp: int
    weekly_xp: int


def build_leaderboard(
    users: list[Student | Tutor], weekly: bool = False, limit: int | None = None
) -> list[LeaderboardEntry]:
    """Rank students by lifetime XP, or by this week's XP.

    Ties share a rank (1, 2, 2, 4) and are listed by name.
    """
    students = [u for u in users if isinstance(u, Student)]

    def score(s: Student) -> int:
        return s.weekly_xp if weekly else s.xp

    students.sort(key=lambda s: (-score(s), s.name.lower()))

    entries: list[LeaderboardEntry] = []
    for i, s in enumerate(students):
        if entries and score(s) == score(students[i - 1]):
            rank = entries[-1].rank
        else:
            rank = i + 1
        entries.append(LeaderboardEntry(
            rank=rank,
            user_id=s.id,
            name=s.name,
            avatar=s.avatar,
            level=s.level,
            xp=s.xp,
            weekly_xp=s.weekly_xp,
        ))
    return entries[:limit] if limit is not None else entries
