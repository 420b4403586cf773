"""Live user stores, one per user id in this process."""

from pathlib import Path
from typing import Protocol

import structlog

from learning_league.clock import Clock, SystemClock
from learning_league.engagement.penalty import PenaltyPolicy
from learning_league.engagement.weekly import roll_week
from learning_league.errors import AlreadyExists
from learning_league.models.catalog import Catalog
from learning_league.models.user import Student, Tutor
from learning_league.progression.levels import DEFAULT_XP_LEVEL_BASE, level_for_xp
from learning_league.storage import tutor_records
from learning_league.store.user_store import UserRepository, UserStore

logger = structlog.get_logger()


class UserDirectory(UserRepository, Protocol):
    """Repository that can also enumerate users and check that one exists."""

    def exists(self, user_id: str) -> bool: ...

    def list_users(self) -> list[Student | Tutor]: ...


class SessionRegistry:
    """Creates and caches ``UserStore`` instances.

    Args:
        repository: Persistence collaborator shared by all stores.
        clock: Date source for every store.
        catalog: Static catalog; tutor-assigned goals are layered on per student.
        policy: Penalty checkpoint rules.
        xp_level_base: Level curve base.
        records_dir: Directory of tutor records, or None to skip custom goals.
    """

    def __init__(
        self,
        repository: UserDirectory,
        clock: Clock | None = None,
        catalog: Catalog | None = None,
        policy: PenaltyPolicy | None = None,
        xp_level_base: int = DEFAULT_XP_LEVEL_BASE,
        records_dir: Path | None = None,
    ):
        self.repository = repository
        self.clock = clock or SystemClock()
        self.catalog = catalog
        self.policy = policy or PenaltyPolicy()
        self.xp_level_base = xp_level_base
        self.records_dir = records_dir
        self._stores: dict[str, UserStore] = {}

    def get(self, user_id: str) -> UserStore:
        """Return the live store for a user, loading it on first use.

        Raises:
            NotFound: No such user in the repository.
        """
        store = self._stores.get(user_id)
        if store is None:
            store = self._make_store(self.repository.load(user_id))
            self._stores[user_id] = store
        return store

    def provision(self, user: Student | Tutor) -> UserStore:
        """Create a new account. The role is fixed from here on."""
        if user.id in self._stores or self.repository.exists(user.id):
            raise AlreadyExists("user", user.id)
        if isinstance(user, Student):
            user = user.model_copy(update={"level": level_for_xp(user.xp, self.xp_level_base)})
        self.repository.save(user)
        store = self._make_store(user)
        self._stores[user.id] = store
        logger.info("user_provisioned", user_id=user.id, role=user.role)
        return store

    def refresh_catalog(self, student_id: str) -> None:
        """Re-register tutor-assigned goals after a tutor changes them."""
        store = self._stores.get(student_id)
        if store is not None:
            store.catalog = self._catalog_for(student_id)

    def drop(self, user_id: str) -> None:
        self._stores.pop(user_id, None)

    def all_users(self) -> list[Student | Tutor]:
        """Stored users, with live snapshots taking precedence.

        Students are viewed in today's weekly window, so a student who has
        not been back since an earlier week reads as 0 weekly XP.
        """
        users = {u.id: u for u in self.repository.list_users()}
        for user_id, store in self._stores.items():
            users[user_id] = store.snapshot
        today = self.clock.today()
        return [
            roll_week(today, u) if isinstance(u, Student) else u for u in users.values()
        ]

    def _catalog_for(self, user_id: str) -> Catalog | None:
        if self.catalog is None or self.records_dir is None:
            return self.catalog
        goals = tutor_records.list_custom_goals(self.records_dir, user_id)
        return self.catalog.with_goals([g.as_catalog_goal() for g in goals])

    def _make_store(self, user: Student | Tutor) -> UserStore:
        catalog = self._catalog_for(user.id) if isinstance(user, Student) else self.catalog
        return UserStore(
            user,
            self.repository,
            clock=self.clock,
            catalog=catalog,
            policy=self.policy,
            xp_level_base=self.xp_level_base,
        )
