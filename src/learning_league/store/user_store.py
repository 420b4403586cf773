"""User store: owns the live user snapshot and the dispatch surface."""

import asyncio
from collections.abc import Callable
from typing import Protocol

import structlog

from learning_league.clock import Clock, SystemClock
from learning_league.engagement.penalty import PenaltyPolicy
from learning_league.errors import PersistenceFailure
from learning_league.models.catalog import Catalog
from learning_league.models.user import Student, Tutor
from learning_league.progression.levels import (
    DEFAULT_XP_LEVEL_BASE,
    LevelProgress,
    level_progress,
)
from learning_league.store.commands import EvaluatePenalty, Logout, RecordLogin
from learning_league.store.reducer import ReduceContext, reduce

logger = structlog.get_logger()

Listener = Callable[[Student | Tutor], None]
FailureHandler = Callable[[PersistenceFailure], None]


class UserRepository(Protocol):
    """Persistence collaborator."""

    def load(self, user_id: str) -> Student | Tutor: ...

    def save(self, user: Student | Tutor) -> None: ...


class UserStore:
    """Single live user record with one-way data flow.

    Commands are reduced synchronously, one at a time. After a command that
    changed the snapshot, listeners are notified and the snapshot is written
    behind: on a worker thread when an event loop is running, inline
    otherwise. A failed write is reported to failure handlers and never
    rolls the in-memory snapshot back.

    Args:
        user: Initial snapshot, usually from ``repository.load``.
        repository: Persistence collaborator with ``save(user)``.
        clock: Supplies today's date for streak and weekly rules.
        catalog: Optional lookup tables used to reject unknown ids.
        policy: Penalty checkpoint rules.
        xp_level_base: Level curve base.
    """

    def __init__(
        self,
        user: Student | Tutor,
        repository: UserRepository,
        clock: Clock | None = None,
        catalog: Catalog | None = None,
        policy: PenaltyPolicy | None = None,
        xp_level_base: int = DEFAULT_XP_LEVEL_BASE,
    ):
        self._user = user
        self._repository = repository
        self._clock = clock or SystemClock()
        self.catalog = catalog
        self._policy = policy or PenaltyPolicy()
        self._xp_level_base = xp_level_base
        self._listeners: list[Listener] = []
        self._failure_handlers: list[FailureHandler] = []
        self._last_write: asyncio.Task | None = None
        self._pending: set[asyncio.Task] = set()
        self._progress: LevelProgress | None = None
        self.session_active = False

    @property
    def snapshot(self) -> Student | Tutor:
        return self._user

    @property
    def user_id(self) -> str:
        return self._user.id

    @property
    def progress(self) -> LevelProgress | None:
        """Progress within the current level; None for tutors."""
        if not isinstance(self._user, Student):
            return None
        if self._progress is None:
            self._progress = level_progress(self._user.xp, self._xp_level_base)
        return self._progress

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def on_persistence_failure(self, handler: FailureHandler) -> Callable[[], None]:
        """Register a handler for failed writes. Returns an unsubscribe callable."""
        self._failure_handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._failure_handlers:
                self._failure_handlers.remove(handler)

        return unsubscribe

    def dispatch(self, command) -> Student | Tutor:
        """Reduce one command against the current snapshot.

        Raises:
            InvalidReward, InsufficientFunds, AlreadyOwned, NotFound, NotOwned:
                The command was rejected; the snapshot is unchanged.
        """
        if isinstance(command, Logout):
            self._end_session()
            return self._user

        ctx = ReduceContext(
            today=self._clock.today(),
            catalog=self.catalog,
            policy=self._policy,
            xp_level_base=self._xp_level_base,
        )
        next_user = reduce(self._user, command, ctx)
        if next_user == self._user:
            return self._user

        self._user = next_user
        self._progress = None
        self._persist(next_user)
        for listener in list(self._listeners):
            listener(next_user)
        return next_user

    def start_session(self) -> Student | Tutor:
        """Session-start hook: record the login, then run the penalty check."""
        self.session_active = True
        self.dispatch(RecordLogin())
        self.dispatch(EvaluatePenalty())
        logger.info("session_started", user_id=self.user_id)
        return self._user

    def logout(self) -> None:
        self.dispatch(Logout())

    def _end_session(self) -> None:
        self.session_active = False
        self._progress = None
        logger.info("session_ended", user_id=self.user_id)

    async def flush(self) -> None:
        """Wait for all scheduled writes to finish.

        Cancelling the caller does not cancel the writes themselves.
        """
        if self._pending:
            await asyncio.wait(set(self._pending))

    def _persist(self, user: Student | Tutor) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            try:
                self._save(user)
            except PersistenceFailure as e:
                self._report(e)
            return

        task = loop.create_task(self._write_behind(user, self._last_write))
        self._last_write = task
        self._pending.add(task)
        task.add_done_callback(self._on_write_done)

    async def _write_behind(self, user: Student | Tutor, previous: asyncio.Task | None) -> None:
        # Keep writes in dispatch order so the newest snapshot lands last
        if previous is not None:
            await asyncio.wait({previous})
        await asyncio.to_thread(self._save, user)

    def _on_write_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if isinstance(exc, PersistenceFailure):
            self._report(exc)
        elif exc is not None:
            self._report(PersistenceFailure(self.user_id, repr(exc)))

    def _save(self, user: Student | Tutor) -> None:
        try:
            self._repository.save(user)
        except PersistenceFailure:
            raise
        except Exception as e:
            raise PersistenceFailure(user.id, str(e)) from e

    def _report(self, failure: PersistenceFailure) -> None:
        logger.warning("persist_failed", user_id=failure.user_id, reason=failure.reason)
        for handler in list(self._failure_handlers):
            handler(failure)
