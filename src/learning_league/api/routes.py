"""REST API routes for users, commands, the catalog and reports."""

import functools
from typing import NoReturn

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field, ValidationError

from learning_league.config import get_settings, load_catalog
from learning_league.engagement.penalty import PenaltyPolicy, is_restricted
from learning_league.errors import (
    AlreadyExists,
    AlreadyOwned,
    CorruptRecord,
    InsufficientFunds,
    InvalidReward,
    LeagueError,
    NotFound,
    NotOwned,
)
from learning_league.models.user import Role, Student, Tutor
from learning_league.reports.leaderboard import build_leaderboard
from learning_league.reports.weekly_summary import build_weekly_summary
from learning_league.storage.users import JsonUserRepository
from learning_league.store.commands import parse_command
from learning_league.store.registry import SessionRegistry
from learning_league.store.user_store import UserStore

logger = structlog.get_logger()
router = APIRouter(prefix="/api")

_ERROR_STATUS: dict[type[LeagueError], int] = {
    NotFound: 404,
    InsufficientFunds: 409,
    AlreadyOwned: 409,
    AlreadyExists: 409,
    NotOwned: 409,
    InvalidReward: 422,
    CorruptRecord: 500,
}


@functools.lru_cache
def get_registry() -> SessionRegistry:
    """Process-wide registry built from settings."""
    settings = get_settings()
    return SessionRegistry(
        JsonUserRepository(settings.users_dir),
        catalog=load_catalog(settings.resolved_catalog_path),
        policy=PenaltyPolicy.from_settings(settings),
        xp_level_base=settings.xp_level_base,
        records_dir=settings.tutor_records_dir,
    )


def raise_http(exc: LeagueError) -> NoReturn:
    status = _ERROR_STATUS.get(type(exc), 400)
    raise HTTPException(
        status_code=status,
        detail={"error": type(exc).__name__, "message": str(exc)},
    ) from exc


def get_store(registry: SessionRegistry, user_id: str) -> UserStore:
    try:
        return registry.get(user_id)
    except (NotFound, CorruptRecord) as e:
        raise_http(e)


def user_payload(store: UserStore) -> dict:
    user = store.snapshot
    payload = {
        "user": user.model_dump(mode="json"),
        "restricted": is_restricted(user),
    }
    if store.progress is not None:
        progress = store.progress
        payload["progress"] = {
            "level": progress.level,
            "xp_into_level": progress.xp_into_level,
            "xp_span": progress.xp_span,
            "next_level_xp": progress.next_level_xp,
        }
    return payload


class ProvisionRequest(BaseModel):
    id: str = Field(pattern=r"^[A-Za-z0-9_.-]{1,64}$")
    name: str
    role: Role
    avatar: str | None = None
    tutor_id: str | None = None
    parent_name: str | None = None
    parent_email: str | None = None
    student_ids: list[str] = Field(default_factory=list)

    def build_user(self) -> Student | Tutor:
        extra = {"avatar": self.avatar} if self.avatar else {}
        if self.role == Role.TUTOR:
            return Tutor(id=self.id, name=self.name, student_ids=tuple(self.student_ids), **extra)
        return Student(
            id=self.id,
            name=self.name,
            tutor_id=self.tutor_id,
            parent_name=self.parent_name,
            parent_email=self.parent_email,
            **extra,
        )


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@router.post("/users", status_code=201)
async def provision_user(
    request: ProvisionRequest, registry: SessionRegistry = Depends(get_registry)
) -> dict:
    """Create a student or tutor account."""
    try:
        store = registry.provision(request.build_user())
    except AlreadyExists as e:
        raise_http(e)
    return user_payload(store)


@router.get("/users/{user_id}")
async def get_user(user_id: str, registry: SessionRegistry = Depends(get_registry)) -> dict:
    return user_payload(get_store(registry, user_id))


@router.post("/users/{user_id}/session")
async def start_session(
    user_id: str, registry: SessionRegistry = Depends(get_registry)
) -> dict:
    """Record the login and run the weekly penalty check."""
    store = get_store(registry, user_id)
    store.start_session()
    return user_payload(store)


@router.post("/users/{user_id}/commands")
async def dispatch_command(
    user_id: str,
    command: dict = Body(...),
    registry: SessionRegistry = Depends(get_registry),
) -> dict:
    """Dispatch a single command against the user's live store."""
    store = get_store(registry, user_id)
    try:
        parsed = parse_command(command)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False)) from e
    try:
        store.dispatch(parsed)
    except LeagueError as e:
        logger.info("command_rejected", user_id=user_id, command=parsed.type, error=str(e))
        raise_http(e)
    return user_payload(store)


@router.post("/users/{user_id}/logout")
async def logout(user_id: str, registry: SessionRegistry = Depends(get_registry)) -> dict:
    store = get_store(registry, user_id)
    store.logout()
    return {"status": "logged_out"}


@router.get("/users/{user_id}/progress")
async def get_progress(user_id: str, registry: SessionRegistry = Depends(get_registry)) -> dict:
    """Level progress for the header bar."""
    store = get_store(registry, user_id)
    if store.progress is None:
        raise HTTPException(status_code=400, detail="Tutors have no progression")
    return user_payload(store)["progress"]


@router.get("/catalog")
async def get_catalog(registry: SessionRegistry = Depends(get_registry)) -> dict:
    if registry.catalog is None:
        return {}
    return registry.catalog.model_dump(mode="json")


@router.get("/leaderboard")
async def get_leaderboard(
    weekly: bool = False,
    limit: int | None = None,
    registry: SessionRegistry = Depends(get_registry),
) -> list[dict]:
    entries = build_leaderboard(registry.all_users(), weekly=weekly, limit=limit)
    return [e.model_dump() for e in entries]


@router.get("/students/{student_id}/weekly-summary")
async def get_weekly_summary(
    student_id: str, registry: SessionRegistry = Depends(get_registry)
) -> dict:
    """Payload for the parent's weekly email."""
    store = get_store(registry, student_id)
    if not isinstance(store.snapshot, Student):
        raise HTTPException(status_code=400, detail="Not a student")
    summary = build_weekly_summary(store.snapshot, registry.clock.today())
    return summary.model_dump(mode="json")
