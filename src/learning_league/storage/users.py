"""User persistence (JSON + fcntl.flock + atomic write)."""

import fcntl
import os
import re
import tempfile
from pathlib import Path

import structlog
from pydantic import ValidationError

from learning_league.errors import CorruptRecord, NotFound, PersistenceFailure
from learning_league.models.user import Student, Tutor, parse_user

logger = structlog.get_logger()

_USER_ID_RE = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


def validate_user_id(user_id: str) -> str:
    """Reject ids that cannot be used safely as a file name."""
    if not _USER_ID_RE.match(user_id) or user_id.startswith("."):
        raise NotFound("user", user_id)
    return user_id


class JsonUserRepository:
    """One JSON file per user under ``users_dir``.

    Args:
        users_dir: Directory holding ``<user_id>.json`` records.
    """

    def __init__(self, users_dir: Path):
        self.users_dir = users_dir
        self.users_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, user_id: str) -> Path:
        return self.users_dir / f"{validate_user_id(user_id)}.json"

    def exists(self, user_id: str) -> bool:
        try:
            return self.path_for(user_id).exists()
        except NotFound:
            return False

    def load(self, user_id: str) -> Student | Tutor:
        path = self.path_for(user_id)
        if not path.exists():
            raise NotFound("user", user_id)
        with open(path, encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            raw = f.read()
            fcntl.flock(f, fcntl.LOCK_UN)
        try:
            return parse_user(raw)
        except ValidationError as e:
            logger.error("user_parse_error", path=str(path), errors=e.error_count())
            raise CorruptRecord(user_id, str(e)) from e

    def save(self, user: Student | Tutor) -> None:
        path = self.path_for(user.id)
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=path.parent, delete=False, suffix=".json", encoding="utf-8"
            ) as tmp:
                tmp.write(user.model_dump_json(indent=2))
            os.replace(tmp.name, path)
        except OSError as e:
            raise PersistenceFailure(user.id, str(e)) from e

    def list_users(self) -> list[Student | Tutor]:
        users = []
        for path in sorted(self.users_dir.glob("*.json")):
            try:
                users.append(parse_user(path.read_text(encoding="utf-8")))
            except (OSError, ValidationError):
                logger.warning("user_parse_error", path=str(path))
        return users
