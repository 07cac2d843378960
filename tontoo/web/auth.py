"""User store and session utilities for authenticated web servers."""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger("tontoo.web.auth")

SESSION_COOKIE = "sessionId"
SESSION_MAX_AGE = 86400


def hash_password(password: str) -> str:
    """
    Hash a password for the user store.

    Args:
        password: Plain text password

    Returns:
        Lowercase hex SHA-256 digest
    """
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(plain_password: str, password_hash: Optional[str]) -> bool:
    """
    Verify a plain password against a stored hash.

    Args:
        plain_password: Plain text password
        password_hash: Hash from the user store, possibly missing

    Returns:
        True if the password matches, False otherwise
    """
    if not plain_password or not password_hash:
        return False
    return hash_password(plain_password) == password_hash


class UserRecord(BaseModel):
    """One ``users.json`` entry."""

    model_config = ConfigDict(populate_by_name=True)

    password_hash: str = Field(alias="passwordHash")
    uuid: str


class UserStore:
    """Username to :class:`UserRecord` mapping persisted as ``users.json``."""

    def __init__(self, path: Path, users: Optional[Dict[str, UserRecord]] = None) -> None:
        self.path = Path(path)
        self.users: Dict[str, UserRecord] = dict(users or {})

    @classmethod
    def load(cls, path: Path, *, server_id: str = "") -> "UserStore":
        path = Path(path)
        if not path.exists():
            logger.error(
                "Error for web server '%s': User authentication enabled but users.json not found.",
                server_id,
            )
            return cls(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            users = {name: UserRecord.model_validate(entry) for name, entry in raw.items()}
        except (OSError, json.JSONDecodeError, AttributeError, ValidationError) as exc:
            logger.error("Error for web server '%s': could not read users.json: %s", server_id, exc)
            return cls(path)
        return cls(path, users)

    def get(self, username: Optional[str]) -> Optional[UserRecord]:
        if not username:
            return None
        return self.users.get(username)

    def __contains__(self, username: object) -> bool:
        return username in self.users

    def register(self, username: str, password: str) -> UserRecord:
        record = UserRecord(password_hash=hash_password(password), uuid=str(uuid.uuid4()))
        self.users[username] = record
        self.save()
        return record

    def save(self) -> None:
        payload = {name: record.model_dump(by_alias=True) for name, record in self.users.items()}
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


@dataclass
class Session:
    user_id: str
    username: str


class SessionStore:
    """In-memory session map; tokens live as long as the server."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    def create(self, user_id: str, username: str) -> str:
        token = str(uuid.uuid4())
        self._sessions[token] = Session(user_id=user_id, username=username)
        return token

    def get(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        return self._sessions.get(token)

    def __len__(self) -> int:
        return len(self._sessions)


def session_cookie(token: str) -> str:
    return f"{SESSION_COOKIE}={token}; HttpOnly; Path=/; Max-Age={SESSION_MAX_AGE}"


__all__ = [
    "hash_password",
    "verify_password",
    "UserRecord",
    "UserStore",
    "Session",
    "SessionStore",
    "session_cookie",
    "SESSION_COOKIE",
]
