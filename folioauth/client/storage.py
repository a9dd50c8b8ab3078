"""
Client token storage: a small JSON file readable only by its owner.
"""

from __future__ import annotations

import json
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional


log = logging.getLogger("folioauth.client.storage")


@dataclass(frozen=True, slots=True)
class StoredSession:
    token: str
    user: Optional[dict[str, Any]] = None

    def __repr__(self) -> str:
        username = (self.user or {}).get("username")
        return f"StoredSession(user={username!r})"


class TokenStorage:
    """Durable holder for the session token and cached user profile."""

    __slots__ = ("_path",)

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def save(self, token: str, user: Optional[dict[str, Any]] = None) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps({"token": token, "user": user})

        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, stat.S_IRUSR | stat.S_IWUSR)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        # O_CREAT mode is ignored for an existing file
        os.chmod(self._path, stat.S_IRUSR | stat.S_IWUSR)

    def load(self) -> Optional[StoredSession]:
        """
        Returns:
            The stored session, or None if absent. A corrupt file is
            deleted and reads as absent.
        """
        if not self._path.exists():
            return None

        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            token = data["token"]
            if not isinstance(token, str) or not token:
                raise ValueError("token must be a non-empty string")
            user = data.get("user")
            return StoredSession(token=token, user=user if isinstance(user, dict) else None)
        except (ValueError, KeyError, TypeError, AttributeError):
            log.warning("Discarding unreadable session file %s", self._path)
            self.clear()
            return None

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
