"""Durable storage for the client session (user + token)."""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Signed-in user's public profile and bearer token. Always set or cleared together."""
    user: dict
    token: str


class SessionStorage(Protocol):
    def load(self) -> SessionState | None: ...
    def save(self, state: SessionState) -> None: ...
    def clear(self) -> None: ...


class MemorySessionStorage:
    def __init__(self, state: SessionState | None = None):
        self.state = state

    def load(self) -> SessionState | None:
        return self.state

    def save(self, state: SessionState) -> None:
        self.state = state

    def clear(self) -> None:
        self.state = None


class FileSessionStorage:
    """Keep the session in a JSON file so it survives restarts."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> SessionState | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not data.get("user") or not data.get("token"):
                raise ValueError("incomplete session")
            return SessionState(user=data["user"], token=data["token"])
        except (OSError, ValueError, AttributeError) as e:
            logger.warning("Discarding unreadable saved session", extra={"path": str(self.path), "error": str(e)})
            self.clear()
            return None

    def save(self, state: SessionState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(asdict(state)), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
