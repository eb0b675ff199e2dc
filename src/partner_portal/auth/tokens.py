"""Token models and persistence.

Learn: The backend issues two tokens on login:
- access: short-lived bearer credential attached to every API call
- refresh: longer-lived, used only to mint a new access token

Both are kept in a TokenStore under two fixed names ("access_token",
"refresh_token"). The store is the sole source of truth for "is a user
logged in" — there is no in-memory copy on the client.

Two stores ship here:
- MemoryTokenStore → tests and short-lived scripts
- FileTokenStore → a JSON file in the user's config dir (the CLI's store)
"""

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog
from pydantic import BaseModel

logger = structlog.get_logger()

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"


# ─── Models ──────────────────────────────────────────────


class Credentials(BaseModel):
    """Username/password pair. Sent once to the token endpoint, never stored."""
    username: str
    password: str


class TokenPair(BaseModel):
    """Response of POST /api/v1/token/."""
    access: str
    refresh: str


class AccessToken(BaseModel):
    """Response of POST /api/v1/token/refresh/."""
    access: str


# ─── Stores ──────────────────────────────────────────────


class TokenStore(ABC):
    """Key/value storage for the token pair.

    Subclasses implement the three primitives; read/write/clear are
    built on top of them.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @property
    def access_token(self) -> Optional[str]:
        return self.get(ACCESS_TOKEN_KEY)

    @property
    def refresh_token(self) -> Optional[str]:
        return self.get(REFRESH_TOKEN_KEY)

    def read(self) -> Optional[TokenPair]:
        """Return the stored pair, or None unless both tokens are present."""
        access = self.access_token
        refresh = self.refresh_token
        if not access or not refresh:
            return None
        return TokenPair(access=access, refresh=refresh)

    def write(self, pair: TokenPair) -> None:
        self.set(ACCESS_TOKEN_KEY, pair.access)
        self.set(REFRESH_TOKEN_KEY, pair.refresh)

    def clear(self) -> None:
        """Remove both tokens. Safe to call on an empty store."""
        self.delete(ACCESS_TOKEN_KEY)
        self.delete(REFRESH_TOKEN_KEY)


class MemoryTokenStore(TokenStore):
    """Dict-backed store. Each instance is independent."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def __repr__(self) -> str:
        return f"MemoryTokenStore(keys={sorted(self._items)})"


class FileTokenStore(TokenStore):
    """JSON file store, readable only by the current user.

    Learn: Every operation re-reads the file, so two processes (e.g. two
    CLI invocations) always see each other's logins and logouts. The file
    is removed once it holds no tokens. A missing or corrupt file reads
    as an empty store.
    """

    def __init__(self, path):
        self.path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("portal.token_file_corrupt", path=str(self.path))
            return {}

        if not isinstance(data, dict):
            logger.warning("portal.token_file_corrupt", path=str(self.path))
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self, items: dict[str, str]) -> None:
        if not items:
            self.path.unlink(missing_ok=True)
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Readers only ever see a complete file
        tmp = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(items, f)
            os.replace(tmp, self.path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._save(items)

    def delete(self, key: str) -> None:
        items = self._load()
        if key in items:
            del items[key]
            self._save(items)

    def __repr__(self) -> str:
        return f"FileTokenStore(path={str(self.path)!r})"
