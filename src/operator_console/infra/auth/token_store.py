from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional, Protocol

from src.operator_console.config import settings

logger = logging.getLogger("auth")


class TokenStore(Protocol):
    """Where the gateway access token lives between requests."""

    def get_token(self) -> Optional[str]:  # pragma: no cover - interface
        raise NotImplementedError

    def set_token(self, token: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def clear(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class InMemoryTokenStore:
    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token

    def get_token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileTokenStore:
    """Keeps the token in a small JSON file so CLI invocations share a login.

    The file holds ``{"access_token": "..."}``. A missing or unreadable file is
    treated as "not logged in".
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def get_token(self) -> Optional[str]:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable token file %s", self._path)
            return None
        token = data.get("access_token") if isinstance(data, dict) else None
        return token or None

    def set_token(self, token: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps({"access_token": token}), encoding="utf-8")

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()


def get_token_store_from_env() -> TokenStore:
    """Select a token store based on TOKEN_STORE_PATH.

    - TOKEN_STORE_PATH set → FileTokenStore at that path
    - unset → InMemoryTokenStore (token lives for the process only)
    """

    if settings.token_store_path is not None:
        return FileTokenStore(settings.token_store_path)
    return InMemoryTokenStore()
