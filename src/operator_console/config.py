from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _optional_timeout(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return 30.0
    if raw.strip().lower() in {"", "0", "none"}:
        return None
    return float(raw)


@dataclass
class Settings:
    """Where the console talks to and how patient it is.

    Read once from the environment at import; the CLI and the session
    components take their defaults from the module-level ``settings``.
    """

    # Base URL of the training gateway. All REST calls are made relative to it.
    gateway_url: str = os.getenv("GATEWAY_URL", "http://localhost:8000")

    # Base URL of the voice agent's client socket. The call handle returned by
    # the start call is appended as the last path segment.
    voice_agent_ws_url: str = os.getenv("VOICE_AGENT_WS_URL", "ws://localhost:5001/ws/client")

    # Per-request timeout for gateway calls. "0" or "none" disables the
    # client-side timeout and trusts the gateway's own.
    gateway_timeout_seconds: Optional[float] = _optional_timeout(os.getenv("GATEWAY_TIMEOUT_SECONDS"))

    # Quiet period before a burst of report-form edits is persisted.
    form_save_debounce_seconds: float = float(os.getenv("FORM_SAVE_DEBOUNCE_SECONDS", "2.0"))

    # Optional JSON file used to persist the access token between CLI runs.
    token_store_path: Optional[Path] = (
        Path(os.getenv("TOKEN_STORE_PATH")) if os.getenv("TOKEN_STORE_PATH") else None
    )

    # Sessions started from this client are practice runs unless disabled.
    practice_mode: bool = os.getenv("PRACTICE_MODE", "true").lower() == "true"

    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
