from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_STORAGE_KEY = "dbp_sejarah_game_progress"


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _delays_env(name: str, default: tuple[float, ...]) -> tuple[float, ...]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return tuple(float(part) for part in raw.split(",") if part.strip())
    except ValueError as e:
        raise ValueError(f"{name} must be a comma separated list of seconds, got {raw!r}") from e


@dataclass(frozen=True, slots=True)
class EngineSettings:
    storage_key: str = DEFAULT_STORAGE_KEY
    # At most one write per window.
    save_debounce_s: float = 1.0
    # One entry per retry after the first failed attempt.
    save_retry_delays_s: tuple[float, ...] = (1.0, 2.0)
    log_level: str = "INFO"

    @staticmethod
    def from_env() -> "EngineSettings":
        return EngineSettings(
            storage_key=os.environ.get("SEJARAH_STORAGE_KEY", DEFAULT_STORAGE_KEY),
            save_debounce_s=_float_env("SEJARAH_SAVE_DEBOUNCE_S", 1.0),
            save_retry_delays_s=_delays_env("SEJARAH_SAVE_RETRY_DELAYS_S", (1.0, 2.0)),
            log_level=os.environ.get("SEJARAH_LOG_LEVEL", "INFO").upper(),
        )


def server_address() -> tuple[str, int]:
    """Where `sejarah-server` listens: SEJARAH_HOST and SEJARAH_PORT."""

    return os.environ.get("SEJARAH_HOST", "127.0.0.1"), _int_env("SEJARAH_PORT", 8000)


def load_env_file(root: Path) -> bool:
    """Load `<root>/.env` for local runs. Variables already exported win."""

    env_path = root / ".env"
    if not env_path.exists():
        return False
    return load_dotenv(dotenv_path=env_path, override=False)
