from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Sequence
from typing import Any

import redis
from pydantic import ValidationError

from sejarah.api.models import PersistedProgress, ProgressEnvelope
from sejarah.settings import DEFAULT_STORAGE_KEY

logger = logging.getLogger(__name__)

PROGRESS_VERSION = 2

# User-facing strings (the game UI is in Malay).
SAVE_FAILED_MESSAGE = "Kemajuan tidak dapat disimpan. Anda masih boleh terus bermain."
LOAD_FAILED_MESSAGE = "Kemajuan yang disimpan tidak dapat dimuatkan. Permainan bermula semula."


class ProgressLoadError(RuntimeError):
    pass


class StorageError(RuntimeError):
    """A save that still failed after every retry.

    `str(err)` is safe to show to the player.
    """


# ---- envelope + migrations ----

_V1_KEYS = {
    "completedStates": "completed_states",
    "hasSeenTutorial": "has_seen_tutorial",
    "lastPlayedState": "last_played_state",
    "timestamp": "timestamp",
    "playerProfile": "player_profile",
    "allowFontScaling": "allow_font_scaling",
    "answers": "answers",
    "questionIndexByState": "question_index_by_state",
    "stateTimer": "state_timer",
    "money": "money",
    "health": "health",
}

_V1_TIMER_KEYS = {
    "startTime": "start_time",
    "duration": "duration",
    "isPaused": "is_paused",
    "pausedAt": "paused_at",
    "pausedDuration": "paused_duration",
}


def _migrate_v1(doc: dict[str, Any]) -> dict[str, Any]:
    """v1 was the bare camelCase progress document written by the first app release."""

    progress: dict[str, Any] = {}
    for old, new in _V1_KEYS.items():
        if doc.get(old) is not None:
            progress[new] = doc[old]

    timer = progress.get("state_timer")
    if isinstance(timer, dict):
        progress["state_timer"] = {_V1_TIMER_KEYS.get(k, k): v for k, v in timer.items()}

    return {"version": 2, "progress": progress}


# from-version -> step producing the next version's document
MIGRATIONS: dict[int, Callable[[dict[str, Any]], dict[str, Any]]] = {
    1: _migrate_v1,
}


def encode_progress(progress: PersistedProgress) -> str:
    return ProgressEnvelope(version=PROGRESS_VERSION, progress=progress).model_dump_json()


def decode_progress(raw: str) -> PersistedProgress:
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProgressLoadError(f"Saved progress is not valid JSON: {e}") from e

    if not isinstance(doc, dict):
        raise ProgressLoadError("Saved progress must be a JSON object")

    version = doc.get("version", 1)
    if not isinstance(version, int) or version < 1:
        raise ProgressLoadError(f"Unsupported saved progress version: {version!r}")
    if version > PROGRESS_VERSION:
        raise ProgressLoadError(f"Saved progress version {version} is newer than supported {PROGRESS_VERSION}")

    while version < PROGRESS_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise ProgressLoadError(f"No migration from saved progress version {version}")
        doc = step(doc)
        version = doc["version"]

    try:
        return ProgressEnvelope.model_validate(doc).progress
    except ValidationError as e:
        raise ProgressLoadError(f"Saved progress has an invalid shape: {e.error_count()} error(s)") from e


class ProgressStore:
    """One JSON document in one Redis key.

    Single writer (the engine) and single reader (startup load).
    """

    def __init__(
        self,
        *,
        r: redis.Redis,
        key: str = DEFAULT_STORAGE_KEY,
        retry_delays_s: Sequence[float] = (1.0, 2.0),
    ) -> None:
        self._r = r
        self._key = key
        self._retry_delays_s = tuple(retry_delays_s)

    @property
    def key(self) -> str:
        return self._key

    def load(self) -> PersistedProgress | None:
        """Return the saved progress, or None when nothing was ever saved."""

        try:
            raw = self._r.get(self._key)
        except redis.RedisError as e:
            raise ProgressLoadError(f"Failed to read saved progress: {e}") from e
        if not raw:
            return None
        return decode_progress(raw)

    async def save(self, progress: PersistedProgress) -> None:
        payload = encode_progress(progress)
        attempts = 1 + len(self._retry_delays_s)
        last_error: redis.RedisError | None = None

        for attempt in range(attempts):
            try:
                self._r.set(self._key, payload)
            except redis.RedisError as e:
                last_error = e
                if attempt < len(self._retry_delays_s):
                    delay = self._retry_delays_s[attempt]
                    logger.warning(
                        "Saving progress failed (attempt %d/%d), retrying in %.1fs: %s",
                        attempt + 1,
                        attempts,
                        delay,
                        e,
                    )
                    await asyncio.sleep(delay)
                continue

            if attempt:
                logger.info("Saving progress succeeded on attempt %d/%d", attempt + 1, attempts)
            return

        logger.error("Saving progress failed after %d attempts: %s", attempts, last_error)
        raise StorageError(SAVE_FAILED_MESSAGE) from last_error

    def erase(self) -> bool:
        """Best-effort delete. Returns False (and logs) instead of raising."""

        try:
            self._r.delete(self._key)
        except redis.RedisError as e:
            logger.warning("Erasing saved progress failed: %s", e)
            return False
        return True
