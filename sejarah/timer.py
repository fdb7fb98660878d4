"""Pausable countdown arithmetic.

Everything here is a pure function over a `TimerRecord` and an explicit
wall-clock reading, so callers control time.
"""
from __future__ import annotations

import time

from sejarah.api.models import TimerRecord

TIMER_GREEN = "#4CAF50"
TIMER_AMBER = "#FFC107"
TIMER_RED = "#F44336"


def now_ms() -> int:
    return int(time.time() * 1000)


def start_timer(duration: int | None, *, now: int) -> TimerRecord | None:
    """A `None` duration means the region has no timer."""

    if duration is None:
        return None
    return TimerRecord(start_time=now, duration=duration)


def pause_timer(timer: TimerRecord, *, now: int) -> TimerRecord:
    # A second pause would move paused_at forward and lose paused time.
    if timer.is_paused:
        return timer
    return timer.model_copy(update={"is_paused": True, "paused_at": now})


def _paused_ms(timer: TimerRecord) -> int:
    # paused_duration is persisted in seconds but always accrues whole milliseconds.
    return round(timer.paused_duration * 1000)


def resume_timer(timer: TimerRecord, *, now: int) -> TimerRecord:
    if not timer.is_paused or timer.paused_at is None:
        return timer
    paused_ms = _paused_ms(timer) + max(0, now - timer.paused_at)
    return timer.model_copy(
        update={
            "is_paused": False,
            "paused_at": None,
            "paused_duration": paused_ms / 1000,
        }
    )


def elapsed_ms(timer: TimerRecord, *, now: int) -> int:
    """Milliseconds counted against the countdown; time spent paused is excluded."""

    reference = timer.paused_at if timer.is_paused and timer.paused_at is not None else now
    return reference - timer.start_time - _paused_ms(timer)


def elapsed_seconds(timer: TimerRecord, *, now: int) -> float:
    return elapsed_ms(timer, now=now) / 1000


def time_remaining(timer: TimerRecord, *, now: int) -> int:
    return max(0, timer.duration - elapsed_ms(timer, now=now) // 1000)


def is_expired(timer: TimerRecord, *, now: int) -> bool:
    return time_remaining(timer, now=now) <= 0


def format_time(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


def timer_color(remaining: int, total: int) -> str:
    if total <= 0:
        return TIMER_RED
    pct = remaining / total * 100
    if pct > 50:
        return TIMER_GREEN
    if pct > 25:
        return TIMER_AMBER
    return TIMER_RED
