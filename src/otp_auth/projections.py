"""Countdown and elapsed-time projections.

Pure helpers over the millisecond timestamps held by the store and the
controller.  The UI polls these; nothing here schedules timers.
"""

from __future__ import annotations

import time

# Countdown turns "urgent" below this many milliseconds
URGENT_THRESHOLD_MS = 10_000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def remaining_ms(expires_at: int, now: int) -> int:
    """Milliseconds until *expires_at*, never negative."""
    return max(expires_at - now, 0)


def elapsed_ms(started_at: int, now: int) -> int:
    """Milliseconds since *started_at*, never negative."""
    return max(now - started_at, 0)


def whole_seconds(ms: int) -> int:
    return ms // 1000


def is_urgent(remaining: int, threshold_ms: int = URGENT_THRESHOLD_MS) -> bool:
    """Return ``True`` while a countdown is running but below *threshold_ms*."""
    return 0 < remaining < threshold_ms


def format_clock(ms: int) -> str:
    """Render a duration as ``MM:SS`` (minutes keep growing past 59)."""
    minutes, seconds = divmod(whole_seconds(max(ms, 0)), 60)
    return f"{minutes:02d}:{seconds:02d}"


def format_duration(ms: int) -> str:
    """Render a duration as ``Xm Ys`` for log lines."""
    minutes, rest = divmod(max(ms, 0), 60_000)
    return f"{minutes}m {rest // 1000}s"
