"""Keyword heuristic for task effort in minutes.

Used wherever a task is missing an estimate: fresh extraction results,
confirmed saves and backfilling stored records.
"""

import math
import re
from typing import Any

# First matching rule wins.
DURATION_RULES: tuple[tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"정리|확인|전화|통화|콜|메일|결제|구매|예약"), 10),
    (re.compile(r"작성|보고|제출|면접|준비|정돈"), 25),
)

DEFAULT_DURATION_MINUTES = 5

# Discrete estimates a task may carry.
ALLOWED_DURATIONS: tuple[int, ...] = (5, 10, 15, 20, 25, 30, 45, 60)


def estimate_duration(title: str) -> int:
    """Estimated minutes for a task title."""
    for pattern, minutes in DURATION_RULES:
        if pattern.search(title or ""):
            return minutes
    return DEFAULT_DURATION_MINUTES


def snap_duration(value: float | int | None) -> int | None:
    """Round a positive estimate to the nearest allowed value (ties go down)."""
    if value is None or value <= 0:
        return None
    return min(ALLOWED_DURATIONS, key=lambda allowed: (abs(allowed - value), allowed))


def coerce_duration(value: Any) -> int | None:
    """Snap a loosely typed estimate ("25", 24.5, "abc") or return None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return snap_duration(number) if math.isfinite(number) else None
