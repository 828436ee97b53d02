"""Coach-style digest of pending tasks grouped by estimated effort.

Pending tasks due today or earlier (or undated) are bucketed by duration:

    ≤5, ≤10, ≤30, ≤60, >60 minutes

and rendered as a one-line coach summary plus a bulleted message listing
the first few tasks of each bucket, shortest bucket first.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pytz

from planchat.config import settings
from planchat.services.duration import DEFAULT_DURATION_MINUTES
from planchat.store.schemas import TaskRecord

logger = logging.getLogger(__name__)

# (label, inclusive upper bound in minutes)
BUCKETS: tuple[tuple[str, float], ...] = (
    ("≤5", 5),
    ("≤10", 10),
    ("≤30", 30),
    ("≤60", 60),
    (">60", float("inf")),
)
BUCKET_ORDER: tuple[str, ...] = tuple(label for label, _ in BUCKETS)

NOTHING_TO_DO = "오늘 처리할 할 일이 없어요. 잘 하고 있어요! 🙌"


@dataclass
class Digest:
    coach_line: str
    message: str = ""
    groups: dict[str, list[TaskRecord]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.groups


def bucketize(minutes: float) -> str:
    for label, upper in BUCKETS:
        if minutes <= upper:
            return label
    return BUCKET_ORDER[-1]


def task_minutes(task: TaskRecord) -> int:
    if task.estimated_duration_minutes is None:
        return DEFAULT_DURATION_MINUTES
    return task.estimated_duration_minutes


def _as_record(task: TaskRecord | dict[str, Any]) -> TaskRecord:
    if isinstance(task, TaskRecord):
        return task
    return TaskRecord.model_validate(task)


class DigestBuilder:
    """Select, bucket and render pending tasks for one point in time."""

    def __init__(self, timezone: str | None = None, bucket_limit: int | None = None):
        self.timezone = pytz.timezone(timezone or settings.user_timezone)
        self.bucket_limit = bucket_limit or settings.digest_bucket_limit

    def _local(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            return self.timezone.localize(value)
        return value.astimezone(self.timezone)

    def select_candidates(self, tasks: Iterable[TaskRecord], now: datetime) -> list[TaskRecord]:
        """Pending tasks that are undated or due today or earlier."""
        today = self._local(now).date()
        return [
            t
            for t in tasks
            if t.is_pending and (t.due_date is None or self._local(t.due_date).date() <= today)
        ]

    def _sort_key(self, task: TaskRecord) -> tuple[int, float, float]:
        # earliest due first, undated last, then most recently updated
        if task.due_date is None:
            due_rank, due_ts = 1, 0.0
        else:
            due_rank, due_ts = 0, self._local(task.due_date).timestamp()
        return (due_rank, due_ts, -self._local(task.updated_at).timestamp())

    def group(self, tasks: Iterable[TaskRecord]) -> dict[str, list[TaskRecord]]:
        groups: dict[str, list[TaskRecord]] = {}
        for task in tasks:
            groups.setdefault(bucketize(task_minutes(task)), []).append(task)
        return {
            label: sorted(groups[label], key=self._sort_key)
            for label in BUCKET_ORDER
            if label in groups
        }

    def coach_line(self, groups: dict[str, list[TaskRecord]]) -> str:
        parts = [f"{label} {len(groups[label])}개" for label in BUCKET_ORDER if groups.get(label)]
        if not parts:
            return NOTHING_TO_DO
        return f"지금 처리하면 좋은 일: {', '.join(parts)}. 짧은 일부터 가볍게 시작해요!"

    def message(self, groups: dict[str, list[TaskRecord]]) -> str:
        lines = []
        for label in BUCKET_ORDER:
            tasks = groups.get(label)
            if not tasks:
                continue
            lines.append(f"• {label}")
            for task in tasks[: self.bucket_limit]:
                due_text = ""
                if task.due_date is not None:
                    due = self._local(task.due_date)
                    due_text = f" (마감 {due.month}/{due.day} {due:%H:%M})"
                lines.append(f"   - {task.title} · {task_minutes(task)}분{due_text}")
        return "\n".join(lines)

    def build(
        self, tasks: Iterable[TaskRecord | dict[str, Any]], now: datetime | None = None
    ) -> Digest:
        now = now or datetime.now(self.timezone)
        candidates = self.select_candidates((_as_record(t) for t in tasks), now)
        if not candidates:
            return Digest(coach_line=NOTHING_TO_DO)

        groups = self.group(candidates)
        logger.debug("Digest buckets: %s", {k: len(v) for k, v in groups.items()})
        return Digest(
            coach_line=self.coach_line(groups),
            message=self.message(groups),
            groups=groups,
        )


def digest_for_pending_tasks(
    tasks: Iterable[TaskRecord | dict[str, Any]], now: datetime | None = None
) -> Digest:
    """Coach line, bulleted message and duration groups for pending tasks."""
    return DigestBuilder().build(tasks, now=now)
