"""Persistence collaborator for confirmed tasks and schedules.

Every operation is scoped to the signed-in user and raises
``NotAuthenticatedError`` when there is none.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from planchat.errors import NotAuthenticatedError, TaskNotFoundError
from planchat.store.schemas import (
    EstimateSource,
    ScheduleRecord,
    TaskRecord,
    TaskStatus,
    utc_now,
)

logger = logging.getLogger(__name__)

# Fields a caller may patch on a task.
UPDATABLE_TASK_FIELDS = {
    "title",
    "due_date",
    "estimated_duration_minutes",
    "estimate_source",
    "status",
    "completed",
}


class TaskStore(ABC):
    """Task/schedule storage for one signed-in user."""

    def __init__(self, user_id: str | None = None) -> None:
        self.user_id = user_id

    def require_user(self) -> str:
        if not self.user_id:
            raise NotAuthenticatedError()
        return self.user_id

    def _scoped_user(self, user_id: str | None) -> str:
        """Signed-in user id; an explicit ``user_id`` must name that same user."""
        uid = self.require_user()
        if user_id and user_id != uid:
            logger.warning("Refusing access to %s while signed in as %s", user_id, uid)
            raise NotAuthenticatedError()
        return uid

    @abstractmethod
    def _tasks(self, user_id: str) -> dict[str, TaskRecord]:
        """Mutable task mapping for a user."""
        ...

    @abstractmethod
    def _schedules(self, user_id: str) -> dict[str, ScheduleRecord]:
        """Mutable schedule mapping for a user."""
        ...

    def _commit(self, user_id: str) -> None:
        """Persist pending changes; no-op for purely in-memory stores."""

    # -- tasks ---------------------------------------------------------------

    def create_task(
        self,
        title: str,
        due_date: datetime | None = None,
        estimated_duration_minutes: int | None = None,
        *,
        status: TaskStatus = TaskStatus.PENDING,
        estimate_source: EstimateSource | None = None,
    ) -> str:
        uid = self.require_user()
        record = TaskRecord(
            title=(title or "").strip(),
            due_date=due_date,
            estimated_duration_minutes=estimated_duration_minutes,
            estimate_source=estimate_source,
            status=status,
        )
        self._tasks(uid)[record.id] = record
        self._commit(uid)
        logger.info("Created task %s for %s", record.id, uid)
        return record.id

    def get_task(self, task_id: str) -> TaskRecord:
        uid = self.require_user()
        try:
            return self._tasks(uid)[task_id]
        except KeyError:
            raise TaskNotFoundError(task_id) from None

    def list_pending_tasks(self, user_id: str | None = None) -> list[TaskRecord]:
        uid = self._scoped_user(user_id)
        return [t for t in self._tasks(uid).values() if t.is_pending]

    def update_task(self, task_id: str, patch: dict[str, Any]) -> TaskRecord:
        """Apply a partial update; ``completed`` and ``status`` stay in sync."""
        uid = self.require_user()
        current = self.get_task(task_id)

        changes = {k: v for k, v in patch.items() if k in UPDATABLE_TASK_FIELDS}
        if isinstance(changes.get("completed"), bool):
            changes["status"] = TaskStatus.DONE if changes["completed"] else TaskStatus.PENDING
        changes.pop("completed", None)
        changes["updated_at"] = utc_now()

        updated = TaskRecord.model_validate({**current.model_dump(), **changes})
        self._tasks(uid)[task_id] = updated
        self._commit(uid)
        logger.debug("Updated task %s: %s", task_id, sorted(changes))
        return updated

    def update_task_estimated_duration(
        self,
        task_id: str,
        minutes: int,
        source: EstimateSource = EstimateSource.HEURISTIC,
    ) -> TaskRecord:
        return self.update_task(
            task_id, {"estimated_duration_minutes": minutes, "estimate_source": source}
        )

    def delete_task(self, task_id: str) -> None:
        uid = self.require_user()
        if self._tasks(uid).pop(task_id, None) is None:
            raise TaskNotFoundError(task_id)
        self._commit(uid)
        logger.info("Deleted task %s", task_id)

    # -- schedules -----------------------------------------------------------

    def create_schedule(
        self,
        title: str,
        start_time: datetime | None = None,
        remind_minutes_before: int = 10,
    ) -> str:
        uid = self.require_user()
        record = ScheduleRecord(
            title=(title or "").strip(),
            start_time=start_time,
            remind_minutes_before=remind_minutes_before,
        )
        self._schedules(uid)[record.id] = record
        self._commit(uid)
        logger.info("Created schedule %s for %s", record.id, uid)
        return record.id

    def create_task_and_schedule(
        self,
        title: str,
        start_time: datetime | None = None,
        due_date: datetime | None = None,
        estimated_duration_minutes: int | None = None,
        remind_minutes_before: int = 10,
    ) -> tuple[str, str]:
        task_id = self.create_task(title, due_date, estimated_duration_minutes)
        schedule_id = self.create_schedule(title, start_time, remind_minutes_before)
        return task_id, schedule_id

    def delete_schedule(self, schedule_id: str) -> None:
        uid = self.require_user()
        self._schedules(uid).pop(schedule_id, None)
        self._commit(uid)

    def query_schedule_range(
        self, user_id: str | None, start: datetime, end: datetime
    ) -> list[ScheduleRecord]:
        """Schedules starting within [start, end], earliest first."""
        uid = self._scoped_user(user_id)
        hits = [
            s
            for s in self._schedules(uid).values()
            if s.start_time is not None and start <= s.start_time <= end
        ]
        return sorted(hits, key=lambda s: s.start_time)
