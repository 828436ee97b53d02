from collections import defaultdict

from planchat.store.base import TaskStore
from planchat.store.schemas import ScheduleRecord, TaskRecord


class InMemoryTaskStore(TaskStore):
    """Process-local store, used by tests and the CLI."""

    def __init__(self, user_id: str | None = None) -> None:
        super().__init__(user_id)
        self._task_data: dict[str, dict[str, TaskRecord]] = defaultdict(dict)
        self._schedule_data: dict[str, dict[str, ScheduleRecord]] = defaultdict(dict)

    def _tasks(self, user_id: str) -> dict[str, TaskRecord]:
        return self._task_data[user_id]

    def _schedules(self, user_id: str) -> dict[str, ScheduleRecord]:
        return self._schedule_data[user_id]
