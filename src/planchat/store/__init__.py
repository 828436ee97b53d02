from planchat.store.base import TaskStore
from planchat.store.json_file import JsonFileTaskStore
from planchat.store.memory import InMemoryTaskStore
from planchat.store.schemas import (
    EstimateSource,
    ScheduleRecord,
    TaskRecord,
    TaskStatus,
)

__all__ = [
    "EstimateSource",
    "InMemoryTaskStore",
    "JsonFileTaskStore",
    "ScheduleRecord",
    "TaskRecord",
    "TaskStatus",
    "TaskStore",
]
