import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class TaskStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"


class EstimateSource(str, Enum):
    USER = "user"
    MODEL = "model"
    HEURISTIC = "heuristic"


def generate_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(UTC)


class TaskRecord(BaseModel):
    id: str = Field(default_factory=generate_id)
    title: str = ""
    due_date: datetime | None = None
    estimated_duration_minutes: int | None = None
    estimate_source: EstimateSource | None = None
    status: TaskStatus = TaskStatus.PENDING
    completed: bool = False
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def sync_completed(self) -> "TaskRecord":
        self.completed = self.status == TaskStatus.DONE
        return self

    @property
    def is_pending(self) -> bool:
        return self.status == TaskStatus.PENDING


class ScheduleRecord(BaseModel):
    id: str = Field(default_factory=generate_id)
    title: str = ""
    start_time: datetime | None = None
    remind_minutes_before: int = 10
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
