from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class EntityKind(str, Enum):
    SCHEDULE = "schedule"
    TASK = "task"
    BOTH = "both"
    OTHER = "other"

    @classmethod
    def coerce(cls, value: Any) -> "EntityKind | None":
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class TaskFragment:
    title: str
    due_date: datetime | None = None
    estimated_duration_minutes: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "due_date": _iso(self.due_date),
            "estimated_duration_minutes": self.estimated_duration_minutes,
        }


@dataclass
class ParsedEntity:
    kind: EntityKind
    title: str = ""
    start_time: datetime | None = None
    due_date: datetime | None = None
    estimated_duration_minutes: int | None = None
    tasks: list[TaskFragment] = field(default_factory=list)
    raw_text: str = ""

    @property
    def has_schedule(self) -> bool:
        return self.start_time is not None

    @property
    def has_tasks(self) -> bool:
        return len(self.tasks) > 0


@dataclass
class ConfirmationCard:
    kind: EntityKind
    title: str = ""
    start_time: datetime | None = None
    due_date: datetime | None = None
    estimated_duration_minutes: int | None = None
    tasks: list[TaskFragment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "start_time": _iso(self.start_time),
            "due_date": _iso(self.due_date),
            "estimated_duration_minutes": self.estimated_duration_minutes,
            "tasks": [task.to_dict() for task in self.tasks],
        }
