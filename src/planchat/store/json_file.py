"""File-backed store: one JSON document per user under the data directory."""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from planchat.config import settings
from planchat.store.base import TaskStore
from planchat.store.schemas import ScheduleRecord, TaskRecord

logger = logging.getLogger(__name__)


class JsonFileTaskStore(TaskStore):
    def __init__(self, user_id: str | None = None, data_dir: Path | None = None) -> None:
        super().__init__(user_id)
        self.data_dir = data_dir or Path(settings.data_dir).expanduser()
        self._cache: dict[str, dict[str, Any]] = {}

    def _path(self, user_id: str) -> Path:
        return self.data_dir / "users" / f"{user_id}.json"

    def _load(self, user_id: str) -> dict[str, Any]:
        if user_id in self._cache:
            return self._cache[user_id]

        data: dict[str, Any] = {"tasks": {}, "schedules": {}}
        path = self._path(user_id)
        if path.exists():
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
                if not isinstance(raw, dict):
                    raise ValueError(f"expected an object, got {type(raw).__name__}")
                data["tasks"] = {
                    k: TaskRecord.model_validate(v) for k, v in raw.get("tasks", {}).items()
                }
                data["schedules"] = {
                    k: ScheduleRecord.model_validate(v)
                    for k, v in raw.get("schedules", {}).items()
                }
            except (ValueError, AttributeError, ValidationError) as e:
                # Set aside; the user starts from an empty document.
                corrupt = path.with_suffix(".json.corrupt")
                path.replace(corrupt)
                logger.error("Corrupt store file %s moved to %s: %s", path, corrupt, e)
                data = {"tasks": {}, "schedules": {}}
        self._cache[user_id] = data
        return data

    def _tasks(self, user_id: str) -> dict[str, TaskRecord]:
        return self._load(user_id)["tasks"]

    def _schedules(self, user_id: str) -> dict[str, ScheduleRecord]:
        return self._load(user_id)["schedules"]

    def _commit(self, user_id: str) -> None:
        data = self._load(user_id)
        path = self._path(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "tasks": {k: v.model_dump(mode="json") for k, v in data["tasks"].items()},
            "schedules": {k: v.model_dump(mode="json") for k, v in data["schedules"].items()},
        }
        staging = path.with_suffix(".json.tmp")
        staging.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        staging.replace(path)
