"""Tests for the task/schedule stores."""

from datetime import datetime

import pytest
import pytz

from planchat.errors import NotAuthenticatedError, TaskNotFoundError
from planchat.store import (
    EstimateSource,
    InMemoryTaskStore,
    JsonFileTaskStore,
    TaskRecord,
    TaskStatus,
)

SEOUL = pytz.timezone("Asia/Seoul")


def at(day, hour):
    return SEOUL.localize(datetime(2025, 3, day, hour, 0))


@pytest.fixture
def store() -> InMemoryTaskStore:
    return InMemoryTaskStore(user_id="user-1")


class TestAuthentication:
    def test_operations_require_user(self) -> None:
        store = InMemoryTaskStore()
        with pytest.raises(NotAuthenticatedError):
            store.create_task("우유 사기")
        with pytest.raises(NotAuthenticatedError):
            store.create_schedule("미팅")
        with pytest.raises(NotAuthenticatedError):
            store.list_pending_tasks()

    def test_explicit_user_id_does_not_bypass_sign_in(self) -> None:
        alice = InMemoryTaskStore(user_id="alice")
        alice.create_task("비밀 할 일")
        alice.user_id = None
        with pytest.raises(NotAuthenticatedError):
            alice.list_pending_tasks("alice")
        with pytest.raises(NotAuthenticatedError):
            alice.query_schedule_range("alice", at(5, 0), at(5, 23))

    def test_other_user_id_rejected(self, store: InMemoryTaskStore) -> None:
        with pytest.raises(NotAuthenticatedError):
            store.list_pending_tasks("someone-else")
        with pytest.raises(NotAuthenticatedError):
            store.query_schedule_range("someone-else", at(5, 0), at(5, 23))

    def test_error_message(self) -> None:
        assert str(NotAuthenticatedError()) == "로그인이 필요합니다."


class TestTasks:
    def test_create_and_get(self, store: InMemoryTaskStore) -> None:
        task_id = store.create_task(" 우유 사기 ", due_date=at(4, 18), estimated_duration_minutes=5)
        task = store.get_task(task_id)
        assert task.title == "우유 사기"
        assert task.due_date == at(4, 18)
        assert task.status == TaskStatus.PENDING
        assert task.completed is False

    def test_missing_task(self, store: InMemoryTaskStore) -> None:
        with pytest.raises(TaskNotFoundError):
            store.get_task("nope")
        with pytest.raises(TaskNotFoundError):
            store.delete_task("nope")

    def test_completed_syncs_status(self, store: InMemoryTaskStore) -> None:
        task_id = store.create_task("청소")
        done = store.update_task(task_id, {"completed": True})
        assert done.status == TaskStatus.DONE
        assert done.completed is True
        assert store.list_pending_tasks() == []

        reopened = store.update_task(task_id, {"completed": False})
        assert reopened.status == TaskStatus.PENDING

    def test_update_stamps_updated_at(self, store: InMemoryTaskStore) -> None:
        task_id = store.create_task("청소")
        before = store.get_task(task_id).updated_at
        after = store.update_task(task_id, {"title": "대청소"})
        assert after.title == "대청소"
        assert after.updated_at >= before

    def test_unknown_fields_ignored(self, store: InMemoryTaskStore) -> None:
        task_id = store.create_task("청소")
        updated = store.update_task(task_id, {"id": "hijack", "color": "red"})
        assert updated.id == task_id

    def test_estimated_duration_update(self, store: InMemoryTaskStore) -> None:
        task_id = store.create_task("메일 확인")
        updated = store.update_task_estimated_duration(task_id, 10)
        assert updated.estimated_duration_minutes == 10
        assert updated.estimate_source == EstimateSource.HEURISTIC

    def test_delete(self, store: InMemoryTaskStore) -> None:
        task_id = store.create_task("청소")
        store.delete_task(task_id)
        assert store.list_pending_tasks() == []

    def test_users_isolated(self, store: InMemoryTaskStore) -> None:
        store.create_task("청소")
        store.user_id = "someone-else"
        assert store.list_pending_tasks() == []


class TestSchedules:
    def test_query_range(self, store: InMemoryTaskStore) -> None:
        store.create_schedule("저녁 약속", start_time=at(5, 19))
        store.create_schedule("미팅", start_time=at(5, 15))
        store.create_schedule("다음 주", start_time=at(12, 9))
        store.create_schedule("시간 미정")

        found = store.query_schedule_range(None, at(5, 0), at(5, 19))
        assert [s.title for s in found] == ["미팅", "저녁 약속"]

    def test_task_and_schedule(self, store: InMemoryTaskStore) -> None:
        task_id, schedule_id = store.create_task_and_schedule(
            "미팅", start_time=at(5, 15), estimated_duration_minutes=5, remind_minutes_before=15
        )
        assert store.get_task(task_id).title == "미팅"
        schedules = store.query_schedule_range("user-1", at(5, 0), at(5, 23))
        assert [s.id for s in schedules] == [schedule_id]
        assert schedules[0].remind_minutes_before == 15


class TestJsonFileTaskStore:
    def test_persists_across_instances(self, tmp_path) -> None:
        first = JsonFileTaskStore(user_id="user-1", data_dir=tmp_path)
        task_id = first.create_task("보고서 작성", due_date=at(4, 18), estimated_duration_minutes=25)
        first.create_schedule("미팅", start_time=at(5, 15))

        second = JsonFileTaskStore(user_id="user-1", data_dir=tmp_path)
        task = second.get_task(task_id)
        assert isinstance(task, TaskRecord)
        assert task.estimated_duration_minutes == 25
        assert task.due_date == at(4, 18)
        assert len(second.query_schedule_range(None, at(5, 0), at(5, 23))) == 1
        assert (tmp_path / "users" / "user-1.json").exists()

    def test_korean_written_unescaped(self, tmp_path) -> None:
        store = JsonFileTaskStore(user_id="user-1", data_dir=tmp_path)
        store.create_task("우유 사기")
        text = (tmp_path / "users" / "user-1.json").read_text(encoding="utf-8")
        assert "우유 사기" in text

    def test_corrupt_file_starts_empty(self, tmp_path) -> None:
        path = tmp_path / "users" / "user-1.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        store = JsonFileTaskStore(user_id="user-1", data_dir=tmp_path)
        assert store.list_pending_tasks() == []

    def test_corrupt_file_preserved_across_writes(self, tmp_path) -> None:
        path = tmp_path / "users" / "user-1.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        store = JsonFileTaskStore(user_id="user-1", data_dir=tmp_path)
        store.create_task("우유 사기")

        corrupt = tmp_path / "users" / "user-1.json.corrupt"
        assert corrupt.read_text(encoding="utf-8") == "{not json"
        assert "우유 사기" in path.read_text(encoding="utf-8")
        assert not (tmp_path / "users" / "user-1.json.tmp").exists()

    @pytest.mark.parametrize(
        "content",
        [
            "[]",
            '{"tasks": {"t1": {"title": "x", "estimated_duration_minutes": "many"}}}',
            '{"tasks": []}',
        ],
    )
    def test_unusable_documents_set_aside(self, tmp_path, content) -> None:
        path = tmp_path / "users" / "user-1.json"
        path.parent.mkdir(parents=True)
        path.write_text(content, encoding="utf-8")

        store = JsonFileTaskStore(user_id="user-1", data_dir=tmp_path)

        assert store.list_pending_tasks() == []
        assert (tmp_path / "users" / "user-1.json.corrupt").exists()
