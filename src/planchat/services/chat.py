"""Conversational session around the extraction pipeline.

Holds the message list shown to the user, turns each utterance into a
confirmation card, and on confirmation writes tasks and schedules to the
store. Task actions on a saved card (complete, delete, snooze) keep the
card's task list in step with the store.
"""

from __future__ import annotations

import logging
import threading
import time as time_module
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from planchat.config import settings
from planchat.errors import PlanchatError
from planchat.services.cards import project_to_card
from planchat.services.digest import Digest, DigestBuilder
from planchat.services.duration import coerce_duration, estimate_duration
from planchat.services.intent import ConfirmationCard, EntityKind, TaskFragment
from planchat.services.pipeline import ExtractionPipeline, get_pipeline
from planchat.services.temporal import TemporalResolver
from planchat.services.vocabulary import DEFAULT_SCHEDULE_TITLE
from planchat.store.base import TaskStore
from planchat.store.schemas import EstimateSource, TaskRecord

logger = logging.getLogger(__name__)

CARD_KIND = "confirm_card"

SAVE_FAILED = "저장 중 문제가 생겼어. 잠시 후 다시 시도해줘."
CANCELLED = "취소했어. 필요하면 다시 말해줘!"
ALL_CLEARED = "할 일을 모두 정리했어! 🎉"


@dataclass
class ChatMessage:
    role: str
    text: str = ""
    kind: str | None = None
    card: ConfirmationCard | None = None
    # Tasks created from this card, refreshed on every task action
    saved_tasks: list[TaskRecord] = field(default_factory=list)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    ts: float = field(default_factory=time_module.time)

    @property
    def is_card(self) -> bool:
        return self.kind == CARD_KIND and self.card is not None


def format_start_time(value: datetime) -> str:
    """2025.3.4 오후 3:00"""
    meridiem = "오후" if value.hour >= 12 else "오전"
    hour = value.hour % 12 or 12
    return f"{value.year}.{value.month}.{value.day} {meridiem} {hour}:{value.minute:02d}"


class ChatSession:
    """One user's conversation: utterances in, cards and acknowledgements out."""

    def __init__(
        self,
        store: TaskStore,
        pipeline: ExtractionPipeline | None = None,
        resolver: TemporalResolver | None = None,
    ):
        self.store = store
        self.pipeline = pipeline or get_pipeline()
        self.resolver = resolver or TemporalResolver()
        self.messages: list[ChatMessage] = []
        self._busy = threading.Lock()

    # -- messages ------------------------------------------------------------

    def add_message(self, role: str, text: str = "", **kwargs: Any) -> ChatMessage:
        message = ChatMessage(role=role, text=text, **kwargs)
        self.messages.append(message)
        return message

    def _reply(self, text: str) -> ChatMessage:
        return self.add_message("assistant", text)

    def find_card_message(self, message_id: str | None) -> ChatMessage | None:
        if not message_id:
            return None
        for message in self.messages:
            if message.id == message_id and message.is_card:
                return message
        return None

    # -- input ---------------------------------------------------------------

    def handle_user_input(self, text: str) -> ChatMessage | None:
        """Record the utterance and append a confirmation card for it.

        Returns None without doing anything while another utterance is
        still being processed.
        """
        if not self._busy.acquire(blocking=False):
            logger.info("Dropping input while a previous one is in flight")
            return None

        try:
            self.add_message("user", text)
            entity = self.pipeline.extract(text)
            card = project_to_card(entity)
            return self.add_message("assistant", kind=CARD_KIND, card=card)
        finally:
            self._busy.release()

    # -- saving --------------------------------------------------------------

    def _normalize_task(
        self, item: str | TaskFragment | dict[str, Any], card: ConfirmationCard
    ) -> TaskFragment:
        if isinstance(item, str):
            fragment = TaskFragment(title=item)
        elif isinstance(item, TaskFragment):
            fragment = item
        elif isinstance(item, dict):
            # Accepts both the card's own keys and the remote camelCase ones.
            title = item.get("title")
            due = item.get("due_date", item.get("dueDate"))
            minutes = item.get("estimated_duration_minutes", item.get("estimatedDurationMinutes"))
            fragment = TaskFragment(
                title=title if isinstance(title, str) else "",
                due_date=self.resolver.parse_timestamp(due),
                estimated_duration_minutes=coerce_duration(minutes),
            )
        else:
            fragment = TaskFragment(title="")

        title = fragment.title or card.title or "-"
        minutes = fragment.estimated_duration_minutes
        if minutes is None:
            minutes = card.estimated_duration_minutes
        if minutes is None:
            minutes = estimate_duration(title)

        return TaskFragment(
            title=title,
            due_date=fragment.due_date or card.due_date,
            estimated_duration_minutes=minutes,
        )

    def _save_tasks(self, fragments: Iterable[TaskFragment]) -> list[TaskRecord]:
        saved = []
        for fragment in fragments:
            task_id = self.store.create_task(
                fragment.title,
                due_date=fragment.due_date,
                estimated_duration_minutes=fragment.estimated_duration_minutes,
            )
            saved.append(self.store.get_task(task_id))
        return saved

    def _save_schedule(self, card: ConfirmationCard) -> str:
        return self.store.create_schedule(
            card.title or DEFAULT_SCHEDULE_TITLE,
            start_time=card.start_time,
            remind_minutes_before=settings.default_remind_minutes,
        )

    def confirm_save(
        self,
        card_message_id: str,
        mode: str | None = None,
        selected_tasks: list[str | TaskFragment | dict[str, Any]] | None = None,
    ) -> ChatMessage | None:
        """Persist the card's content and acknowledge it.

        ``mode`` overrides the card kind; ``selected_tasks`` replaces the
        card's own task list. Returns the last acknowledgement message, or
        None when the id does not name a card.
        """
        message = self.find_card_message(card_message_id)
        if message is None:
            return None
        card = message.card
        mode = (mode or card.kind.value).lower()

        try:
            if mode == EntityKind.BOTH.value or (card.start_time and card.tasks):
                return self._confirm_both(message, card, selected_tasks)
            if mode == EntityKind.TASK.value:
                return self._confirm_tasks(message, card, selected_tasks)
            if mode == EntityKind.SCHEDULE.value:
                self._save_schedule(card)
                return self._reply("일정을 저장했어!")
            return self._confirm_fallback(message, card)
        except Exception as e:
            logger.error("Failed to save card %s: %s", card_message_id, e)
            return self._reply(SAVE_FAILED)

    def _confirm_both(self, message, card, selected_tasks) -> ChatMessage:
        self._save_schedule(card)
        fragments = [self._normalize_task(t, card) for t in (selected_tasks or card.tasks)]
        message.saved_tasks = self._save_tasks(fragments)

        when = f" ({format_start_time(card.start_time)})" if card.start_time else ""
        self._reply(f"일정 등록 완료! ⏰ {card.title}{when}")
        return self._reply(f"할 일 {len(fragments)}개도 같이 추가했어.")

    def _confirm_tasks(self, message, card, selected_tasks) -> ChatMessage:
        items = selected_tasks or card.tasks or [card.title]
        fragments = [self._normalize_task(t, card) for t in items]
        message.saved_tasks = self._save_tasks(fragments)

        if len(fragments) > 1:
            return self._reply(f"할 일 {len(fragments)}개 저장했어!")
        return self._reply("할 일을 저장했어!")

    def _confirm_fallback(self, message, card) -> ChatMessage:
        title = card.title or DEFAULT_SCHEDULE_TITLE
        minutes = card.estimated_duration_minutes
        if minutes is None:
            minutes = estimate_duration(title)

        task_id, _ = self.store.create_task_and_schedule(
            title,
            start_time=card.start_time,
            due_date=card.due_date,
            estimated_duration_minutes=minutes,
            remind_minutes_before=settings.default_remind_minutes,
        )
        message.saved_tasks = [self.store.get_task(task_id)]
        return self._reply("저장했어! (둘 다)")

    def cancel_save(self, card_message_id: str | None = None) -> ChatMessage:
        return self._reply(CANCELLED)

    # -- maintenance ---------------------------------------------------------

    def ensure_estimated(self) -> int:
        """Fill in missing or non-positive durations on pending tasks."""
        try:
            pending = self.store.list_pending_tasks()
        except PlanchatError as e:
            logger.warning("Skipping duration backfill: %s", e)
            return 0

        patched = 0
        for task in pending:
            minutes = task.estimated_duration_minutes
            if minutes is not None and minutes > 0:
                continue
            self.store.update_task_estimated_duration(
                task.id, estimate_duration(task.title), EstimateSource.HEURISTIC
            )
            patched += 1

        if patched:
            logger.info("Backfilled durations on %d tasks", patched)
        return patched

    def today_digest(self) -> Digest:
        return DigestBuilder().build(self.store.list_pending_tasks(), now=self.resolver.now())

    # -- task actions --------------------------------------------------------

    def _replace_in_card(self, card_message_id: str | None, updated: TaskRecord) -> None:
        message = self.find_card_message(card_message_id)
        if message is None:
            return
        message.saved_tasks = [
            updated if task.id == updated.id else task for task in message.saved_tasks
        ]

    def complete_task(
        self, task_id: str, card_message_id: str | None = None, quiet: bool = False
    ) -> TaskRecord | None:
        """Toggle completion of a task."""
        try:
            current = self.store.get_task(task_id)
            updated = self.store.update_task(task_id, {"completed": not current.completed})
        except PlanchatError as e:
            logger.warning("Complete failed for %s: %s", task_id, e)
            if not quiet:
                self._reply("완료 처리 중 문제가 생겼어.")
            return None

        self._replace_in_card(card_message_id, updated)
        if not quiet:
            self._reply("완료 표시했어! ✅" if updated.completed else "완료 해제했어.")
        return updated

    def delete_task(
        self, task_id: str, card_message_id: str | None = None, quiet: bool = False
    ) -> bool:
        try:
            self.store.delete_task(task_id)
        except PlanchatError as e:
            logger.warning("Delete failed for %s: %s", task_id, e)
            if not quiet:
                self._reply("삭제 중 문제가 생겼어.")
            return False

        emptied = False
        message = self.find_card_message(card_message_id)
        if message is not None:
            message.saved_tasks = [t for t in message.saved_tasks if t.id != task_id]
            emptied = not message.saved_tasks

        if quiet:
            return True
        if emptied:
            self.messages.remove(message)
            self._reply(ALL_CLEARED)
        else:
            self._reply("삭제했어.")
        return True

    def snooze_task(
        self,
        task_id: str,
        card_message_id: str | None = None,
        at_end_of_day: bool = False,
        quiet: bool = False,
    ) -> TaskRecord | None:
        """Push a task's due date to the next day.

        Keeps the time of day unless ``at_end_of_day`` pins it to 23:59.
        """
        try:
            current = self.store.get_task(task_id)
            base = (current.due_date or self.resolver.now()).astimezone(self.resolver.timezone)
            naive = base.replace(tzinfo=None) + timedelta(days=1)
            if at_end_of_day:
                naive = naive.replace(hour=23, minute=59, second=0, microsecond=0)
            next_due = self.resolver.localize(naive)
            updated = self.store.update_task(task_id, {"due_date": next_due})
        except PlanchatError as e:
            logger.warning("Snooze failed for %s: %s", task_id, e)
            if not quiet:
                self._reply("미루는 중 문제가 생겼어.")
            return None

        self._replace_in_card(card_message_id, updated)
        if not quiet:
            self._reply("내일 23:59로 미뤘어." if at_end_of_day else "내일로 미뤘어.")
        return updated
