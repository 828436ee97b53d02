"""Validation and repair stage for remote extraction suggestions.

``Reconciler.reconcile`` takes the raw utterance and the model's (possibly
empty) JSON suggestion and returns the canonical ``ParsedEntity``. It runs a
fixed, ordered list of steps over a working draft created per call:

1. coerce the suggestion's fields (kind, title, timestamps)
2. fill start time / due date from the text itself
3. coerce the entity-level duration estimate
4. build task fragments from the suggested tasks
5. replace an oversplit task list ("엄마" + "데이트하기") with local segments
6. last-resort fallback to local segmentation when nothing was extracted
7. backfill a schedule title from schedule nouns
8. normalize fragment titles and drop empties
9. turn a dated schedule noun without a clock time into a task
10. deduplicate, estimate missing durations and settle the kind

No step raises on malformed input; unparseable values become None.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from planchat.services.cards import classify
from planchat.services.duration import coerce_duration, estimate_duration
from planchat.services.intent import EntityKind, ParsedEntity, TaskFragment
from planchat.services.segmenter import segment
from planchat.services.temporal import TemporalResolver, has_explicit_time
from planchat.services.titles import derive_schedule_title, normalize_title
from planchat.services.vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

ACTION_SUFFIX = re.compile(r"(?:하기|가|기)$")


@dataclass
class _Draft:
    text: str
    suggestion: dict[str, Any]
    kind: str = ""
    title: str = ""
    start_time: datetime | None = None
    due_date: datetime | None = None
    estimated_duration_minutes: int | None = None
    tasks: list[TaskFragment] = field(default_factory=list)


class Reconciler:
    """Merge a remote suggestion with deterministic local rules."""

    def __init__(
        self,
        resolver: TemporalResolver | None = None,
        vocabulary: Vocabulary | None = None,
    ) -> None:
        self.resolver = resolver or TemporalResolver()
        self.vocabulary = vocabulary or DEFAULT_VOCABULARY
        self._steps: tuple[Callable[[_Draft], None], ...] = (
            self._coerce_suggestion,
            self._resolve_times,
            self._coerce_duration,
            self._build_fragments,
            self._repair_oversplit,
            self._fallback_to_segments,
            self._backfill_schedule_title,
            self._normalize_titles,
            self._rescue_untimed_schedule,
            self._finalize_fragments,
        )

    def reconcile(self, text: str, suggestion: dict[str, Any] | None = None) -> ParsedEntity:
        draft = _Draft(
            text=text or "",
            suggestion=suggestion if isinstance(suggestion, dict) else {},
        )
        for step in self._steps:
            step(draft)

        entity = ParsedEntity(
            kind=EntityKind.OTHER,
            title=draft.title,
            start_time=draft.start_time,
            due_date=draft.due_date,
            estimated_duration_minutes=draft.estimated_duration_minutes,
            tasks=draft.tasks,
            raw_text=draft.text,
        )
        entity.kind = self._settle_kind(draft.kind, entity)
        return entity

    # -- steps -------------------------------------------------------------

    def _coerce_suggestion(self, draft: _Draft) -> None:
        data = draft.suggestion
        draft.kind = str(data.get("type") or data.get("kind") or "").strip().lower()
        title = data.get("title")
        draft.title = title.strip() if isinstance(title, str) else ""

        start_time = self.resolver.parse_timestamp(data.get("startTime"))
        if start_time is not None and not has_explicit_time(draft.text):
            logger.debug("Dropping suggested startTime; no clock time in %r", draft.text)
            start_time = None
        draft.start_time = start_time
        draft.due_date = self.resolver.parse_timestamp(data.get("dueDate"))

    def _resolve_times(self, draft: _Draft) -> None:
        if draft.start_time is None:
            draft.start_time = self.resolver.resolve_datetime(draft.text)

        if draft.start_time is None and draft.due_date is None:
            due = self.resolver.resolve_due_date(draft.text)
            if due is not None:
                draft.due_date = due
                draft.kind = EntityKind.TASK.value

    def _coerce_duration(self, draft: _Draft) -> None:
        draft.estimated_duration_minutes = coerce_duration(
            draft.suggestion.get("estimatedDurationMinutes")
        )

    def _build_fragments(self, draft: _Draft) -> None:
        raw_tasks = draft.suggestion.get("tasks")
        if not isinstance(raw_tasks, list):
            raw_tasks = []

        fragments = []
        for item in raw_tasks:
            if isinstance(item, str):
                fragments.append(TaskFragment(title=item))
                continue
            if not isinstance(item, dict):
                continue
            title = item.get("title")
            fragments.append(
                TaskFragment(
                    title=title if isinstance(title, str) else "",
                    due_date=self.resolver.parse_timestamp(item.get("dueDate")),
                    estimated_duration_minutes=coerce_duration(
                        item.get("estimatedDurationMinutes")
                    ),
                )
            )
        draft.tasks = fragments

    def _repair_oversplit(self, draft: _Draft) -> None:
        titles = [t.title.strip() for t in draft.tasks if t.title and t.title.strip()]
        if not self.looks_oversplit(titles, draft.text):
            return
        logger.info("Remote task list looks oversplit; re-segmenting %r", draft.text)
        draft.tasks = [TaskFragment(title=part) for part in segment(draft.text, self.vocabulary)]

    def _fallback_to_segments(self, draft: _Draft) -> None:
        if draft.start_time is not None:
            return
        if any(t.title.strip() for t in draft.tasks):
            return
        utterance = draft.text.strip()
        if not utterance:
            return

        parts = segment(draft.text, self.vocabulary) or [utterance]
        logger.debug("Falling back to local segmentation: %d fragments", len(parts))
        draft.tasks = [TaskFragment(title=part) for part in parts]
        draft.title = draft.title or draft.tasks[0].title
        draft.kind = EntityKind.TASK.value
        if draft.due_date is None:
            draft.due_date = self.resolver.resolve_due_date(draft.text)

    def _backfill_schedule_title(self, draft: _Draft) -> None:
        if draft.start_time is not None and not draft.title:
            draft.title = (
                derive_schedule_title(draft.text, self.vocabulary)
                or self.vocabulary.default_schedule_title
            )

    def _normalize_titles(self, draft: _Draft) -> None:
        for fragment in draft.tasks:
            fragment.title = normalize_title(fragment.title, self.vocabulary)
        draft.tasks = [t for t in draft.tasks if t.title]

    def _rescue_untimed_schedule(self, draft: _Draft) -> None:
        if draft.start_time is not None:
            return
        if not self.vocabulary.has_schedule_keyword(draft.text):
            return
        due = self.resolver.resolve_due_date(draft.text)
        if due is None:
            return

        guessed = (
            derive_schedule_title(draft.text, self.vocabulary)
            or self.vocabulary.default_schedule_title
        )
        if not any(guessed in t.title for t in draft.tasks):
            draft.tasks.insert(0, TaskFragment(title=guessed, due_date=due))
        draft.kind = EntityKind.TASK.value
        if draft.due_date is None:
            draft.due_date = due

    def _finalize_fragments(self, draft: _Draft) -> None:
        unique: dict[str, TaskFragment] = {}
        for fragment in draft.tasks:
            unique.setdefault(fragment.title, fragment)
        for fragment in unique.values():
            if fragment.estimated_duration_minutes is None:
                fragment.estimated_duration_minutes = estimate_duration(fragment.title)
        draft.tasks = list(unique.values())

    # -- helpers -----------------------------------------------------------

    def looks_oversplit(self, titles: list[str], original: str) -> bool:
        """Detect a person noun split off from its activity.

        Matches adjacent titles like ["엄마", "데이트하기"] when the raw text
        joins them with a connector or the second title is a verb form.
        """
        vocabulary = self.vocabulary
        joiners = "|".join(re.escape(j) for j in vocabulary.oversplit_joiners)
        for first, second in zip(titles, titles[1:]):
            if not vocabulary.oversplit_relation_pattern.match(first):
                continue
            if not vocabulary.is_activity(second):
                continue
            joined = re.compile(f"{re.escape(first)}(?:{joiners})\\s*{re.escape(second)}")
            if joined.search(original or ""):
                return True
            if ACTION_SUFFIX.search(second):
                return True
        return False

    def _settle_kind(self, kind: str, entity: ParsedEntity) -> EntityKind:
        settled = EntityKind.coerce(kind)
        if settled is None:
            return classify(entity)
        if settled == EntityKind.BOTH and not (entity.has_schedule and entity.has_tasks):
            return classify(entity)
        return settled
