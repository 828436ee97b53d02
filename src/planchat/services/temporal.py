"""Relative day and clock-time resolution for Korean utterances.

Resolves 오늘/내일/모레 and explicit clock phrases ("3시", "오후 2시 30분",
"14:00") into absolute timestamps in the user's timezone, without any help
from the remote model. Nothing in here raises on unrecognised input.
"""

import re
from collections.abc import Callable
from datetime import date, datetime, time, timedelta
from typing import Any

import pytz

from planchat.config import settings

Clock = Callable[[], datetime]

# Checked in this order: the first matching marker decides the day offset.
RELATIVE_DAYS: tuple[tuple[str, int], ...] = (
    ("모레", 2),
    ("내일", 1),
    ("오늘", 0),
)

PM_PATTERN = re.compile(r"오후|(?<![A-Za-z])pm(?![A-Za-z])", re.IGNORECASE)
AM_PATTERN = re.compile(r"오전|(?<![A-Za-z])am(?![A-Za-z])", re.IGNORECASE)
# Early-day words that keep a bare hour in the morning ("새벽 3시").
MORNING_PATTERN = re.compile(r"새벽|아침")
# re.ASCII keeps \b meaningful next to Hangul ("오후3시").
HOUR_WORD_PATTERN = re.compile(r"\b(\d{1,2})\s*시(?:\s*(\d{1,2})\s*분)?", re.ASCII)
CLOCK_PATTERN = re.compile(r"\b(\d{1,2}):(\d{2})\b", re.ASCII)

DEFAULT_HOUR = 9
# Bare hours without 오전/오후 in this range are read as afternoon ("3시 미팅").
AFTERNOON_DEFAULT_HOURS = range(1, 7)


def has_explicit_time(text: str) -> bool:
    """True when the text carries a meridiem word, an N시 marker or HH:MM."""
    if not text:
        return False
    return bool(
        PM_PATTERN.search(text)
        or AM_PATTERN.search(text)
        or HOUR_WORD_PATTERN.search(text)
        or CLOCK_PATTERN.search(text)
    )


def relative_day_offset(text: str) -> int | None:
    """Day offset for the first relative-day marker found, else None."""
    if not text:
        return None
    for marker, offset in RELATIVE_DAYS:
        if marker in text:
            return offset
    return None


def parse_clock(text: str) -> tuple[int, int]:
    """Extract (hour, minute) with meridiem adjustment applied.

    HH:MM takes priority over the N시 M분 form. Values outside the usual
    range are returned as-is.
    """
    hour, minute = DEFAULT_HOUR, 0
    explicit_hour = False

    clock_match = CLOCK_PATTERN.search(text)
    hour_word_match = HOUR_WORD_PATTERN.search(text)
    if clock_match:
        hour = int(clock_match.group(1))
        minute = int(clock_match.group(2))
        explicit_hour = True
    elif hour_word_match:
        hour = int(hour_word_match.group(1))
        minute = int(hour_word_match.group(2)) if hour_word_match.group(2) else 0
        explicit_hour = True

    is_pm = bool(PM_PATTERN.search(text))
    is_am = bool(AM_PATTERN.search(text))
    if is_pm and hour < 12:
        hour += 12
    if is_am and hour == 12:
        hour = 0
    is_morning = bool(MORNING_PATTERN.search(text))
    if explicit_hour and not (is_pm or is_am or is_morning) and hour in AFTERNOON_DEFAULT_HOURS:
        hour += 12

    return hour, minute


class TemporalResolver:
    """Resolve relative-day and clock phrases against an injectable clock."""

    def __init__(self, timezone: str | None = None, clock: Clock | None = None):
        self.timezone = pytz.timezone(timezone or settings.user_timezone)
        self._clock = clock

    def now(self) -> datetime:
        if self._clock is None:
            return datetime.now(self.timezone)
        current = self._clock()
        if current.tzinfo is None:
            return self.timezone.localize(current)
        return current.astimezone(self.timezone)

    def localize(self, naive: datetime) -> datetime:
        return self.timezone.localize(naive)

    def start_of_day(self, day: date) -> datetime:
        return self.localize(datetime.combine(day, time.min))

    def end_of_day(self, value: datetime) -> datetime:
        local = value.astimezone(self.timezone) if value.tzinfo else value
        return self.localize(datetime.combine(local.date(), time.max))

    def resolve_day(self, text: str) -> datetime | None:
        """Start of the day named by 오늘/내일/모레, or None."""
        offset = relative_day_offset(text)
        if offset is None:
            return None
        day = self.now().date() + timedelta(days=offset)
        return self.start_of_day(day)

    def resolve_datetime(self, text: str) -> datetime | None:
        """Day plus clock time, only when the text names a time explicitly.

        Without a relative-day marker the day defaults to today.
        """
        if not has_explicit_time(text):
            return None

        offset = relative_day_offset(text) or 0
        day = self.now().date() + timedelta(days=offset)
        hour, minute = parse_clock(text)

        # Out-of-range values roll over to the following hour/day.
        naive = datetime.combine(day, time.min) + timedelta(hours=hour, minutes=minute)
        return self.localize(naive)

    def resolve_due_date(self, text: str) -> datetime | None:
        """End-of-day instant for a bare relative day, or None."""
        day = self.resolve_day(text)
        if day is None:
            return None
        return self.end_of_day(day)

    def parse_timestamp(self, value: Any) -> datetime | None:
        """Coerce an ISO-8601 string or datetime to an aware datetime.

        Date-only strings map to local midnight; naive values are read in
        the user timezone. Anything unparseable yields None.
        """
        if not value:
            return None
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            raw = value.strip()
            if raw.endswith(("Z", "z")):
                raw = raw[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(raw)
            except ValueError:
                return None
        else:
            return None

        # Instants at the edge of the datetime range cannot be shifted.
        try:
            if parsed.tzinfo is None:
                return self.localize(parsed)
            return parsed.astimezone(self.timezone)
        except (ValueError, OverflowError):
            return None
