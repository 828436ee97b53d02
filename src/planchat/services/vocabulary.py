"""Fixed word lists used by the segmenter, title normalizer and reconciler.

The lists are configuration: callers may pass their own ``Vocabulary`` to
any component that accepts one. Compiled patterns are cached per instance.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cached_property

# Activities that bind a person to the phrase ("엄마랑 데이트").
ACTIVITY_KEYWORDS: tuple[str, ...] = (
    "데이트",
    "만나",
    "미팅",
    "식사",
    "밥",
    "점심",
    "저녁",
    "영화",
    "산책",
    "파티",
    "축하",
    "쇼핑",
    "카페",
    "차",
    "티타임",
    "여행",
    "모임",
    "콜",
    "통화",
    "전화",
    "상담",
    "면담",
)

# Short person nouns that the remote model tends to split off on their own.
OVERSPLIT_RELATION_NOUNS: tuple[str, ...] = (
    "엄마",
    "아빠",
    "부모님",
    "부모",
    "친구",
    "동생",
    "형",
    "누나",
    "언니",
    "오빠",
    "선생님",
    "고객",
    "사장님",
    "팀원",
    "아이",
    "아기",
    "딸",
    "아들",
    "와이프",
    "남편",
)

# Bare titles that get a default "reach out" action appended.
CONTACT_RELATION_NOUNS: tuple[str, ...] = (
    "엄마",
    "아빠",
    "친구",
    "고객",
    "팀원",
    "상사",
    "와이프",
    "남편",
    "부모",
    "부모님",
)

# Nouns that mark an utterance as a schedule, in title-derivation priority.
SCHEDULE_KEYWORDS: tuple[str, ...] = (
    "미팅",
    "회의",
    "면담",
    "인터뷰",
    "약속",
    "행사",
    "세미나",
    "웨비나",
    "발표",
    "콜",
    "통화",
    "브리핑",
    "킥오프",
    "데모",
    "리뷰",
)

# Particles meaning "with/and" that join a person to an activity.
CONNECTOR_WORDS: tuple[str, ...] = ("랑", "하고", "과", "와")

# Particles accepted between a relation noun and its activity in the raw text.
OVERSPLIT_JOINERS: tuple[str, ...] = ("이랑", "랑", "하고", "과", "와")

DEFAULT_SCHEDULE_TITLE = "일정"


def _alternation(words: tuple[str, ...]) -> str:
    return "|".join(re.escape(w) for w in words)


@dataclass(frozen=True)
class Vocabulary:
    activity_keywords: tuple[str, ...] = ACTIVITY_KEYWORDS
    oversplit_relation_nouns: tuple[str, ...] = OVERSPLIT_RELATION_NOUNS
    contact_relation_nouns: tuple[str, ...] = CONTACT_RELATION_NOUNS
    schedule_keywords: tuple[str, ...] = SCHEDULE_KEYWORDS
    connector_words: tuple[str, ...] = CONNECTOR_WORDS
    oversplit_joiners: tuple[str, ...] = OVERSPLIT_JOINERS
    default_schedule_title: str = DEFAULT_SCHEDULE_TITLE

    @cached_property
    def activity_pattern(self) -> re.Pattern[str]:
        return re.compile(f"(?:{_alternation(self.activity_keywords)})")

    @cached_property
    def connector_tail_pattern(self) -> re.Pattern[str]:
        """Fragment ending in a bare connector ("엄마랑")."""
        return re.compile(f"(?:{_alternation(self.connector_words)})$")

    @cached_property
    def connector_inside_pattern(self) -> re.Pattern[str]:
        """Connector followed by whitespace somewhere in the fragment."""
        return re.compile(f"(?:{_alternation(self.connector_words)})\\s+")

    @cached_property
    def oversplit_relation_pattern(self) -> re.Pattern[str]:
        return re.compile(f"^(?:{_alternation(self.oversplit_relation_nouns)})$")

    @cached_property
    def contact_relation_pattern(self) -> re.Pattern[str]:
        return re.compile(f"^(?:{_alternation(self.contact_relation_nouns)})$")

    def is_activity(self, text: str) -> bool:
        return bool(self.activity_pattern.search(text))

    def has_schedule_keyword(self, text: str) -> bool:
        return any(k in text for k in self.schedule_keywords)


DEFAULT_VOCABULARY = Vocabulary()
