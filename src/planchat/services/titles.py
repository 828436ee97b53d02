"""Task title cleanup and schedule-title derivation."""

import re

from planchat.services.vocabulary import DEFAULT_VOCABULARY, Vocabulary

# Applied in order; each rule is (pattern, replacement).
TITLE_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    # trailing "and": "~있고", "~하고", "~고"
    (re.compile(r"\s*(?:있고|하고|고)\s*$"), ""),
    # colloquial must-do
    (re.compile(r"해야\s*댐|해야\s*됨|해야함", re.IGNORECASE), "해야 함"),
    (re.compile(r"전화\s*해야\s*함?$"), "전화하기"),
    (re.compile(r"연락\s*해야\s*함?$"), "연락하기"),
    (re.compile(r"하기기$"), "하기"),
)

CONTACT_SUFFIX = "에게 연락하기"
MIN_TITLE_LENGTH = 2
MAX_RULE_PASSES = 5


def _apply_rules(title: str) -> str:
    for pattern, replacement in TITLE_RULES:
        title = pattern.sub(replacement, title)
    return title.strip()


def normalize_title(raw: str, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> str:
    """Clean a task title; falls back to the trimmed input if cleaning empties it.

    Rules are re-applied until the title stops changing, so the result is
    stable under a second normalization.
    """
    original = (raw or "").strip()
    title = original
    for _ in range(MAX_RULE_PASSES):
        cleaned = _apply_rules(title)
        if cleaned == title:
            break
        title = cleaned

    if vocabulary.contact_relation_pattern.match(title):
        title = f"{title}{CONTACT_SUFFIX}"

    return title if len(title) >= MIN_TITLE_LENGTH else original


def derive_schedule_title(text: str, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> str | None:
    """First schedule noun found in the text ("내일 미팅 ..." -> "미팅")."""
    for keyword in vocabulary.schedule_keywords:
        if keyword in (text or ""):
            return keyword
    return None
