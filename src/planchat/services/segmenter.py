"""Split one utterance into candidate task fragments.

Connector particles (와/과/랑/하고) usually join a person to an activity
("엄마랑 데이트하기"), so they are not treated as separators unless 하고 is
clearly used as an enumerator.
"""

import logging
import re

from planchat.services.vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

# Newlines survive whitespace collapsing so they can act as separators.
INLINE_WHITESPACE = re.compile(r"[^\S\n]+")

HARD_SEPARATOR = re.compile(
    r"\s*[\n,;，；／/、]+\s*"
    r"|(?:^|\s+)(?:그리고|또)(?:\s+|$)"
    r"|\s*겸\s+"
)

ENUMERATING_HAGO = re.compile(r"하고(?=\s|$)")
HAGO_SEPARATOR = re.compile(r"\s*하고(?:\s+|$)")
MIN_ENUMERATING_HAGO = 2

CLEANUP_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^(?:그럼|그리고|또)(?:\s+|$)"), ""),
    (re.compile(r"^[-–—]+\s*"), ""),
    (re.compile(r"\s{2,}"), " "),
)

MIN_FRAGMENT_LENGTH = 2


def _split_hard(text: str) -> list[str]:
    return [chunk.strip() for chunk in HARD_SEPARATOR.split(text) if chunk and chunk.strip()]


def _split_enumerating_hago(chunk: str, vocabulary: Vocabulary) -> list[str]:
    if len(ENUMERATING_HAGO.findall(chunk)) < MIN_ENUMERATING_HAGO:
        return [chunk]
    parts = [part.strip() for part in HAGO_SEPARATOR.split(chunk) if part.strip()]

    # "엄마하고 데이트" inside an enumeration is one companionship phrase.
    joined: list[str] = []
    i = 0
    while i < len(parts):
        current = parts[i]
        if (
            i + 1 < len(parts)
            and vocabulary.oversplit_relation_pattern.match(current)
            and vocabulary.is_activity(parts[i + 1])
        ):
            joined.append(f"{current}하고 {parts[i + 1]}")
            i += 2
            continue
        joined.append(current)
        i += 1
    return joined


def _merge_companionship(chunks: list[str], vocabulary: Vocabulary) -> list[str]:
    merged: list[str] = []
    i = 0
    while i < len(chunks):
        current = chunks[i]

        if vocabulary.connector_inside_pattern.search(current) and vocabulary.is_activity(current):
            merged.append(current)
            i += 1
            continue

        if vocabulary.connector_tail_pattern.search(current) and i + 1 < len(chunks):
            following = chunks[i + 1]
            if vocabulary.is_activity(following):
                merged.append(re.sub(r"\s+", " ", f"{current} {following}").strip())
                i += 2
                continue

        merged.append(current)
        i += 1
    return merged


def _clean(fragment: str) -> str:
    for pattern, replacement in CLEANUP_RULES:
        fragment = pattern.sub(replacement, fragment)
    return fragment.strip()


def segment(text: str, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> list[str]:
    """Split an utterance into ordered, deduplicated task fragments."""
    raw = INLINE_WHITESPACE.sub(" ", text or "").strip()
    if not raw:
        return []

    chunks = _split_hard(raw)
    if len(chunks) == 1:
        chunks = _split_enumerating_hago(chunks[0], vocabulary)

    merged = _merge_companionship(chunks, vocabulary)
    cleaned = [_clean(fragment) for fragment in merged]

    # dict keeps first-seen order
    fragments = list(dict.fromkeys(f for f in cleaned if len(f) >= MIN_FRAGMENT_LENGTH))
    logger.debug("Segmented %r into %d fragments", raw, len(fragments))
    return fragments
