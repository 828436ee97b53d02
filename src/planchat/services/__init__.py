"""planchat services.

Extraction pipeline, reconciliation rules, digests and the chat session.
Imports are lazy so that the regex helpers load without pulling in httpx.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS: dict[str, tuple[str, str]] = {
    # Pipeline
    "ExtractionPipeline": ("planchat.services.pipeline", "ExtractionPipeline"),
    "extract": ("planchat.services.pipeline", "extract"),
    "get_pipeline": ("planchat.services.pipeline", "get_pipeline"),
    # Cards
    "classify": ("planchat.services.cards", "classify"),
    "project_to_card": ("planchat.services.cards", "project_to_card"),
    # Entities
    "ConfirmationCard": ("planchat.services.intent", "ConfirmationCard"),
    "EntityKind": ("planchat.services.intent", "EntityKind"),
    "ParsedEntity": ("planchat.services.intent", "ParsedEntity"),
    "TaskFragment": ("planchat.services.intent", "TaskFragment"),
    # Local rules
    "Reconciler": ("planchat.services.reconciler", "Reconciler"),
    "TemporalResolver": ("planchat.services.temporal", "TemporalResolver"),
    "Vocabulary": ("planchat.services.vocabulary", "Vocabulary"),
    "estimate_duration": ("planchat.services.duration", "estimate_duration"),
    "normalize_title": ("planchat.services.titles", "normalize_title"),
    "segment": ("planchat.services.segmenter", "segment"),
    # Remote extraction
    "LLMClient": ("planchat.services.llm_client", "LLMClient"),
    "RemoteExtractionClient": ("planchat.services.extraction", "RemoteExtractionClient"),
    "get_llm_client": ("planchat.services.llm_client", "get_llm_client"),
    # Digest
    "Digest": ("planchat.services.digest", "Digest"),
    "DigestBuilder": ("planchat.services.digest", "DigestBuilder"),
    "digest_for_pending_tasks": ("planchat.services.digest", "digest_for_pending_tasks"),
    # Chat
    "ChatMessage": ("planchat.services.chat", "ChatMessage"),
    "ChatSession": ("planchat.services.chat", "ChatSession"),
}

__all__ = list(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module_name, attr_name = _EXPORTS[name]
    module = import_module(module_name)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + list(_EXPORTS.keys()))
