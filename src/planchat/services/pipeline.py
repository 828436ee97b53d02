"""Public entry points: utterance -> ParsedEntity -> ConfirmationCard, and digests."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from planchat.services.cards import project_to_card
from planchat.services.digest import digest_for_pending_tasks
from planchat.services.extraction import RemoteExtractionClient
from planchat.services.intent import ParsedEntity
from planchat.services.reconciler import Reconciler

if TYPE_CHECKING:
    from planchat.services.temporal import TemporalResolver
    from planchat.services.vocabulary import Vocabulary

logger = logging.getLogger(__name__)

__all__ = [
    "ExtractionPipeline",
    "digest_for_pending_tasks",
    "extract",
    "get_pipeline",
    "project_to_card",
]


class ExtractionPipeline:
    """Remote suggestion followed by local validation and repair.

    Holds no per-call state, so one instance can serve every utterance.
    """

    def __init__(
        self,
        remote: RemoteExtractionClient | None = None,
        reconciler: Reconciler | None = None,
        *,
        resolver: TemporalResolver | None = None,
        vocabulary: Vocabulary | None = None,
    ) -> None:
        self.remote = remote or RemoteExtractionClient()
        self.reconciler = reconciler or Reconciler(resolver=resolver, vocabulary=vocabulary)

    def extract(self, text: str) -> ParsedEntity:
        suggestion = self.remote.suggest(text)
        entity = self.reconciler.reconcile(text, suggestion)
        logger.info(
            "Extracted %s %r with %d tasks", entity.kind.value, entity.title, len(entity.tasks)
        )
        return entity


_pipeline: ExtractionPipeline | None = None


def get_pipeline() -> ExtractionPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = ExtractionPipeline()
    return _pipeline


def reset_pipeline() -> None:
    global _pipeline
    _pipeline = None


def extract(text: str) -> ParsedEntity:
    """Parse one utterance with the default pipeline."""
    return get_pipeline().extract(text)
