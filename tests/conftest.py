"""Shared fixtures: a frozen clock in Asia/Seoul and canned remote suggestions."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest
import pytz

from planchat.services.llm_client import reset_llm_client
from planchat.services.pipeline import ExtractionPipeline, reset_pipeline
from planchat.services.temporal import TemporalResolver

SEOUL = pytz.timezone("Asia/Seoul")

# Tuesday morning
FIXED_NOW = SEOUL.localize(datetime(2025, 3, 4, 10, 0))


class FakeRemote:
    """Stands in for RemoteExtractionClient; returns one canned suggestion."""

    def __init__(self, suggestion: dict[str, Any] | None = None) -> None:
        self.suggestion = suggestion or {}
        self.calls: list[str] = []

    def suggest(self, text: str) -> dict[str, Any]:
        self.calls.append(text)
        return dict(self.suggestion)


@pytest.fixture
def resolver() -> TemporalResolver:
    return TemporalResolver(timezone="Asia/Seoul", clock=lambda: FIXED_NOW)


@pytest.fixture
def make_pipeline(resolver: TemporalResolver) -> Callable[..., ExtractionPipeline]:
    def _make(suggestion: dict[str, Any] | None = None) -> ExtractionPipeline:
        return ExtractionPipeline(remote=FakeRemote(suggestion), resolver=resolver)

    return _make


@pytest.fixture(autouse=True)
def _reset_singletons():
    yield
    reset_pipeline()
    reset_llm_client()
