"""Tests for the remote suggestion stage."""

from __future__ import annotations

from unittest.mock import MagicMock

from planchat.services.extraction import (
    SYSTEM_PROMPT,
    RemoteExtractionClient,
    build_user_prompt,
    parse_json_object,
)
from planchat.services.llm_client import LLMProvider, LLMResponse


def make_llm(text: str | None = None, error: Exception | None = None, available: bool = True):
    llm = MagicMock()
    llm.is_available = available
    if error is not None:
        llm.complete.side_effect = error
    else:
        llm.complete.return_value = LLMResponse(
            text=text or "", provider=LLMProvider.OPENAI, model="gpt-test"
        )
    return llm


class TestParseJsonObject:
    def test_plain_json(self) -> None:
        assert parse_json_object('{"type": "task"}') == {"type": "task"}

    def test_fenced_json(self) -> None:
        content = '```json\n{"type": "schedule", "title": "미팅"}\n```'
        assert parse_json_object(content) == {"type": "schedule", "title": "미팅"}

    def test_not_json(self) -> None:
        assert parse_json_object("죄송합니다") == {}
        assert parse_json_object("") == {}

    def test_non_object_json(self) -> None:
        assert parse_json_object("[1, 2]") == {}


class TestRemoteExtractionClient:
    def test_suggestion_returned(self) -> None:
        llm = make_llm('{"type": "task", "tasks": [{"title": "우유 사기"}]}')
        suggestion = RemoteExtractionClient(llm).suggest("우유 사기")

        assert suggestion["type"] == "task"
        args, kwargs = llm.complete.call_args
        assert args[0] == build_user_prompt("우유 사기")
        assert kwargs["system_prompt"] == SYSTEM_PROMPT
        assert kwargs["json_mode"] is True

    def test_no_provider(self) -> None:
        llm = make_llm(available=False)
        assert RemoteExtractionClient(llm).suggest("우유 사기") == {}
        llm.complete.assert_not_called()

    def test_provider_failure(self) -> None:
        llm = make_llm(error=RuntimeError("All LLM providers failed"))
        assert RemoteExtractionClient(llm).suggest("우유 사기") == {}

    def test_garbage_reply(self) -> None:
        assert RemoteExtractionClient(make_llm("잘 모르겠어요")).suggest("우유 사기") == {}


def test_user_prompt() -> None:
    assert build_user_prompt("내일 3시 미팅") == "사용자 입력:\n내일 3시 미팅"
