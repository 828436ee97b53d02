"""Remote suggestion stage: ask the language model for a JSON draft.

The result is advisory. Any failure (no provider, HTTP error, malformed
JSON) yields an empty dict and the reconciler's local rules take over.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from planchat.services.llm_client import LLMClient

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """
당신은 한국어 일정/할일 파서입니다.
JSON만 반환하세요.
- type: schedule|task|both|other
- title: 일정 또는 대표 할 일의 제목
- startTime: ISO8601 (시간이 명확할 때만)
- dueDate: ISO8601
- tasks: 사용자가 적은 문장에서 "할 일"을 나열한 경우만 분리합니다.
  * 기본 분리 기준: 줄바꿈, 쉼표, 세미콜론, 슬래시, "그리고", "또", "겸"
  * 다음은 분리 금지: "와/과/랑/하고/및" (동반/대상 연결에 자주 쓰임)
  * 특히 "X랑/와/과/하고 + 데이트/만나/식사/영화/산책/파티/축하/통화/콜…"은 하나의 할 일로 남깁니다.
  * 각 항목: {"title": 문자열, "dueDate": ISO8601|null, "estimatedDurationMinutes": 숫자|null}
- estimatedDurationMinutes: 5,10,15,20,25,30,45,60 중 보수적으로 추정
""".strip()

JSON_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


def build_user_prompt(text: str) -> str:
    return f"사용자 입력:\n{text}".strip()


def parse_json_object(content: str) -> dict[str, Any]:
    """Decode the first JSON object in the content, or return {}."""
    content = (content or "").strip()
    if not content:
        return {}
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        match = JSON_OBJECT_PATTERN.search(content)
        if not match:
            return {}
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return {}
    return data if isinstance(data, dict) else {}


class RemoteExtractionClient:
    """Turn an utterance into the model's provisional JSON suggestion."""

    def __init__(self, llm_client: LLMClient | None = None) -> None:
        if llm_client is None:
            from planchat.services.llm_client import get_llm_client

            llm_client = get_llm_client()
        self.llm_client = llm_client

    def suggest(self, text: str) -> dict[str, Any]:
        if not self.llm_client.is_available:
            logger.debug("No LLM provider configured; using local rules only")
            return {}

        try:
            response = self.llm_client.complete(
                build_user_prompt(text),
                system_prompt=SYSTEM_PROMPT,
                json_mode=True,
            )
        except Exception as exc:
            logger.warning("Remote extraction failed; falling back to local rules: %s", exc)
            return {}

        suggestion = parse_json_object(response.text)
        if not suggestion:
            logger.warning("Remote extraction returned no JSON object: %r", response.text[:80])
        return suggestion
