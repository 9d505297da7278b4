"""Tests for AnthropicTripParser with a fake Messages client."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import date
from types import SimpleNamespace
from typing import Any

import pytest

from fare_check.infrastructure.anthropic_trip_parser import (
    FALLBACK_FIELDS,
    AnthropicTripParser,
)


@dataclass
class FakeMessages:
    text: str = ""
    delay: float = 0.0
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.delay:
            await asyncio.sleep(self.delay)
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=self.text)])


def make_parser(messages: FakeMessages, timeout: float = 5.0) -> AnthropicTripParser:
    return AnthropicTripParser(
        api_key="test-key",
        model="test-model",
        timeout=timeout,
        client=SimpleNamespace(messages=messages),
        today=date(2025, 11, 1),
    )


@pytest.mark.asyncio
async def test_complete_request_is_returned(trip_request_builder) -> None:
    messages = FakeMessages(text=json.dumps(trip_request_builder()))

    outcome = await make_parser(messages).parse("XZ 2020 MXP to FCO on Dec 16 for 84 EUR")

    assert outcome.needs_more_info is False
    assert outcome.trip_request == trip_request_builder()
    call = messages.calls[0]
    assert call["model"] == "test-model"
    assert "XZ 2020 MXP to FCO" in call["messages"][0]["content"]
    assert "2025-11-01" in call["messages"][0]["content"]


@pytest.mark.asyncio
async def test_fenced_json_is_decoded(trip_request_builder) -> None:
    fenced = "```json\n" + json.dumps(trip_request_builder()) + "\n```"

    outcome = await make_parser(FakeMessages(text=fenced)).parse("XZ 2020")

    assert outcome.trip_request == trip_request_builder()


@pytest.mark.asyncio
async def test_model_follow_up_is_passed_through() -> None:
    answer = {
        "needsMoreInfo": True,
        "message": "What time does the flight leave?",
        "missingFields": ["departure time"],
    }

    outcome = await make_parser(FakeMessages(text=json.dumps(answer))).parse("MXP to FCO")

    assert outcome.needs_more_info is True
    assert outcome.message == "What time does the flight leave?"
    assert outcome.missing_fields == ["departure time"]
    assert outcome.trip_request is None


@pytest.mark.asyncio
async def test_context_is_included_in_prompt() -> None:
    messages = FakeMessages(text='{"needsMoreInfo": true, "message": "?"}')

    await make_parser(messages).parse("at 7:10", context="User flies XZ 2020 MXP-FCO")

    assert "User flies XZ 2020 MXP-FCO" in messages.calls[0]["messages"][0]["content"]


@pytest.mark.asyncio
async def test_timeout_falls_back_to_follow_up() -> None:
    messages = FakeMessages(text="{}", delay=1.0)

    outcome = await make_parser(messages, timeout=0.01).parse("XZ 2020")

    assert outcome.needs_more_info is True
    assert outcome.missing_fields == FALLBACK_FIELDS


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["not json at all", "[1, 2, 3]", ""])
async def test_unparsable_answer_falls_back_to_follow_up(text) -> None:
    outcome = await make_parser(FakeMessages(text=text)).parse("XZ 2020")

    assert outcome.needs_more_info is True
    assert outcome.message.startswith("I encountered an error parsing your request.")
