"""Contracts for the natural language trip parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(slots=True)
class ParseOutcome:
    """Either a structured trip request or a follow-up question for the user."""

    trip_request: dict[str, Any] | None = None
    needs_more_info: bool = False
    message: str = ""
    missing_fields: list[str] = field(default_factory=list)


class TripParserProtocol(Protocol):
    """Port turning free text into a TripRequest-shaped dict."""

    async def parse(self, text: str, context: str | None = None) -> ParseOutcome:
        """Structure ``text``, optionally using earlier conversation ``context``."""
