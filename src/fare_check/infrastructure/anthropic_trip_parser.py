"""Natural language trip parser backed by the Anthropic Messages API."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from datetime import date
from typing import Any

import anthropic

from fare_check.domain.ports.trip_parser import ParseOutcome

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$")

FALLBACK_FIELDS = [
    "departure airport",
    "arrival airport",
    "departure date",
    "departure time",
    "arrival time",
    "airline code",
    "flight number",
]


class AnthropicTripParser:
    """
    Structure free-text flight descriptions with Claude.

    The call is raced against a timeout. Any failure degrades to a
    follow-up question instead of an error so the host can keep talking
    to the user.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float,
        client: anthropic.AsyncAnthropic | None = None,
        today: date | None = None,
    ) -> None:
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model
        self._timeout = timeout
        self._today = today

    async def parse(self, text: str, context: str | None = None) -> ParseOutcome:
        prompt = self._build_prompt(text, context)
        try:
            response = await asyncio.wait_for(
                self._client.messages.create(
                    model=self._model,
                    max_tokens=1024,
                    temperature=0,
                    messages=[{"role": "user", "content": prompt}],
                ),
                timeout=self._timeout,
            )
        except (TimeoutError, anthropic.APIError) as e:
            logger.error("trip parsing failed", extra={"error": str(e)})
            return self._fallback()

        try:
            data = self._decode(response.content[0].text)
        except (IndexError, AttributeError, ValueError) as e:
            logger.warning("unparsable parser response", extra={"error": str(e)})
            return self._fallback()

        if data.get("needsMoreInfo"):
            return ParseOutcome(
                needs_more_info=True,
                message=str(data.get("message") or ""),
                missing_fields=[str(item) for item in data.get("missingFields") or []],
            )
        return ParseOutcome(trip_request=data)

    def _build_prompt(self, text: str, context: str | None) -> str:
        today = self._today or date.today()
        context_block = f"\nEarlier conversation:\n{context}\n" if context else ""
        return f"""Analyze this flight request: "{text}"
{context_block}
Today is {today.isoformat()}. Dates without a year are in {today.year} unless that
would put them in the past, then use {today.year + 1}. Convert times to 24-hour HH:MM:SS.
Flight numbers are digits only; airline codes are 2 letters; airports are 3-letter IATA codes.

If the user has provided complete flight information (airline, flight number, airports,
dates, times), return JSON with this structure:
{{
  "trip": {{
    "legs": [{{"segments": [{{"airline": "XX", "flightNumber": "123", "departureAirport": "XXX",
      "arrivalAirport": "XXX", "departureDate": "YYYY-MM-DD", "departureTime": "HH:MM:SS",
      "arrivalTime": "HH:MM:SS", "plusDays": 0}}]}}],
    "travelClass": "ECONOMY",
    "adults": 1,
    "children": 0,
    "infantsInSeat": 0,
    "infantsOnLap": 0
  }},
  "source": "MANUAL",
  "price": "100.00",
  "currency": "EUR",
  "location": "IT"
}}

Otherwise return:
{{"needsMoreInfo": true, "message": "<what you understood and only the missing details>",
  "missingFields": ["<field>", "..."]}}

Return ONLY JSON."""

    @staticmethod
    def _decode(text: str) -> dict[str, Any]:
        data = json.loads(_FENCE_RE.sub("", text.strip()))
        if not isinstance(data, dict):
            raise ValueError("parser response is not a JSON object")
        return data

    @staticmethod
    def _fallback() -> ParseOutcome:
        return ParseOutcome(
            needs_more_info=True,
            message=(
                "I encountered an error parsing your request. Please provide: "
                + ", ".join(FALLBACK_FIELDS)
                + "."
            ),
            missing_fields=list(FALLBACK_FIELDS),
        )
