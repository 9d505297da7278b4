"""Conversion utilities for transforming raw session payloads into view models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fare_check.domain.models import PriceResult, SessionSnapshot, SessionStatus

RawSession = dict[str, Any]

SPECIAL_FARE = "Special Fare"
STANDARD_FARE = "Standard Fare"


@dataclass(slots=True)
class SessionConverter:
    """Pure conversion helpers to keep the API client slim."""

    def convert(self, raw: RawSession, request_id: str = "") -> SessionSnapshot:
        """
        Convert a raw GET /session payload into a snapshot.

        The raw payload is kept on the snapshot for diagnostics. Results keep
        upstream order; rank is the 1-based position.
        """
        raw_results = raw.get("results")
        results: list[PriceResult] = []
        if isinstance(raw_results, list):
            items = [item for item in raw_results if isinstance(item, dict)]
            results = [
                self._build_result(index, item) for index, item in enumerate(items, start=1)
            ]

        return SessionSnapshot(
            request_id=str(raw.get("request_id") or request_id),
            status=str(raw.get("status") or SessionStatus.IN_PROGRESS),
            results=results,
            rawData=raw,
        )

    def _build_result(self, rank: int, item: dict[str, Any]) -> PriceResult:
        return PriceResult(
            rank=rank,
            price=_join_amount(item.get("price"), item.get("currency")),
            convertedPrice=self._converted_price(item),
            website=_str_or_none(item.get("source") or item.get("website_name")),
            bookingUrl=_str_or_none(item.get("booking_URL") or item.get("booking_url")),
            fareType=self.fare_type(item.get("private_fare")),
            timestamp=_str_or_none(item.get("timestamp")),
        )

    @staticmethod
    def fare_type(private_fare: Any) -> str:
        # Upstream sends the flag as a string; only the literal "true" counts.
        return SPECIAL_FARE if private_fare == "true" else STANDARD_FARE

    @staticmethod
    def _converted_price(item: dict[str, Any]) -> str | None:
        if not item.get("convertedPrice"):
            return None
        return _join_amount(item.get("convertedPrice"), item.get("convertedCurrency"))


def _join_amount(amount: Any, currency: Any) -> str:
    parts = [str(value) for value in (amount, currency) if value not in (None, "")]
    return " ".join(parts)


def _str_or_none(value: Any) -> str | None:
    if value in (None, ""):
        return None
    return str(value)
