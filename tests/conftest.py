"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

import pytest

from fare_check.domain.models import PriceResult, SessionSnapshot
from fare_check.domain.ports.pricing_api import SubmitSessionResponse

BASE_TRIP_REQUEST: dict[str, Any] = {
    "trip": {
        "legs": [
            {
                "segments": [
                    {
                        "airline": "XZ",
                        "flightNumber": "2020",
                        "departureAirport": "MXP",
                        "arrivalAirport": "FCO",
                        "departureDate": "2025-12-16",
                        "departureTime": "07:10",
                        "arrivalTime": "08:25",
                        "plusDays": 0,
                    }
                ]
            }
        ],
        "travelClass": "economy",
        "adults": 1,
        "children": 0,
        "infantsInSeat": 0,
        "infantsOnLap": 0,
    },
    "source": "chatgpt",
    "price": "84",
    "currency": "eur",
    "location": "Milan, Italy",
}

RAW_RESULT: dict[str, Any] = {
    "price": "79.90",
    "currency": "EUR",
    "source": "Kiwi.com",
    "booking_URL": "https://booking.test/offer/1",
    "private_fare": "false",
    "timestamp": "2025-11-01T10:00:00Z",
}


@pytest.fixture
def trip_request_builder() -> Callable[[], dict[str, Any]]:
    """Return a factory that produces independent copies of the sample trip request."""

    def _builder() -> dict[str, Any]:
        return deepcopy(BASE_TRIP_REQUEST)

    return _builder


@pytest.fixture
def raw_result_builder() -> Callable[..., dict[str, Any]]:
    """Return a factory for raw upstream result items with overrides."""

    def _builder(**overrides: Any) -> dict[str, Any]:
        item = deepcopy(RAW_RESULT)
        item.update(overrides)
        return item

    return _builder


def make_snapshot(
    status: str = "IN_PROGRESS",
    results: int = 0,
    request_id: str = "req-1",
    **raw: Any,
) -> SessionSnapshot:
    return SessionSnapshot(
        request_id=request_id,
        status=status,
        results=[
            PriceResult(
                rank=rank,
                price=f"{70 + rank}.00 EUR",
                website=f"site-{rank}",
                fareType="Standard Fare",
            )
            for rank in range(1, results + 1)
        ],
        rawData={"status": status, **raw},
    )


@dataclass
class ScriptedPricingApi:
    """Fake pricing API replaying one scripted answer per status check.

    The last entry of ``script`` repeats once the script runs out.
    """

    script: list[SessionSnapshot | Exception] = field(default_factory=list)
    request_id: str = "req-1"
    submit_error: Exception | None = None
    submitted: list[dict[str, Any]] = field(default_factory=list)
    fetched_ids: list[str] = field(default_factory=list)

    @property
    def fetches(self) -> int:
        return len(self.fetched_ids)

    async def submit_session(self, trip: dict[str, Any]) -> SubmitSessionResponse:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(trip)
        return SubmitSessionResponse(
            request_id=self.request_id,
            status="IN_PROGRESS",
            message="Search started",
        )

    async def get_session(self, request_id: str) -> SessionSnapshot:
        await asyncio.sleep(0)
        index = min(self.fetches, len(self.script) - 1)
        self.fetched_ids.append(request_id)
        answer = self.script[index]
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def snapshot_factory() -> Callable[..., SessionSnapshot]:
    return make_snapshot


@pytest.fixture
def scripted_api() -> type[ScriptedPricingApi]:
    return ScriptedPricingApi
