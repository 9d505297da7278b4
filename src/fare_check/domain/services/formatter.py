"""Build caller-facing payloads from session snapshots."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from fare_check.domain.models import SearchPayload, SessionSnapshot, TripSummary

logger = logging.getLogger(__name__)

ONE_WAY_ARROW = "→"
ROUND_TRIP_ARROW = "⇄"


@dataclass(slots=True)
class ResultFormatter:
    """Pure transform from snapshot and optional trip context to a payload."""

    def format(
        self,
        snapshot: SessionSnapshot,
        trip_request: dict[str, Any] | None = None,
    ) -> SearchPayload:
        return SearchPayload(
            request_id=snapshot.request_id,
            status=snapshot.status,
            totalResults=snapshot.total_results,
            results=snapshot.results,
            tripSummary=self.summarize(trip_request) if trip_request else None,
            rawData=snapshot.rawData,
        )

    def summarize(self, trip_request: dict[str, Any]) -> TripSummary | None:
        """Human readable trip summary, None when the trip cannot be described."""
        try:
            return self._summarize(trip_request)
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            logger.info("trip summary unavailable", extra={"error": str(e)})
            return None

    @staticmethod
    def _summarize(trip_request: dict[str, Any]) -> TripSummary | None:
        trip = trip_request["trip"]
        legs = trip.get("legs") or []
        if not legs:
            return None
        first_segments = legs[0].get("segments") or []
        last_segments = legs[-1].get("segments") or []
        if not first_segments or not last_segments:
            return None

        first, last = first_segments[0], last_segments[-1]
        arrow = ONE_WAY_ARROW if len(legs) == 1 else ROUND_TRIP_ARROW
        route = f"{first['departureAirport']} {arrow} {last['arrivalAirport']}"

        departure = date.fromisoformat(first["departureDate"])
        formatted_date = f"{departure:%a, %b} {departure.day}"

        travel_class = (trip.get("travelClass") or "economy").lower().replace("_", " ")

        return TripSummary(
            route=route,
            date=formatted_date,
            passengers=passenger_label(
                adults=trip.get("adults") or 0,
                children=trip.get("children") or 0,
                infants=(trip.get("infantsInSeat") or 0) + (trip.get("infantsOnLap") or 0),
            ),
            travel_class=travel_class[:1].upper() + travel_class[1:],
        )


def passenger_label(adults: int, children: int, infants: int) -> str:
    parts = []
    if adults > 0:
        parts.append(f"{adults} adult{'s' if adults != 1 else ''}")
    if children > 0:
        parts.append(f"{children} child{'ren' if children != 1 else ''}")
    if infants > 0:
        parts.append(f"{infants} infant{'s' if infants != 1 else ''}")
    return ", ".join(parts) or "1 passenger"
