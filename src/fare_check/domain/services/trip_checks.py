"""Completeness checks for structured trip requests."""

from __future__ import annotations

from typing import Any

SEGMENT_FIELDS: dict[str, str] = {
    "airline": "airline code",
    "flightNumber": "flight number",
    "departureAirport": "departure airport",
    "arrivalAirport": "arrival airport",
    "departureDate": "departure date",
    "departureTime": "departure time",
    "arrivalTime": "arrival time",
}


def find_missing_fields(trip_request: dict[str, Any]) -> list[str]:
    """
    List human readable names of the fields a search still needs.

    Args:
        trip_request: TripRequest-shaped dict, possibly partial

    Returns:
        Missing field descriptions in leg/segment order, empty when complete
    """
    trip = trip_request.get("trip")
    if not isinstance(trip, dict):
        return ["trip information"]

    missing: list[str] = []
    legs = trip.get("legs")
    if not isinstance(legs, list) or not legs:
        missing.append("flight legs")
    else:
        for leg_no, leg in enumerate(legs, start=1):
            segments = leg.get("segments") if isinstance(leg, dict) else None
            if not isinstance(segments, list) or not segments:
                missing.append(f"segments for leg {leg_no}")
                continue
            for segment_no, segment in enumerate(segments, start=1):
                segment = segment if isinstance(segment, dict) else {}
                for key, label in SEGMENT_FIELDS.items():
                    if not segment.get(key):
                        missing.append(f"{label} for leg {leg_no}, segment {segment_no}")

    if not trip.get("adults"):
        missing.append("number of adults")
    if not trip.get("travelClass"):
        missing.append("travel class")
    return missing


def follow_up_question(missing: list[str]) -> str:
    """Phrase missing fields as a single conversational question."""
    question = "I need a bit more information to search for your flight. "
    if len(missing) == 1:
        return question + f"Could you please provide: {missing[0]}?"
    if len(missing) <= 3:
        return question + f"Could you please provide: {', '.join(missing[:-1])} and {missing[-1]}?"
    return question + (
        "Could you please provide more details about your flight? "
        f"I'm missing: {', '.join(missing[:3])} and {len(missing) - 3} other details."
    )
