"""Coercion of caller supplied tool arguments into the pricing API schema."""

from __future__ import annotations

import math
import re
from copy import deepcopy
from dataclasses import dataclass
from datetime import date
from typing import Any

from fare_check.domain.models import PriceSource

TIMEZONE_COUNTRIES: dict[str, str] = {
    "Europe/Rome": "IT",
    "Europe/Milan": "IT",
    "Europe/Paris": "FR",
    "Europe/London": "GB",
    "Europe/Madrid": "ES",
    "Europe/Berlin": "DE",
    "Europe/Zurich": "CH",
    "Europe/Amsterdam": "NL",
    "Europe/Brussels": "BE",
    "Europe/Vienna": "AT",
    "Europe/Lisbon": "PT",
    "Europe/Dublin": "IE",
    "America/New_York": "US",
    "America/Chicago": "US",
    "America/Denver": "US",
    "America/Los_Angeles": "US",
    "America/Toronto": "CA",
    "Australia/Sydney": "AU",
}

# First match wins, so keep multi-word names ahead of their fragments.
LOCATION_NAMES: dict[str, str] = {
    "united kingdom": "GB",
    "united states": "US",
    "italy": "IT",
    "italia": "IT",
    "france": "FR",
    "francia": "FR",
    "uk": "GB",
    "england": "GB",
    "usa": "US",
    "america": "US",
    "spain": "ES",
    "espana": "ES",
    "germany": "DE",
    "deutschland": "DE",
    "switzerland": "CH",
    "svizzera": "CH",
    "netherlands": "NL",
    "portugal": "PT",
    "austria": "AT",
    "belgium": "BE",
    "ireland": "IE",
    "canada": "CA",
    "australia": "AU",
    "milan": "IT",
    "rome": "IT",
    "paris": "FR",
    "london": "GB",
    "madrid": "ES",
    "barcelona": "ES",
    "berlin": "DE",
    "munich": "DE",
    "zurich": "CH",
    "geneva": "CH",
    "amsterdam": "NL",
    "new york": "US",
}

_ALLOWED_SOURCES = frozenset(source.value for source in PriceSource)
_DEFAULT_TIME = "00:00:00"

_DIGITS_RE = re.compile(r"\d+")
_PRICE_NOISE_RE = re.compile(r"[^0-9.]")
_COUNTRY_CODE_RE = re.compile(r"^[A-Za-z]{2}$")
_BARE_CODE_RE = re.compile(r"\b([A-Z]{2})\b")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_MONTH_DAY_RE = re.compile(r"^(\d{1,2})-(\d{1,2})$")
_NAME_PATTERNS = {
    name: re.compile(rf"\b{re.escape(name)}\b") for name in LOCATION_NAMES
}


@dataclass(slots=True)
class TripRequestNormalizer:
    """
    Fix the format of search arguments without judging their completeness.

    Missing structure is filled with safe defaults, unparsable values are
    passed through, and the transform never raises.

    Args:
        today: Date used to complete year-less departure dates; defaults to
            the current date.
    """

    today: date | None = None

    def normalize(self, raw: Any) -> dict[str, Any]:
        """Return a normalized deep copy of ``raw``."""
        args: dict[str, Any] = deepcopy(raw) if isinstance(raw, dict) else {}

        trip = args.get("trip")
        if not isinstance(trip, dict):
            trip = {}
            args["trip"] = trip
        self._normalize_trip(trip)

        if "price" in args:
            args["price"] = self._normalize_price(args["price"])
        if isinstance(args.get("currency"), str):
            args["currency"] = args["currency"].strip().upper()

        location = self.resolve_location(args.get("location"))
        if location is None:
            # Upstream rejects an empty location, the key has to go.
            args.pop("location", None)
        else:
            args["location"] = location

        args["source"] = self._normalize_source(args.get("source"))
        return args

    def _normalize_trip(self, trip: dict[str, Any]) -> None:
        if not isinstance(trip.get("legs"), list):
            trip["legs"] = []
        if isinstance(trip.get("travelClass"), str):
            trip["travelClass"] = trip["travelClass"].strip().upper()
        trip["adults"] = _coerce_count(trip.get("adults"), default=1)
        for key in ("children", "infantsInSeat", "infantsOnLap"):
            trip[key] = _coerce_count(trip.get(key), default=0)

        for leg in trip["legs"]:
            if not isinstance(leg, dict) or not isinstance(leg.get("segments"), list):
                continue
            for segment in leg["segments"]:
                if isinstance(segment, dict):
                    self._normalize_segment(segment)

    def _normalize_segment(self, segment: dict[str, Any]) -> None:
        flight_number = segment.get("flightNumber")
        if isinstance(flight_number, str):
            match = _DIGITS_RE.search(flight_number)
            if match:
                segment["flightNumber"] = match.group(0)
        elif isinstance(flight_number, int) and not isinstance(flight_number, bool):
            segment["flightNumber"] = str(flight_number)

        if not _is_finite_number(segment.get("plusDays")):
            segment["plusDays"] = 0

        segment["departureTime"] = _pad_time(segment.get("departureTime"))
        segment["arrivalTime"] = _pad_time(segment.get("arrivalTime"))

        if "departureDate" in segment:
            segment["departureDate"] = self._complete_date(segment["departureDate"])

    @staticmethod
    def _normalize_price(price: Any) -> Any:
        if isinstance(price, bool):
            return price
        if isinstance(price, int | float):
            value = float(price)
        elif isinstance(price, str):
            try:
                value = float(_PRICE_NOISE_RE.sub("", price))
            except ValueError:
                return price
        else:
            return price
        if not math.isfinite(value):
            return price
        return f"{value:.2f}"

    @staticmethod
    def _normalize_source(source: Any) -> str:
        if isinstance(source, str) and source.strip().upper() in _ALLOWED_SOURCES:
            return source.strip().upper()
        return PriceSource.MANUAL.value

    @staticmethod
    def resolve_location(location: Any) -> str | None:
        """
        Resolve free-form location input to a two-letter country code.

        Args:
            location: Timezone name, country or city name, ``"City, CC"``,
                ``"<prefix>-<CC>"`` or an ISO code

        Returns:
            Uppercase country code, or None when nothing can be resolved
        """
        if not isinstance(location, str) or not location.strip():
            return None
        loc = location.strip()

        if loc in TIMEZONE_COUNTRIES:
            return TIMEZONE_COUNTRIES[loc]
        if _COUNTRY_CODE_RE.match(loc):
            return loc.upper()

        parts = loc.split("-")
        if len(parts) == 2 and _COUNTRY_CODE_RE.match(parts[1]):
            return parts[1].upper()

        lowered = loc.lower()
        for name, code in LOCATION_NAMES.items():
            if _NAME_PATTERNS[name].search(lowered):
                return code

        for match in _BARE_CODE_RE.finditer(loc):
            if match.group(1) != "EU":
                return match.group(1)
        return None

    def _complete_date(self, value: Any) -> Any:
        """Give a year to ``MM-DD`` dates so they never land in the past."""
        if not isinstance(value, str):
            return value
        match = _MONTH_DAY_RE.match(value.strip())
        if not match:
            return value
        today = self.today or date.today()
        month, day = int(match.group(1)), int(match.group(2))
        year = today.year if (month, day) >= (today.month, today.day) else today.year + 1
        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return value


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return False
    return math.isfinite(value)


def _coerce_count(value: Any, default: int) -> Any:
    """Keep supplied counts, turning digit strings into ints; default the rest."""
    if _is_finite_number(value):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def _pad_time(value: Any) -> Any:
    if not isinstance(value, str):
        return _DEFAULT_TIME
    text = value.strip()
    if not text:
        return _DEFAULT_TIME
    if len(text) == 5:
        return f"{text}:00"
    match = _TIME_RE.match(text)
    if match:
        hours, minutes, seconds = match.groups()
        return f"{int(hours):02d}:{minutes}:{seconds or '00'}"
    return value
