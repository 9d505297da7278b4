"""Wire and view models for trips, pricing sessions and tool payloads."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TravelClass(str, Enum):
    ECONOMY = "ECONOMY"
    PREMIUM_ECONOMY = "PREMIUM_ECONOMY"
    BUSINESS = "BUSINESS"
    FIRST = "FIRST"


class PriceSource(str, Enum):
    """Sources accepted by the pricing API; anything else is sent as MANUAL."""

    MANUAL = "MANUAL"
    KAYAK = "KAYAK"
    GOOGLE_FLIGHTS = "GOOGLE_FLIGHTS"
    BOOKING = "BOOKING"


class SessionStatus:
    """Session status constants as reported upstream."""

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class Segment(BaseModel):
    airline: str = Field(description="Two-letter airline code (e.g., LX)")
    flightNumber: str = Field(description="Flight number, digits only (e.g., 1612)")
    departureAirport: str = Field(description="Three-letter IATA code (e.g., ZRH)")
    arrivalAirport: str = Field(description="Three-letter IATA code (e.g., LHR)")
    departureDate: str = Field(description="Date in YYYY-MM-DD format")
    departureTime: str = Field(description="Time in HH:MM or HH:MM:SS format")
    arrivalTime: str = Field(description="Time in HH:MM or HH:MM:SS format")
    plusDays: int = Field(
        default=0,
        description="Days to add to arrival date (0 for same day, 1 for next day)",
    )


class Leg(BaseModel):
    segments: list[Segment]


class Trip(BaseModel):
    legs: list[Leg]
    travelClass: str = Field(description="ECONOMY, PREMIUM_ECONOMY, BUSINESS or FIRST")
    adults: int = 1
    children: int = 0
    infantsInSeat: int = 0
    infantsOnLap: int = 0


class TripRequest(BaseModel):
    """Search criteria submitted to the pricing API."""

    trip: Trip
    source: str = Field(default=PriceSource.MANUAL.value, description="Source of the price")
    price: str = Field(description="Reference price the user saw (e.g., '99')")
    currency: str = Field(description="Three-letter currency code (e.g., EUR, USD)")
    location: str | None = Field(
        default=None,
        description="User's country (optional, e.g., 'Italy', 'IT', 'Milan, Italy')",
    )


class PriceResult(BaseModel):
    rank: int
    price: str
    convertedPrice: str | None = None
    website: str | None = None
    bookingUrl: str | None = None
    fareType: str
    timestamp: str | None = None


class SessionSnapshot(BaseModel):
    """One fetched view of an upstream pricing session."""

    request_id: str
    status: str = SessionStatus.IN_PROGRESS
    results: list[PriceResult] = Field(default_factory=list)
    rawData: dict[str, Any] = Field(default_factory=dict)

    @property
    def total_results(self) -> int:
        return len(self.results)

    @property
    def is_completed(self) -> bool:
        return self.status == SessionStatus.COMPLETED

    @property
    def effectively_successful(self) -> bool:
        # Any result counts as success regardless of the reported status.
        return self.is_completed or bool(self.results)


class TripSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    route: str
    date: str
    passengers: str
    travel_class: str = Field(alias="class")


class SearchPayload(BaseModel):
    """Caller-facing result handed to the host and injected into the widget."""

    request_id: str
    status: str
    totalResults: int
    results: list[PriceResult]
    tripSummary: TripSummary | None = None
    rawData: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
