"""Contracts for the external price discovery API."""

from __future__ import annotations

from typing import Any, Protocol, TypedDict

from fare_check.domain.models import SessionSnapshot


class SubmitSessionResponse(TypedDict, total=False):
    """Schema returned by POST /session."""

    request_id: str
    status: str
    message: str


class PricingApiProtocol(Protocol):
    """Port describing interactions with the pricing API."""

    async def submit_session(self, trip: dict[str, Any]) -> SubmitSessionResponse:
        """Create a pricing session for a normalized trip request."""

    async def get_session(self, request_id: str) -> SessionSnapshot:
        """Fetch current status and results of a session."""
