"""Submission and bounded polling of pricing sessions."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fare_check.errors import UpstreamError
from fare_check.domain.models import SessionSnapshot
from fare_check.domain.ports.pricing_api import PricingApiProtocol, SubmitSessionResponse

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 10
POLL_INTERVAL = 6.0


class Resolution(str, Enum):
    """How a poll run ended."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    EMPTY = "empty"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class PollOutcome:
    snapshot: SessionSnapshot
    resolution: Resolution
    fetches: int


class SessionPoller:
    """
    Turn one submission into a bounded sequence of status checks.

    Upstream searches fan out over many booking sites that finish at
    different times, so the poller favours returning early: it stops on
    COMPLETED, returns accumulated results on the last attempt, and leaves
    later refreshes to the caller.
    """

    def __init__(
        self,
        pricing_api: PricingApiProtocol,
        max_attempts: int = MAX_ATTEMPTS,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        """
        Initialize poller.

        Args:
            pricing_api: Pricing API port
            max_attempts: Number of polling attempts before the terminal fetch
            poll_interval: Seconds to wait before each attempt
        """
        self._pricing_api = pricing_api
        self._max_attempts = max_attempts
        self._poll_interval = poll_interval

    async def submit(self, trip: dict[str, Any]) -> SubmitSessionResponse:
        """
        Submit a normalized trip and return the session handle.

        Raises:
            UpstreamError: If the API fails or returns no request_id
        """
        response = await self._pricing_api.submit_session(trip)
        request_id = response.get("request_id")
        if not request_id:
            logger.error("submission returned no request_id", extra={"response": response})
            raise UpstreamError(
                "No request_id returned from session submission",
                body=str(response.get("message", "")),
            )
        logger.info("session created", extra={"request_id": request_id})
        return response

    async def fetch(self, request_id: str) -> SessionSnapshot:
        """Single status check, errors propagate."""
        return await self._pricing_api.get_session(request_id)

    async def submit_and_poll(
        self,
        trip: dict[str, Any],
        cancel: asyncio.Event | None = None,
    ) -> PollOutcome:
        """
        Submit a session and poll it until one of the resolution points.

        Args:
            trip: Normalized trip request
            cancel: When set, no further fetches are made and the last known
                snapshot is returned

        Returns:
            Poll outcome with the most useful snapshot available

        Raises:
            UpstreamError: On submission failure or terminal fetch failure
        """
        response = await self.submit(trip)
        return await self.poll(response["request_id"], cancel=cancel)

    async def poll(
        self,
        request_id: str,
        cancel: asyncio.Event | None = None,
    ) -> PollOutcome:
        last: SessionSnapshot | None = None
        fetches = 0

        for attempt in range(1, self._max_attempts + 1):
            if await self._pause(cancel):
                return self._cancelled(request_id, last, fetches)

            fetches += 1
            try:
                snapshot = await self._pricing_api.get_session(request_id)
            except UpstreamError as e:
                logger.warning(
                    "poll attempt failed",
                    extra={"request_id": request_id, "attempt": attempt, "error": str(e)},
                )
                continue
            last = snapshot

            if snapshot.is_completed:
                logger.info(
                    "search completed",
                    extra={"request_id": request_id, "results": snapshot.total_results},
                )
                return PollOutcome(snapshot, Resolution.COMPLETE, fetches)

            if snapshot.results:
                logger.info(
                    "partial results, continuing",
                    extra={
                        "request_id": request_id,
                        "attempt": attempt,
                        "results": snapshot.total_results,
                    },
                )
                if attempt == self._max_attempts:
                    return PollOutcome(snapshot, Resolution.PARTIAL, fetches)
            else:
                logger.debug(
                    "no results yet",
                    extra={"request_id": request_id, "attempt": attempt, "status": snapshot.status},
                )

        if cancel is not None and cancel.is_set():
            return self._cancelled(request_id, last, fetches)

        logger.info("polling budget exhausted, terminal fetch", extra={"request_id": request_id})
        snapshot = await self._pricing_api.get_session(request_id)
        return PollOutcome(snapshot, self._classify(snapshot), fetches + 1)

    async def _pause(self, cancel: asyncio.Event | None) -> bool:
        """Wait one poll interval; return True when cancellation was requested."""
        if cancel is None:
            await asyncio.sleep(self._poll_interval)
            return False
        if cancel.is_set():
            return True
        try:
            await asyncio.wait_for(cancel.wait(), timeout=self._poll_interval)
        except TimeoutError:
            return False
        return True

    @staticmethod
    def _cancelled(
        request_id: str,
        last: SessionSnapshot | None,
        fetches: int,
    ) -> PollOutcome:
        logger.info("polling cancelled", extra={"request_id": request_id, "fetches": fetches})
        snapshot = last or SessionSnapshot(request_id=request_id)
        return PollOutcome(snapshot, Resolution.CANCELLED, fetches)

    @staticmethod
    def _classify(snapshot: SessionSnapshot) -> Resolution:
        if snapshot.is_completed:
            return Resolution.COMPLETE
        if snapshot.results:
            return Resolution.PARTIAL
        return Resolution.EMPTY
