"""Session-keyed store of the latest formatted search payloads."""

from __future__ import annotations

import logging
from typing import Any

from cachetools import TTLCache

from fare_check.config import get_settings

logger = logging.getLogger(__name__)


class ResultStore:
    """
    TTL-bounded mapping of request_id to the last payload produced for it.

    The widget resource reads from here. Entries expire after the configured
    TTL and the oldest are evicted once the size limit is reached; the
    most-recent pointer is dropped together with its entry.
    """

    def __init__(self, ttl: int | None = None, size: int | None = None) -> None:
        """
        Initialize store with configurable TTL and size.

        Args:
            ttl: Entry lifetime in seconds (default from config)
            size: Max number of payloads kept (default from config)
        """
        settings = get_settings()
        self._payloads: TTLCache[str, dict[str, Any]] = TTLCache(
            maxsize=size or settings.result_store_size,
            ttl=ttl or settings.result_store_ttl,
        )
        self._latest_id: str | None = None

    def put(self, request_id: str, payload: dict[str, Any]) -> None:
        self._payloads[request_id] = payload
        self._latest_id = request_id
        logger.debug("payload stored", extra={"request_id": request_id})

    def get(self, request_id: str) -> dict[str, Any] | None:
        return self._payloads.get(request_id)

    def latest(self) -> dict[str, Any] | None:
        """Payload of the most recent write, or None if it expired."""
        if self._latest_id is None:
            return None
        payload = self._payloads.get(self._latest_id)
        if payload is None:
            self._latest_id = None
        return payload

    def clear(self) -> None:
        self._payloads.clear()
        self._latest_id = None

    def __len__(self) -> int:
        return len(self._payloads)
