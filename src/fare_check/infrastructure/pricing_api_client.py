"""HTTP client for the price discovery API."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from fare_check.config import get_settings
from fare_check.domain.models import SessionSnapshot
from fare_check.domain.ports.pricing_api import SubmitSessionResponse
from fare_check.domain.services.converter import SessionConverter
from fare_check.errors import UpstreamError

logger = logging.getLogger(__name__)


class PricingApiClient:
    """
    Async client implementing PricingApiProtocol over httpx.

    Every call is a single request: retries belong to the session poller.
    Non-2xx answers and transport failures both surface as UpstreamError.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        converter: SessionConverter | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize client.

        Args:
            base_url: API root, defaults to settings.api_base_url
            timeout: Per-request timeout in seconds, defaults to settings.upstream_timeout
            converter: Raw session converter
            http_client: Preconfigured httpx client (tests inject a mock transport)
        """
        settings = get_settings()
        self._base_url = (base_url or settings.api_base_url).rstrip("/")
        self._converter = converter or SessionConverter()
        self._http = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout or settings.upstream_timeout),
            headers={"Accept": "application/json"},
        )

    async def submit_session(self, trip: dict[str, Any]) -> SubmitSessionResponse:
        """POST /session and return the session handle."""
        response = await self._request("POST", "/session", json=trip)
        data = self._decode(response)
        logger.info(
            "session submitted",
            extra={"request_id": data.get("request_id", "-"), "status": data.get("status")},
        )
        return SubmitSessionResponse(
            request_id=str(data.get("request_id") or ""),
            status=str(data.get("status") or ""),
            message=str(data.get("message") or ""),
        )

    async def get_session(self, request_id: str) -> SessionSnapshot:
        """GET /session/{request_id} and convert results to the view model."""
        response = await self._request("GET", f"/session/{quote(request_id, safe='')}")
        data = self._decode(response)
        snapshot = self._converter.convert(data, request_id=request_id)
        logger.debug(
            "session fetched",
            extra={
                "request_id": request_id,
                "status": snapshot.status,
                "results": snapshot.total_results,
            },
        )
        return snapshot

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> PricingApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(
                "pricing API unreachable",
                extra={"method": method, "url": url, "error": str(e)},
            )
            raise UpstreamError(f"Pricing API unreachable: {e}") from e

        if response.is_success:
            return response

        body = response.text
        logger.error(
            "pricing API error",
            extra={"method": method, "url": url, "status_code": response.status_code},
        )
        raise UpstreamError(
            f"Pricing API error: {response.status_code} {response.reason_phrase} - {body}",
            status_code=response.status_code,
            body=body,
        )

    @staticmethod
    def _decode(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                "Pricing API returned invalid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from e
        if not isinstance(data, dict):
            raise UpstreamError(
                "Pricing API returned an unexpected payload",
                status_code=response.status_code,
                body=response.text,
            )
        return data
