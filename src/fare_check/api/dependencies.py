"""Dependency wiring for FastAPI endpoints and the stdio transport."""

from __future__ import annotations

from functools import lru_cache

from fare_check.config import get_settings
from fare_check.domain.ports.trip_parser import TripParserProtocol
from fare_check.domain.services.session_poller import SessionPoller
from fare_check.infrastructure.anthropic_trip_parser import AnthropicTripParser
from fare_check.infrastructure.pricing_api_client import PricingApiClient
from fare_check.infrastructure.result_store import ResultStore
from fare_check.protocol.dispatcher import McpDispatcher


@lru_cache(maxsize=1)
def get_pricing_client() -> PricingApiClient:
    """Return pricing API client (singleton, owns the HTTP connection pool)."""
    return PricingApiClient()


@lru_cache(maxsize=1)
def get_result_store() -> ResultStore:
    """Return result store instance (singleton)."""
    return ResultStore()


@lru_cache(maxsize=1)
def get_trip_parser() -> TripParserProtocol | None:
    """Return natural language parser, or None when no API key is configured."""
    settings = get_settings()
    if not settings.anthropic_api_key:
        return None
    return AnthropicTripParser(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        timeout=settings.parser_timeout,
    )


@lru_cache(maxsize=1)
def get_dispatcher() -> McpDispatcher:
    """Assemble the MCP dispatcher shared by every request."""
    settings = get_settings()
    return McpDispatcher(
        poller=SessionPoller(pricing_api=get_pricing_client()),
        result_store=get_result_store(),
        parser=get_trip_parser(),
        require_round_trip=settings.require_round_trip,
        public_base_url=settings.public_base_url,
    )


def reset_dependencies() -> None:
    """Drop cached singletons so the next call rebuilds them from settings."""
    get_dispatcher.cache_clear()
    get_trip_parser.cache_clear()
    get_result_store.cache_clear()
    get_pricing_client.cache_clear()
