"""JSON-RPC method table routing MCP requests to the orchestration core."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import parse_qs

from fare_check import __version__
from fare_check.domain.ports.trip_parser import TripParserProtocol
from fare_check.domain.services.formatter import ResultFormatter
from fare_check.domain.services.normalizer import TripRequestNormalizer
from fare_check.domain.services.session_poller import SessionPoller
from fare_check.domain.services.trip_checks import find_missing_fields, follow_up_question
from fare_check.errors import (
    FareCheckError,
    InternalError,
    InvalidParamsError,
    InvalidRequestError,
    UnknownMethodError,
    UnknownResourceError,
    UnknownToolError,
    ValidationError,
)
from fare_check.infrastructure.result_store import ResultStore
from fare_check.protocol.tools import (
    FORMAT_REQUEST,
    GET_SESSION_RESULTS,
    SEARCH_FLIGHTS,
    SUBMIT_SESSION,
    WIDGET_MIME_TYPE,
    WIDGET_RESOURCE,
    WIDGET_URI,
    build_tools,
    render_widget,
)

logger = logging.getLogger(__name__)

SERVER_NAME = "fare-check"
SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")

MISSING_LEGS = (
    "Missing flight information. Please ask the user for flight details "
    "(dates, times, flight numbers, airports) before searching."
)
ROUND_TRIP_REQUIRED = (
    "Price checks require round-trip flights. Please ask the user for both outbound "
    "and return flight details including dates, times, flight numbers and airports."
)
MISSING_SEGMENTS = (
    "Missing flight segments. Please ask the user for complete flight details "
    "including airline, flight number, airports, dates and times."
)

Handler = Callable[[dict[str, Any], asyncio.Event], Awaitable[dict[str, Any]]]


def error_response(request_id: Any, error: FareCheckError) -> dict[str, Any]:
    body: dict[str, Any] = {"code": error.code, "message": error.message}
    if error.data is not None:
        body["data"] = error.data
    return {"jsonrpc": "2.0", "id": request_id, "error": body}


class McpDispatcher:
    """
    Route MCP requests to the normalize, poll and format pipeline.

    Exceptions never escape ``handle``: known failures become JSON-RPC error
    objects, validation failures become tool results the host can relay to
    the user, and anything else is reported as an internal error.
    """

    def __init__(
        self,
        poller: SessionPoller,
        result_store: ResultStore,
        normalizer: TripRequestNormalizer | None = None,
        formatter: ResultFormatter | None = None,
        parser: TripParserProtocol | None = None,
        require_round_trip: bool = False,
        public_base_url: str = "",
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            poller: Session submission and polling service
            result_store: Store read by the widget resource
            normalizer: Tool argument normalizer
            formatter: Snapshot to payload formatter
            parser: Natural language parser; the parsing tool is hidden without it
            require_round_trip: Reject searches with fewer than two legs
            public_base_url: Origin serving the widget script
        """
        self._poller = poller
        self._store = result_store
        self._normalizer = normalizer or TripRequestNormalizer()
        self._formatter = formatter or ResultFormatter()
        self._parser = parser
        self._require_round_trip = require_round_trip
        self._public_base_url = public_base_url
        self._in_flight: dict[str | int, asyncio.Event] = {}

        self._tools = {tool.name: tool for tool in build_tools(with_parser=parser is not None)}
        self._methods: dict[str, Handler] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "resources/list": self._list_resources,
            "resources/read": self._read_resource,
        }
        self._tool_handlers: dict[str, Handler] = {
            SEARCH_FLIGHTS: self._search_flights,
            SUBMIT_SESSION: self._submit_session,
            GET_SESSION_RESULTS: self._get_session_results,
            FORMAT_REQUEST: self._format_request,
        }

    async def handle(
        self,
        message: Any,
        cancel: asyncio.Event | None = None,
    ) -> dict[str, Any] | None:
        """
        Handle one JSON-RPC message.

        Args:
            message: Decoded JSON-RPC envelope
            cancel: Event bound to the caller's lifetime; set it to stop polling

        Returns:
            Response envelope, or None for notifications
        """
        if not isinstance(message, dict) or not isinstance(message.get("method"), str):
            request_id = message.get("id") if isinstance(message, dict) else None
            return error_response(request_id, InvalidRequestError("Invalid Request"))

        method = message["method"]
        params = message.get("params")
        if params is None:
            params = {}

        if "id" not in message:
            self._notify(method, params)
            return None

        request_id = message["id"]
        event = cancel or asyncio.Event()
        tracked = isinstance(request_id, str | int)
        if tracked:
            self._in_flight[request_id] = event

        try:
            if not isinstance(params, dict):
                raise InvalidParamsError("params must be an object")
            handler = self._methods.get(method)
            if handler is None:
                raise UnknownMethodError(method)
            result = await handler(params, event)
            return {"jsonrpc": "2.0", "id": request_id, "result": result}
        except FareCheckError as e:
            logger.warning(
                "request failed",
                extra={"method": method, "code": e.code, "error": e.message},
            )
            return error_response(request_id, e)
        except Exception as e:
            logger.exception("unexpected error handling request", extra={"method": method})
            return error_response(
                request_id, InternalError("Internal error", data={"detail": str(e)})
            )
        finally:
            if tracked:
                self._in_flight.pop(request_id, None)

    def server_metadata(self) -> dict[str, Any]:
        return {
            "name": SERVER_NAME,
            "version": __version__,
            "description": (
                "Flight price discovery and comparison service. Users provide the flight "
                "they found conversationally; it is structured and checked across "
                "booking sources."
            ),
            "tools": [tool.descriptor() for tool in self._tools.values()],
        }

    def widget_html(self, request_id: str | None = None) -> str:
        payload = self._store.get(request_id) if request_id else self._store.latest()
        return render_widget(payload, self._public_base_url)

    def _notify(self, method: str, params: Any) -> None:
        if method == "notifications/cancelled" and isinstance(params, dict):
            event = self._in_flight.get(params.get("requestId"))
            if event is not None:
                logger.info("request cancelled", extra={"target": params.get("requestId")})
                event.set()
            return
        logger.debug("notification received", extra={"method": method})

    async def _initialize(self, params: dict[str, Any], cancel: asyncio.Event) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        version = (
            requested if requested in SUPPORTED_PROTOCOL_VERSIONS else SUPPORTED_PROTOCOL_VERSIONS[0]
        )
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {}, "resources": {}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    async def _ping(self, params: dict[str, Any], cancel: asyncio.Event) -> dict[str, Any]:
        return {}

    async def _list_tools(self, params: dict[str, Any], cancel: asyncio.Event) -> dict[str, Any]:
        return {"tools": [tool.descriptor() for tool in self._tools.values()]}

    async def _list_resources(
        self, params: dict[str, Any], cancel: asyncio.Event
    ) -> dict[str, Any]:
        return {"resources": [dict(WIDGET_RESOURCE)]}

    async def _read_resource(
        self, params: dict[str, Any], cancel: asyncio.Event
    ) -> dict[str, Any]:
        uri = params.get("uri")
        if not isinstance(uri, str):
            raise InvalidParamsError("resources/read requires a uri")
        base, _, query = uri.partition("?")
        if base != WIDGET_URI:
            raise UnknownResourceError(uri)
        request_id = parse_qs(query).get("request_id", [None])[0]
        return {
            "contents": [
                {"uri": uri, "mimeType": WIDGET_MIME_TYPE, "text": self.widget_html(request_id)}
            ]
        }

    async def _call_tool(self, params: dict[str, Any], cancel: asyncio.Event) -> dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or name not in self._tools:
            raise UnknownToolError(str(name))
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}

        logger.info("tool call", extra={"tool": name})
        try:
            if not isinstance(arguments, dict):
                raise ValidationError("Tool arguments must be an object.")
            return await self._tool_handlers[name](arguments, cancel)
        except ValidationError as e:
            logger.info("tool arguments rejected", extra={"tool": name, "error": e.message})
            return {"content": [{"type": "text", "text": e.message}], "isError": True}

    async def _search_flights(
        self, arguments: dict[str, Any], cancel: asyncio.Event
    ) -> dict[str, Any]:
        self._require_segments(arguments)
        return await self._run_search(arguments, cancel)

    async def _submit_session(
        self, arguments: dict[str, Any], cancel: asyncio.Event
    ) -> dict[str, Any]:
        self._require_segments(arguments)
        trip_request = self._normalizer.normalize(arguments)
        result = dict(await self._poller.submit(trip_request))
        return {
            "content": [{"type": "text", "text": json.dumps(result)}],
            "structuredContent": result,
        }

    async def _get_session_results(
        self, arguments: dict[str, Any], cancel: asyncio.Event
    ) -> dict[str, Any]:
        request_id = arguments.get("request_id")
        if not isinstance(request_id, str) or not request_id.strip():
            raise ValidationError("A request_id from a previous search is required.")
        request_id = request_id.strip()

        snapshot = await self._poller.fetch(request_id)
        payload = self._formatter.format(snapshot).to_wire()
        previous = self._store.get(request_id)
        if previous and previous.get("tripSummary"):
            payload["tripSummary"] = previous["tripSummary"]
        self._store.put(request_id, payload)
        return self._widget_result(payload)

    async def _format_request(
        self, arguments: dict[str, Any], cancel: asyncio.Event
    ) -> dict[str, Any]:
        text = arguments.get("user_request")
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Please describe the flight you found.")
        context = arguments.get("conversation_context")

        if self._parser is None:
            raise UnknownToolError(FORMAT_REQUEST)
        outcome = await self._parser.parse(text, context if isinstance(context, str) else None)
        if outcome.needs_more_info:
            return self._follow_up(outcome.message, outcome.missing_fields)

        trip_request = outcome.trip_request or {}
        missing = find_missing_fields(trip_request)
        if missing:
            return self._follow_up(follow_up_question(missing), missing)
        self._require_segments(trip_request)
        return await self._run_search(trip_request, cancel)

    async def _run_search(
        self, arguments: dict[str, Any], cancel: asyncio.Event
    ) -> dict[str, Any]:
        trip_request = self._normalizer.normalize(arguments)
        outcome = await self._poller.submit_and_poll(trip_request, cancel=cancel)
        payload = self._formatter.format(outcome.snapshot, trip_request).to_wire()
        self._store.put(payload["request_id"], payload)
        logger.info(
            "search finished",
            extra={
                "request_id": payload["request_id"],
                "resolution": outcome.resolution.value,
                "success": outcome.snapshot.effectively_successful,
                "results": payload["totalResults"],
            },
        )
        return self._widget_result(payload)

    def _require_segments(self, arguments: dict[str, Any]) -> None:
        trip = arguments.get("trip")
        legs = trip.get("legs") if isinstance(trip, dict) else None
        if not isinstance(legs, list) or not legs:
            raise ValidationError(MISSING_LEGS)
        if self._require_round_trip and len(legs) < 2:
            raise ValidationError(ROUND_TRIP_REQUIRED)
        for leg in legs:
            segments = leg.get("segments") if isinstance(leg, dict) else None
            if not isinstance(segments, list) or not segments:
                raise ValidationError(MISSING_SEGMENTS)

    @staticmethod
    def _follow_up(message: str, missing_fields: list[str]) -> dict[str, Any]:
        result = {"needsMoreInfo": True, "message": message, "missingFields": missing_fields}
        return {"content": [{"type": "text", "text": message}], "structuredContent": result}

    @staticmethod
    def _widget_result(payload: dict[str, Any]) -> dict[str, Any]:
        count = payload["totalResults"]
        text = f"Found {count} price{'s' if count != 1 else ''} (status: {payload['status']})."
        if payload["results"]:
            best = payload["results"][0]
            text += f" Top offer: {best['price']} on {best.get('website') or 'unknown site'}."
        text += f" Session: {payload['request_id']}."
        return {
            "content": [{"type": "text", "text": text}],
            "structuredContent": payload,
            "_meta": {"openai/outputTemplate": WIDGET_URI},
        }
