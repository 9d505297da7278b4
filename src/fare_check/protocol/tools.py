"""Static tool descriptors and the widget resource template."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from fare_check.domain.models import TripRequest

SEARCH_FLIGHTS = "search_flights"
SUBMIT_SESSION = "submit_session"
GET_SESSION_RESULTS = "get_session_results"
FORMAT_REQUEST = "format_flight_pricecheck_request"

WIDGET_URI = "ui://widget/flight-results.html"
WIDGET_MIME_TYPE = "text/html+skybridge"
WIDGET_RESOURCE: dict[str, str] = {
    "uri": WIDGET_URI,
    "name": "Flight Results Widget",
    "description": "Interactive UI for displaying flight price comparison results",
    "mimeType": WIDGET_MIME_TYPE,
}


@dataclass(frozen=True, slots=True)
class ToolSpec:
    name: str
    description: str
    input_schema: dict[str, Any]
    meta: dict[str, Any] = field(default_factory=dict)

    def descriptor(self) -> dict[str, Any]:
        descriptor: dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }
        if self.meta:
            descriptor["_meta"] = self.meta
        return descriptor


def _request_id_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "request_id": {
                "type": "string",
                "description": "The session request ID returned by a previous search",
            },
        },
        "required": ["request_id"],
    }


def build_tools(with_parser: bool) -> list[ToolSpec]:
    """
    Build the tool table exposed through tools/list.

    Args:
        with_parser: Include the natural language tool (needs a configured parser)

    Returns:
        Tool specs in listing order
    """
    trip_schema = TripRequest.model_json_schema()
    tools = [
        ToolSpec(
            name=SEARCH_FLIGHTS,
            description=(
                "Find a better price for a specific flight the user has already found. "
                "Searches multiple booking sources for the exact same itinerary. "
                "You MUST collect airline code, flight number, airports (3-letter codes), "
                "dates (YYYY-MM-DD), departure/arrival times, cabin class, passengers and "
                "the reference price before calling. DO NOT call with empty segments."
            ),
            input_schema=trip_schema,
            meta={
                "openai/outputTemplate": WIDGET_URI,
                "openai/toolInvocation/invoking": "Searching across booking sites...",
                "openai/toolInvocation/invoked": "Found flight prices!",
                "openai/widgetAccessible": True,
            },
        ),
        ToolSpec(
            name=SUBMIT_SESSION,
            description="Create a price discovery session without waiting for results",
            input_schema=trip_schema,
        ),
        ToolSpec(
            name=GET_SESSION_RESULTS,
            description="Get the current results of a price discovery session",
            input_schema=_request_id_schema(),
            meta={
                "openai/outputTemplate": WIDGET_URI,
                "openai/toolInvocation/invoking": "Refreshing flight results...",
                "openai/toolInvocation/invoked": "Updated flight results!",
                "openai/widgetAccessible": True,
            },
        ),
    ]
    if with_parser:
        tools.append(
            ToolSpec(
                name=FORMAT_REQUEST,
                description=(
                    "Parse flight details from natural language to prepare a price check. "
                    "Returns follow-up questions until every required detail is known, "
                    "then runs the search."
                ),
                input_schema={
                    "type": "object",
                    "properties": {
                        "user_request": {
                            "type": "string",
                            "description": (
                                "The flight the user found, e.g. 'I found LX 1612 from MXP "
                                "to FCO on Nov 4th at 6:40 PM for 150 EUR'"
                            ),
                        },
                        "conversation_context": {
                            "type": "string",
                            "description": "Previous conversation context for follow-ups",
                        },
                    },
                    "required": ["user_request"],
                },
                meta={
                    "openai/outputTemplate": WIDGET_URI,
                    "openai/toolInvocation/invoking": "Reading your flight details...",
                    "openai/toolInvocation/invoked": "Flight details processed",
                },
            )
        )
    return tools


def render_widget(payload: dict[str, Any] | None, base_url: str) -> str:
    """Widget HTML with ``payload`` injected as the tool output (``null`` if absent)."""
    # "</" inside a script block would end it early.
    state = json.dumps(payload, ensure_ascii=False).replace("</", "<\\/")
    return "\n".join(
        [
            '<div id="flight-results-root"></div>',
            "<script>",
            "  window.openai = window.openai || {};",
            f"  window.openai.toolOutput = {state};",
            "</script>",
            f'<script type="module" src="{base_url.rstrip("/")}/widget/component.js"></script>',
        ]
    )
