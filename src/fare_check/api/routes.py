"""API routes for the Fare Check MCP server."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response

from fare_check.api.dependencies import get_dispatcher
from fare_check.errors import ParseError
from fare_check.protocol.dispatcher import McpDispatcher, error_response
from fare_check.protocol.tools import WIDGET_MIME_TYPE

logger = logging.getLogger(__name__)

router = APIRouter()

WIDGET_RESOURCE_ID = "flight-results.html"
DISCONNECT_CHECK_INTERVAL = 1.0


async def _cancel_on_disconnect(request: Request, cancel: asyncio.Event) -> None:
    """Set ``cancel`` once the client goes away."""
    while not cancel.is_set():
        if await request.is_disconnected():
            logger.info("client disconnected", extra={"event": "disconnect"})
            cancel.set()
            return
        await asyncio.sleep(DISCONNECT_CHECK_INTERVAL)


@router.get("/mcp", tags=["mcp"])
async def mcp_metadata(
    dispatcher: McpDispatcher = Depends(get_dispatcher),
) -> dict[str, Any]:
    """Describe the server and the tools it exposes."""
    return dispatcher.server_metadata()


@router.post("/mcp", tags=["mcp"])
async def mcp_endpoint(
    request: Request,
    dispatcher: McpDispatcher = Depends(get_dispatcher),
) -> Response:
    """
    Handle one JSON-RPC message.

    Notifications are acknowledged with 202 and an empty body. Long running
    tool calls stop polling when the client disconnects.
    """
    try:
        message = await request.json()
    except ValueError:
        logger.warning("invalid JSON body", extra={"event": "parse_error"})
        return JSONResponse(error_response(None, ParseError("Parse error")), status_code=400)

    cancel = asyncio.Event()
    watcher = asyncio.create_task(_cancel_on_disconnect(request, cancel))
    try:
        response = await dispatcher.handle(message, cancel=cancel)
    finally:
        watcher.cancel()

    if response is None:
        return Response(status_code=202)
    return JSONResponse(response)


@router.get("/resources/{resource_id}", tags=["resources"])
async def read_resource(
    resource_id: str,
    request_id: str | None = Query(
        default=None,
        description="Session whose results should be embedded; latest if omitted",
    ),
    dispatcher: McpDispatcher = Depends(get_dispatcher),
) -> HTMLResponse:
    """Serve the results widget over plain HTTP."""
    if resource_id != WIDGET_RESOURCE_ID:
        raise HTTPException(status_code=404, detail=f"Resource not found: {resource_id}")
    return HTMLResponse(dispatcher.widget_html(request_id), media_type=WIDGET_MIME_TYPE)
