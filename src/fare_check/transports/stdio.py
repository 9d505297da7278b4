"""Newline-delimited JSON-RPC over stdin/stdout.

Each request runs in its own task so that a ``notifications/cancelled``
line can reach a search that is still polling. Logs go to stderr; stdout
carries protocol messages only.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator
from typing import Any, TextIO

from fare_check.api.dependencies import get_dispatcher, get_pricing_client
from fare_check.errors import ParseError
from fare_check.logging_config import configure_logging, get_logging_config
from fare_check.protocol.dispatcher import McpDispatcher, error_response

logger = logging.getLogger(__name__)

STDIN_LINE_LIMIT = 16 * 1024 * 1024


class StdioTransport:
    def __init__(self, dispatcher: McpDispatcher, output: TextIO | None = None) -> None:
        self._dispatcher = dispatcher
        self._output = output or sys.stdout
        self._tasks: set[asyncio.Task[None]] = set()

    async def serve(self, lines: AsyncIterator[bytes | str]) -> None:
        """
        Dispatch every line until input ends, then wait for pending requests.

        Args:
            lines: Raw input lines, one JSON-RPC message each; bytes are
                decoded as UTF-8 per line
        """
        async for line in lines:
            if not line.strip():
                continue
            task = asyncio.create_task(self._handle_line(line))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        if self._tasks:
            await asyncio.gather(*self._tasks)

    async def _handle_line(self, line: bytes | str) -> None:
        try:
            if isinstance(line, bytes):
                line = line.decode("utf-8")
            message = json.loads(line)
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("invalid JSON line", extra={"event": "parse_error"})
            self._emit(error_response(None, ParseError("Parse error")))
            return
        response = await self._dispatcher.handle(message)
        if response is not None:
            self._emit(response)

    def _emit(self, message: dict[str, Any]) -> None:
        self._output.write(json.dumps(message, ensure_ascii=False) + "\n")
        self._output.flush()


async def read_stdin_lines() -> AsyncIterator[bytes]:
    """Yield raw lines from the process stdin without blocking the loop."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=STDIN_LINE_LIMIT)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    while line := await reader.readline():
        yield line


async def _run() -> None:
    transport = StdioTransport(get_dispatcher())
    try:
        await transport.serve(read_stdin_lines())
    finally:
        await get_pricing_client().aclose()


def main() -> None:
    """Run the server over stdio."""
    configure_logging(get_logging_config(stream="ext://sys.stderr"))
    logger.info("stdio transport started")
    asyncio.run(_run())


if __name__ == "__main__":
    main()
