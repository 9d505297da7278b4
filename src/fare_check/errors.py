"""Error taxonomy shared by the orchestration core and the protocol layer."""

from __future__ import annotations

from typing import Any


class FareCheckError(Exception):
    """Base error carrying the JSON-RPC code it maps to."""

    code: int = -32603

    def __init__(self, message: str, data: dict[str, Any] | None = None) -> None:
        self.message = message
        self.data = data
        super().__init__(message)


class ValidationError(FareCheckError):
    """Tool arguments are missing or malformed.

    The message is written for the end user: the host relays it back
    conversationally instead of treating it as a protocol fault.
    """

    code = -32602


class UpstreamError(FareCheckError):
    """Pricing provider answered with a non-success status or was unreachable."""

    code = -32000

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ) -> None:
        """
        Initialize upstream error.

        Args:
            message: Human readable description
            status_code: HTTP status returned upstream, None for transport failures
            body: Response body text, verbatim
        """
        self.status_code = status_code
        self.body = body
        super().__init__(
            message,
            data={"status_code": status_code, "body": body, "retryable": True},
        )


class UnknownMethodError(FareCheckError):
    """Raised for JSON-RPC methods outside the method table."""

    code = -32601

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method not found: {method}")


class UnknownToolError(FareCheckError):
    """Raised when tools/call names a tool that is not registered."""

    code = -32602

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class UnknownResourceError(FareCheckError):
    code = -32602

    def __init__(self, uri: str) -> None:
        self.uri = uri
        super().__init__(f"Resource not found: {uri}")


class InvalidRequestError(FareCheckError):
    """Envelope is not a JSON-RPC 2.0 request."""

    code = -32600


class ParseError(FareCheckError):
    """Transport received bytes that are not JSON."""

    code = -32700


class InternalError(FareCheckError):
    """Unexpected failure caught at the dispatcher boundary."""

    code = -32603


class InvalidParamsError(FareCheckError):
    """Request params do not have the shape the method expects."""

    code = -32602
