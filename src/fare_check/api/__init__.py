"""HTTP transport for the MCP dispatcher."""

from fare_check.api.routes import router

__all__ = ["router"]
