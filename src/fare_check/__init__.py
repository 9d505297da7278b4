"""MCP server exposing flight price discovery to conversational hosts."""

__version__ = "0.1.0"
