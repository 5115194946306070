# Multi-Source MCP Server
# File: errors.py
# Version: v1

"""Typed errors raised by the interpreter, adapters and dispatcher.

Each error knows the JSON-RPC code it maps to so the dispatcher can build
the response envelope without inspecting messages.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

# JSON-RPC 2.0 error codes
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class MultiSourceError(RuntimeError):
    """Base class for all errors surfaced to tool callers."""

    jsonrpc_code: int = INTERNAL_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_error(self) -> Dict[str, Any]:
        """Return the ``error`` member of a JSON-RPC response."""
        data: Dict[str, Any] = {"type": type(self).__name__}
        if self.details:
            data["details"] = self.details
        return {"code": self.jsonrpc_code, "message": self.message, "data": data}


class ParseError(MultiSourceError):
    """The free-text query could not be turned into an intent."""

    jsonrpc_code = INVALID_PARAMS


class ValidationError(MultiSourceError):
    """Tool arguments do not satisfy the tool's input schema."""

    jsonrpc_code = INVALID_PARAMS


class AuthError(MultiSourceError):
    """Missing, invalid or expired upstream credential."""


class NotFoundError(MultiSourceError):
    """The requested source, scope or record does not exist."""


class RateLimitError(MultiSourceError):
    """The upstream quota was exhausted."""


class UpstreamError(MultiSourceError):
    """Network failure, timeout or unexpected upstream response."""


class UnknownToolError(MultiSourceError):
    """No tool with the requested name is registered."""

    jsonrpc_code = METHOD_NOT_FOUND
