# Multi-Source MCP Server
# File: transports/stdio_server.py
# Version: v1

"""STDIO entrypoint for the Multi-Source MCP server.

This is the script behind the ``multisource-mcp`` console command.

It configures logging on stderr (stdout carries the protocol stream),
builds the dispatcher, exposes every registered tool through FastMCP and
runs the built-in stdio transport.
"""

from __future__ import annotations

import inspect
import logging
import sys
from typing import Any, Callable, Dict

from mcp.server.fastmcp import FastMCP

from ..config import MultiSourceConfig
from ..dispatcher import SERVER_NAME, Dispatcher, ToolDescriptor
from ..server import build_dispatcher

logger = logging.getLogger(__name__)


def _tool_function(dispatcher: Dispatcher, descriptor: ToolDescriptor) -> Callable[..., Any]:
    """Build a FastMCP-compatible coroutine whose signature mirrors the args model."""

    async def call_tool(**arguments: Any) -> Dict[str, Any]:
        present = {k: v for k, v in arguments.items() if v is not None}
        return await dispatcher.call_tool(descriptor.name, present)

    parameters = []
    for field_name, field in descriptor.args_model.model_fields.items():
        default = inspect.Parameter.empty if field.is_required() else field.default
        parameters.append(
            inspect.Parameter(
                field_name,
                inspect.Parameter.KEYWORD_ONLY,
                default=default,
                annotation=field.annotation,
            )
        )

    call_tool.__signature__ = inspect.Signature(parameters)  # type: ignore[attr-defined]
    call_tool.__name__ = descriptor.name
    call_tool.__doc__ = descriptor.description
    return call_tool


def register_tools(server: Any, dispatcher: Dispatcher) -> None:
    for name, descriptor in dispatcher.registry.items():
        server.add_tool(
            _tool_function(dispatcher, descriptor),
            name=name,
            description=descriptor.description,
        )
        logger.debug("Registered tool %s", name)


def main() -> None:
    """Synchronous entrypoint for console_scripts."""
    config = MultiSourceConfig.from_env()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    dispatcher = build_dispatcher(config)
    mcp = FastMCP(SERVER_NAME)
    register_tools(mcp, dispatcher)
    logger.info(
        "Starting %s with %d tools (mock mode: %s)",
        SERVER_NAME,
        len(dispatcher.registry),
        config.mock_mode,
    )

    # Let FastMCP handle stdio + event loop setup.
    mcp.run()


if __name__ == "__main__":
    main()
