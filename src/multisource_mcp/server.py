# Multi-Source MCP Server
# File: server.py
# Version: v1

"""Assembly of the dispatcher from configuration."""

from __future__ import annotations

from typing import Optional

from .config import MultiSourceConfig
from .dispatcher import Dispatcher, build_services
from .tools import build_registry


def build_dispatcher(
    config: Optional[MultiSourceConfig] = None,
    include_plugins: bool = True,
) -> Dispatcher:
    """Create a dispatcher with core tools, plugins and configured services."""
    config = config or MultiSourceConfig.from_env()
    return Dispatcher(build_registry(include_plugins), build_services(config))
