# Multi-Source MCP Server
# File: tools/__init__.py
# Version: v1

"""Core tools plus the registry builder."""

from __future__ import annotations

from typing import List

from ..dispatcher import ToolDescriptor, ToolRegistry
from ..plugins import registry as plugin_registry
from . import invoices, sheets


def core_tools() -> List[ToolDescriptor]:
    return [*sheets.get_tools(), *invoices.get_tools()]


def build_registry(include_plugins: bool = True) -> ToolRegistry:
    """Build the immutable tool registry (core tools first, then plugins)."""
    descriptors = core_tools()
    if include_plugins:
        descriptors += plugin_registry.load_plugin_tools(
            reserved_names={d.name for d in descriptors}
        )
    return ToolRegistry(descriptors)


__all__ = ["build_registry", "core_tools", "invoices", "sheets"]
