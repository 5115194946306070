# Multi-Source MCP Server
# File: plugins/registry.py
# Version: v1

"""Plugin loader for the Multi-Source MCP Server.

Configured via:
  MULTISOURCE_PLUGINS="module.one,module.two"

Each plugin module must expose:
  get_tools() -> Iterable[ToolDescriptor]

Plugin failures never crash the core server, and a plugin tool never
replaces a core tool of the same name. The outcome of the last load is
available from :func:`get_plugin_status`.
"""

from __future__ import annotations

import importlib
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Collection, Dict, List, Optional

from ..dispatcher import ToolDescriptor

logger = logging.getLogger(__name__)


@dataclass
class PluginStatus:
    name: str
    ok: bool
    error: Optional[str] = None
    tools: List[str] = field(default_factory=list)


_PLUGIN_STATUS: List[PluginStatus] = []


def get_configured_plugins() -> List[str]:
    """Return a cleaned list of plugin module names from MULTISOURCE_PLUGINS."""
    raw = os.getenv("MULTISOURCE_PLUGINS", "") or ""
    if not raw.strip():
        return []

    items = [p.strip() for p in raw.split(",")]
    return [p for p in items if p]


def get_plugin_status() -> List[Dict[str, Any]]:
    """Return the last plugin load attempt as JSON-serialisable dicts."""
    return [
        {"name": s.name, "ok": s.ok, "error": s.error, "tools": list(s.tools)}
        for s in list(_PLUGIN_STATUS)
    ]


def load_plugin_tools(reserved_names: Collection[str] = ()) -> List[ToolDescriptor]:
    """Import configured plugins and collect their tool descriptors.

    Tools whose name is in ``reserved_names`` (or was already taken by an
    earlier plugin) are skipped with a warning.
    """
    global _PLUGIN_STATUS
    _PLUGIN_STATUS = []

    plugins = get_configured_plugins()
    if not plugins:
        logger.info("No plugins configured (MULTISOURCE_PLUGINS is empty).")
        return []

    taken = set(reserved_names)
    collected: List[ToolDescriptor] = []

    for module_name in plugins:
        try:
            module = importlib.import_module(module_name)
            get_tools = getattr(module, "get_tools", None)

            if not callable(get_tools):
                msg = "Module does not export callable get_tools()."
                _PLUGIN_STATUS.append(PluginStatus(name=module_name, ok=False, error=msg))
                logger.warning("Plugin '%s' missing get_tools(); skipping.", module_name)
                continue

            tools = list(get_tools())
            for tool in tools:
                if not isinstance(tool, ToolDescriptor):
                    raise TypeError(
                        f"get_tools() returned {type(tool).__name__}, expected ToolDescriptor"
                    )

        except Exception as exc:  # plugins must not crash core
            _PLUGIN_STATUS.append(PluginStatus(name=module_name, ok=False, error=str(exc)))
            logger.warning(
                "Failed to load plugin '%s': %s",
                module_name,
                exc,
                exc_info=True,
            )
            continue

        status = PluginStatus(name=module_name, ok=True)
        for tool in tools:
            if tool.name in taken:
                logger.warning(
                    "Plugin '%s' tool '%s' clashes with an existing tool; skipping.",
                    module_name,
                    tool.name,
                )
                continue
            taken.add(tool.name)
            collected.append(tool)
            status.tools.append(tool.name)

        _PLUGIN_STATUS.append(status)
        logger.info("Loaded plugin: %s (%d tools)", module_name, len(status.tools))

    return collected
