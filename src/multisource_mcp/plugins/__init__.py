# Multi-Source MCP Server
# File: plugins/__init__.py
# Version: v1

"""Plugin package for the Multi-Source MCP Server.

Plugins are optional modules that contribute extra tools. They are loaded
once, when the tool registry is built, from MULTISOURCE_PLUGINS.
"""

__all__ = ["registry"]
