# Multi-Source MCP Server
# File: tests/test_plugin_registry.py
# Version: v1

from __future__ import annotations

import sys
import types

import pytest
from pydantic import BaseModel

from multisource_mcp.dispatcher import ToolDescriptor, input_schema_for
from multisource_mcp.plugins import registry
from multisource_mcp.tools import build_registry


class _EchoArgs(BaseModel):
    text: str = ""


async def _echo(services, args):
    return {"echo": args.text}


def _descriptor(name: str) -> ToolDescriptor:
    return ToolDescriptor(
        name=name,
        description="Echo the text back.",
        input_schema=input_schema_for(_EchoArgs),
        args_model=_EchoArgs,
        handler=_echo,
    )


@pytest.fixture
def plugin_module():
    created = []

    def make(name: str, **attrs):
        module = types.ModuleType(name)
        for key, value in attrs.items():
            setattr(module, key, value)
        sys.modules[name] = module
        created.append(name)
        return module

    yield make

    for name in created:
        sys.modules.pop(name, None)


def test_no_plugins_configured(monkeypatch):
    monkeypatch.delenv("MULTISOURCE_PLUGINS", raising=False)
    assert registry.load_plugin_tools() == []
    assert registry.get_plugin_status() == []


def test_plugin_tools_are_collected(monkeypatch, plugin_module):
    plugin_module("tests._echo_plugin", get_tools=lambda: [_descriptor("echo")])
    monkeypatch.setenv("MULTISOURCE_PLUGINS", "tests._echo_plugin")

    tools = registry.load_plugin_tools()

    assert [t.name for t in tools] == ["echo"]
    status = registry.get_plugin_status()
    assert status == [{"name": "tests._echo_plugin", "ok": True, "error": None, "tools": ["echo"]}]


def test_missing_module_is_recorded_not_raised(monkeypatch):
    monkeypatch.setenv("MULTISOURCE_PLUGINS", "this.module.does.not.exist_12345")
    assert registry.load_plugin_tools() == []
    status = registry.get_plugin_status()
    assert status[0]["ok"] is False
    assert status[0]["error"]


def test_module_without_get_tools(monkeypatch, plugin_module):
    plugin_module("tests._empty_plugin")
    monkeypatch.setenv("MULTISOURCE_PLUGINS", "tests._empty_plugin")

    assert registry.load_plugin_tools() == []
    assert registry.get_plugin_status()[0]["ok"] is False


def test_plugin_returning_wrong_type_is_rejected(monkeypatch, plugin_module):
    plugin_module("tests._bad_plugin", get_tools=lambda: [{"name": "dict_tool"}])
    monkeypatch.setenv("MULTISOURCE_PLUGINS", "tests._bad_plugin")

    assert registry.load_plugin_tools() == []
    assert "ToolDescriptor" in registry.get_plugin_status()[0]["error"]


def test_plugin_cannot_replace_core_tool(monkeypatch, plugin_module):
    plugin_module(
        "tests._clash_plugin",
        get_tools=lambda: [_descriptor("query_google_sheets"), _descriptor("echo")],
    )
    monkeypatch.setenv("MULTISOURCE_PLUGINS", "tests._clash_plugin")

    tool_registry = build_registry()

    assert tool_registry["query_google_sheets"].description != "Echo the text back."
    assert tool_registry["echo"].description == "Echo the text back."
    assert registry.get_plugin_status()[0]["tools"] == ["echo"]
