# Multi-Source MCP Server
# File: tests/test_sanity.py
# Version: v1

"""Basic sanity tests for configuration and wiring."""

import multisource_mcp
from multisource_mcp.config import MultiSourceConfig
from multisource_mcp.server import build_dispatcher


def test_package_exposes_version() -> None:
    assert isinstance(multisource_mcp.__version__, str)
    assert multisource_mcp.__version__


def test_config_from_env_minimal(monkeypatch) -> None:
    for name in (
        "DEFAULT_SPREADSHEET_ID",
        "QUICKBOOKS_REALM_ID",
        "MULTISOURCE_MOCK_MODE",
        "MULTISOURCE_MAX_LIMIT",
    ):
        monkeypatch.delenv(name, raising=False)

    config = MultiSourceConfig.from_env()
    assert config.default_spreadsheet_id is None
    assert config.mock_mode is False
    assert config.max_limit == 500
    assert config.default_ledger_id == "quickbooks"


def test_config_clamps_and_parses(monkeypatch) -> None:
    monkeypatch.setenv("MULTISOURCE_MOCK_MODE", "yes")
    monkeypatch.setenv("MULTISOURCE_MAX_LIMIT", "999999")
    monkeypatch.setenv("MULTISOURCE_HTTP_TIMEOUT_SECONDS", "not-a-number")
    monkeypatch.setenv("QUICKBOOKS_ENVIRONMENT", "Production")
    monkeypatch.setenv("MULTISOURCE_LOG_LEVEL", "debug")

    config = MultiSourceConfig.from_env()
    assert config.mock_mode is True
    assert config.max_limit == 10000
    assert config.http_timeout_seconds == 30
    assert config.quickbooks_base_url == "https://quickbooks.api.intuit.com"
    assert config.log_level == "DEBUG"
    assert config.default_ledger_id == "mock-company"


def test_build_dispatcher_registers_core_tools(monkeypatch) -> None:
    monkeypatch.delenv("MULTISOURCE_PLUGINS", raising=False)
    dispatcher = build_dispatcher(MultiSourceConfig(mock_mode=True))
    assert set(dispatcher.registry) == {
        "query_google_sheets",
        "get_sheet_info",
        "search_quickbooks_invoices",
    }
