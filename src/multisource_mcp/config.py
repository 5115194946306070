# Multi-Source MCP Server
# File: config.py
# Version: v1

"""Configuration loading for the Multi-Source MCP Server."""

from __future__ import annotations

from dataclasses import dataclass
import os

SHEETS_BASE_URL = "https://sheets.googleapis.com/v4"
QUICKBOOKS_BASE_URLS = {
    "sandbox": "https://sandbox-quickbooks.api.intuit.com",
    "production": "https://quickbooks.api.intuit.com",
}


def _parse_bool_env(name: str, default: bool = False) -> bool:
    """Parse a boolean-like environment variable.

    Accepts 1/0, true/false, yes/no, on/off (case-insensitive).
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "on"}


def _parse_int_env(
    name: str,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Parse an int environment variable with clamping and safe fallback."""
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        value = int(default)
    else:
        try:
            value = int(str(raw).strip())
        except ValueError:
            value = int(default)

    if min_value is not None and value < min_value:
        value = min_value
    if max_value is not None and value > max_value:
        value = max_value

    return value


def _env_str(name: str) -> str | None:
    val = os.getenv(name)
    if val is None or not val.strip():
        return None
    return val.strip()


@dataclass
class MultiSourceConfig:
    """Configuration for the spreadsheet and invoice-ledger sources.

    Credentials are plain bearer tokens: acquiring and refreshing them is
    handled outside this server.
    """

    default_spreadsheet_id: str | None = None
    google_access_token: str | None = None
    sheets_base_url: str = SHEETS_BASE_URL

    quickbooks_access_token: str | None = None
    quickbooks_realm_id: str | None = None
    quickbooks_environment: str = "sandbox"

    mock_mode: bool = False

    # Network guardrails
    http_timeout_seconds: int = 30

    # Hard cap for the number of records a single query may request
    max_limit: int = 500

    # Caching for idempotent reads
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 128
    cache_redis_url: str | None = None

    log_level: str = "INFO"

    @property
    def quickbooks_base_url(self) -> str:
        return QUICKBOOKS_BASE_URLS.get(
            self.quickbooks_environment, QUICKBOOKS_BASE_URLS["sandbox"]
        )

    @property
    def default_ledger_id(self) -> str:
        """Source identifier used for invoice queries without an explicit id."""
        if self.quickbooks_realm_id:
            return self.quickbooks_realm_id
        return "mock-company" if self.mock_mode else "quickbooks"

    @classmethod
    def from_env(cls) -> "MultiSourceConfig":
        """Create configuration from environment variables."""
        environment = (_env_str("QUICKBOOKS_ENVIRONMENT") or "sandbox").lower()
        if environment not in QUICKBOOKS_BASE_URLS:
            environment = "sandbox"

        http_timeout_seconds = _parse_int_env(
            "MULTISOURCE_HTTP_TIMEOUT_SECONDS", default=30, min_value=1, max_value=300
        )
        max_limit = _parse_int_env(
            "MULTISOURCE_MAX_LIMIT", default=500, min_value=1, max_value=10000
        )

        # Cache settings
        cache_ttl_seconds = _parse_int_env(
            "MULTISOURCE_CACHE_TTL_SECONDS", default=300, min_value=0, max_value=86400
        )
        cache_max_entries = _parse_int_env(
            "MULTISOURCE_CACHE_MAX_ENTRIES", default=128, min_value=0, max_value=10000
        )

        return cls(
            default_spreadsheet_id=_env_str("DEFAULT_SPREADSHEET_ID"),
            google_access_token=_env_str("GOOGLE_ACCESS_TOKEN"),
            sheets_base_url=_env_str("GOOGLE_SHEETS_BASE_URL") or SHEETS_BASE_URL,
            quickbooks_access_token=_env_str("QUICKBOOKS_ACCESS_TOKEN"),
            quickbooks_realm_id=_env_str("QUICKBOOKS_REALM_ID"),
            quickbooks_environment=environment,
            mock_mode=_parse_bool_env("MULTISOURCE_MOCK_MODE", default=False),
            http_timeout_seconds=http_timeout_seconds,
            max_limit=max_limit,
            cache_ttl_seconds=cache_ttl_seconds,
            cache_max_entries=cache_max_entries,
            cache_redis_url=_env_str("MULTISOURCE_CACHE_REDIS_URL"),
            log_level=(_env_str("MULTISOURCE_LOG_LEVEL") or "INFO").upper(),
        )
