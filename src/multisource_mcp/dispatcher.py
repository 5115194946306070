# Multi-Source MCP Server
# File: dispatcher.py
# Version: v1

"""Tool registry and JSON-RPC style dispatcher.

``Dispatcher.dispatch`` takes a request envelope::

    {"method": "tools/call", "params": {"name": ..., "arguments": {...}}, "id": 7}

and always returns ``{"result": ...}`` or ``{"error": {...}}`` with the same
``id``. Typed errors carry their own JSON-RPC code; anything else is logged
with its traceback and reported as a generic ``-32603``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, Mapping, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from . import __version__
from .adapters import ACTION_ROUTES, InvoiceAdapter, TabularAdapter
from .auth import BearerTokenAuth
from .cache import CacheBackend, MemoryCacheBackend, RedisCacheBackend, memoize
from .client import QuickBooksClient, SheetsClient
from .config import MultiSourceConfig
from .errors import INTERNAL_ERROR, METHOD_NOT_FOUND, MultiSourceError, UnknownToolError, ValidationError
from .interpreter import QueryInterpreter
from .mock import MockQuickBooksClient, MockSheetsClient
from .models import NormalizedDataset, QueryIntent, SheetProperties, SpreadsheetMetadata

logger = logging.getLogger(__name__)

SERVER_NAME = "multi-source-mcp-server"
PROTOCOL_VERSION = "2024-11-05"

ToolHandler = Callable[["Services", BaseModel], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    input_schema: Dict[str, Any]
    args_model: Type[BaseModel]
    handler: ToolHandler

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


def input_schema_for(model: Type[BaseModel]) -> Dict[str, Any]:
    """JSON schema of ``model`` without pydantic's cosmetic title."""
    schema = model.model_json_schema()
    schema.pop("title", None)
    return schema


class ToolRegistry(MappingABC):
    """Read-only name -> descriptor mapping, fixed at construction."""

    def __init__(self, descriptors: Iterable[ToolDescriptor]) -> None:
        tools: Dict[str, ToolDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.name in tools:
                raise ValueError(f"Duplicate tool name: {descriptor.name}")
            tools[descriptor.name] = descriptor
        self._tools = MappingProxyType(tools)

    def __getitem__(self, name: str) -> ToolDescriptor:
        return self._tools[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tools)

    def __len__(self) -> int:
        return len(self._tools)

    def describe(self) -> list:
        return [descriptor.to_dict() for descriptor in self._tools.values()]


@dataclass
class Services:
    """Everything a tool handler needs for one request."""

    config: MultiSourceConfig
    interpreter: QueryInterpreter
    tabular: TabularAdapter
    invoice: InvoiceAdapter
    cache: Optional[CacheBackend] = None

    async def execute(self, intent: QueryIntent) -> NormalizedDataset:
        adapter_name, operation = ACTION_ROUTES[intent.action]
        adapter = getattr(self, adapter_name)
        logger.debug("Routing %s to %s.%s", intent.action.value, adapter_name, operation)
        return await getattr(adapter, operation)(intent)


def _metadata_to_dict(metadata: SpreadsheetMetadata) -> Dict[str, Any]:
    return {
        "spreadsheet_id": metadata.spreadsheet_id,
        "title": metadata.title,
        "sheets": [vars(sheet).copy() for sheet in metadata.sheets],
    }


def _metadata_from_dict(payload: Dict[str, Any]) -> SpreadsheetMetadata:
    return SpreadsheetMetadata(
        spreadsheet_id=payload["spreadsheet_id"],
        title=payload.get("title"),
        sheets=[SheetProperties(**sheet) for sheet in payload.get("sheets") or []],
    )


class CachedSheetsClient:
    """Spreadsheet client whose reads go through :func:`memoize`."""

    def __init__(self, client: Any, ttl_seconds: int, backend: Optional[CacheBackend]) -> None:
        self.client = client
        self.get_metadata = memoize(
            client.get_metadata,
            ttl_seconds,
            backend,
            name="sheets.get_metadata",
            encode=_metadata_to_dict,
            decode=_metadata_from_dict,
        )
        self.get_values = memoize(client.get_values, ttl_seconds, backend, name="sheets.get_values")


class CachedInvoiceStore:
    """Invoice store whose queries go through :func:`memoize`."""

    def __init__(self, store: Any, ttl_seconds: int, backend: Optional[CacheBackend]) -> None:
        self.store = store
        self.query_invoices = memoize(
            store.query_invoices, ttl_seconds, backend, name="quickbooks.query_invoices"
        )

    @property
    def authenticated(self) -> bool:
        return getattr(self.store, "authenticated", True)


def build_cache_backend(config: MultiSourceConfig) -> Optional[CacheBackend]:
    if config.cache_ttl_seconds <= 0:
        return None
    if config.cache_redis_url:
        logger.info("Using Redis cache backend")
        return RedisCacheBackend.from_url(config.cache_redis_url)
    return MemoryCacheBackend(max_entries=config.cache_max_entries)


def build_services(
    config: Optional[MultiSourceConfig] = None,
    sheets_client: Any = None,
    invoice_store: Any = None,
    cache_backend: Optional[CacheBackend] = None,
) -> Services:
    """Wire clients, cache, adapters and the interpreter from ``config``.

    Explicit ``sheets_client`` / ``invoice_store`` replace the ones that
    would be built from configuration (tests, demos).
    """
    config = config or MultiSourceConfig.from_env()

    if sheets_client is None:
        if config.mock_mode:
            sheets_client = MockSheetsClient()
        else:
            sheets_client = SheetsClient(
                auth=BearerTokenAuth("Google Sheets", config.google_access_token, "GOOGLE_ACCESS_TOKEN"),
                base_url=config.sheets_base_url,
                timeout=config.http_timeout_seconds,
            )

    if invoice_store is None:
        if config.mock_mode:
            invoice_store = MockQuickBooksClient()
        else:
            invoice_store = QuickBooksClient(
                auth=BearerTokenAuth("QuickBooks", config.quickbooks_access_token, "QUICKBOOKS_ACCESS_TOKEN"),
                realm_id=config.quickbooks_realm_id,
                base_url=config.quickbooks_base_url,
                timeout=config.http_timeout_seconds,
            )

    backend = cache_backend if cache_backend is not None else build_cache_backend(config)
    ttl = config.cache_ttl_seconds if backend is not None else 0

    interpreter = QueryInterpreter(
        default_source_id=config.default_spreadsheet_id or ("mock-spreadsheet" if config.mock_mode else None),
        default_ledger_id=config.default_ledger_id,
        max_limit=config.max_limit,
    )

    return Services(
        config=config,
        interpreter=interpreter,
        tabular=TabularAdapter(CachedSheetsClient(sheets_client, ttl, backend)),
        invoice=InvoiceAdapter(
            CachedInvoiceStore(invoice_store, ttl, backend), fetch_cap=config.max_limit
        ),
        cache=backend,
    )


def _validation_details(exc: PydanticValidationError) -> list:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


class Dispatcher:
    """Routes request envelopes to registered tools."""

    def __init__(self, registry: ToolRegistry, services: Services) -> None:
        self.registry = registry
        self.services = services

    def initialize(self) -> Dict[str, Any]:
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    async def call_tool(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Validate ``arguments`` and run tool ``name``; raises typed errors."""
        descriptor = self.registry.get(name)
        if descriptor is None:
            raise UnknownToolError(f"Unknown tool: {name}", {"name": name})

        try:
            args = descriptor.args_model.model_validate(dict(arguments or {}))
        except PydanticValidationError as exc:
            details = _validation_details(exc)
            first = details[0] if details else {}
            where = ".".join(first.get("loc") or []) or "arguments"
            raise ValidationError(
                f"Invalid arguments for tool '{name}': {where}: {first.get('msg', 'invalid value')}",
                {"errors": details},
            ) from exc

        logger.debug("Calling tool %s", name)
        return await descriptor.handler(self.services, args)

    async def dispatch(self, envelope: Mapping[str, Any]) -> Dict[str, Any]:
        request_id = envelope.get("id") if isinstance(envelope, MappingABC) else None
        method = envelope.get("method") if isinstance(envelope, MappingABC) else None

        try:
            if method == "initialize":
                result = self.initialize()
            elif method == "tools/list":
                result = {"tools": self.registry.describe()}
            elif method == "tools/call":
                params = envelope.get("params") or {}
                if not isinstance(params, MappingABC):
                    raise ValidationError("tools/call params must be an object.")
                name = params.get("name")
                if not isinstance(name, str) or not name:
                    raise ValidationError("tools/call requires params.name.")
                arguments = params.get("arguments") or {}
                if not isinstance(arguments, MappingABC):
                    raise ValidationError("tools/call params.arguments must be an object.")
                result = await self.call_tool(name, arguments)
            else:
                logger.warning("Unsupported method %r", method)
                return {
                    "jsonrpc": "2.0",
                    "error": {"code": METHOD_NOT_FOUND, "message": f"Method not found: {method}"},
                    "id": request_id,
                }
        except MultiSourceError as exc:
            logger.warning("%s failed: %s: %s", method, type(exc).__name__, exc.message)
            return {"jsonrpc": "2.0", "error": exc.to_error(), "id": request_id}
        except Exception:
            logger.error("Unexpected error while handling %s", method, exc_info=True)
            return {
                "jsonrpc": "2.0",
                "error": {"code": INTERNAL_ERROR, "message": "Internal error"},
                "id": request_id,
            }

        return {"jsonrpc": "2.0", "result": result, "id": request_id}
