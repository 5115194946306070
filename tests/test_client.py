# Multi-Source MCP Server
# File: tests/test_client.py
# Version: v1

from __future__ import annotations

from datetime import date
from decimal import Decimal

import httpx
import pytest

from multisource_mcp.auth import BearerTokenAuth
from multisource_mcp.client import QuickBooksClient, SheetsClient, build_invoice_query
from multisource_mcp.errors import AuthError, NotFoundError, RateLimitError, UpstreamError
from multisource_mcp.models import AMOUNT_SENTINEL_MAX, AmountRange, DateRange


def _sheets(handler) -> SheetsClient:
    return SheetsClient(
        auth=BearerTokenAuth("Google Sheets", "token-123"),
        base_url="https://sheets.test/v4",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_values_sends_bearer_and_quotes_range():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.raw_path.decode()
        return httpx.Response(200, json={"values": [["Name"], ["John"]]})

    values = await _sheets(handler).get_values("SHEET1", "'Q1 Budget'!A1:Z6")

    assert values == [["Name"], ["John"]]
    assert seen["auth"] == "Bearer token-123"
    assert seen["path"].startswith("/v4/spreadsheets/SHEET1/values/")
    assert "Q1%20Budget" in seen["path"]


@pytest.mark.asyncio
async def test_get_metadata_parses_sheets():
    payload = {
        "properties": {"title": "Budget"},
        "sheets": [
            {"properties": {"title": "Sales", "sheetId": 0, "gridProperties": {"rowCount": 10, "columnCount": 4}}},
        ],
    }
    metadata = await _sheets(lambda request: httpx.Response(200, json=payload)).get_metadata("S")

    assert metadata.title == "Budget"
    assert metadata.sheets[0].title == "Sales"
    assert metadata.sheets[0].row_count == 10


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, error",
    [
        (401, AuthError),
        (403, AuthError),
        (404, NotFoundError),
        (429, RateLimitError),
        (500, UpstreamError),
        (400, UpstreamError),
    ],
)
async def test_status_mapping(status, error):
    client = _sheets(lambda request: httpx.Response(status, text="nope"))
    with pytest.raises(error) as excinfo:
        await client.get_values("S", "A1:B2")
    assert excinfo.value.details == {"status": status}


@pytest.mark.asyncio
async def test_timeout_maps_to_upstream_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(UpstreamError, match="timed out"):
        await _sheets(handler).get_values("S", "A1:B2")


@pytest.mark.asyncio
async def test_missing_token_raises_auth_error_before_any_request():
    called = {"n": 0}

    def handler(request):
        called["n"] += 1
        return httpx.Response(200, json={})

    client = SheetsClient(auth=BearerTokenAuth("Google Sheets"), transport=httpx.MockTransport(handler))
    with pytest.raises(AuthError):
        await client.get_values("S", "A1:B2")
    assert called["n"] == 0


def test_build_invoice_query():
    statement = build_invoice_query(
        DateRange(date(2025, 1, 1), date(2025, 1, 31)),
        AmountRange(Decimal("500"), Decimal("2000")),
        10,
    )
    assert statement == (
        "SELECT * FROM Invoice WHERE TxnDate >= '2025-01-01' AND TxnDate <= '2025-01-31' "
        "AND TotalAmt >= 500 AND TotalAmt <= 2000 ORDER BY TxnDate DESC MAXRESULTS 10"
    )
    assert build_invoice_query(None, None, None) == "SELECT * FROM Invoice ORDER BY TxnDate DESC"


def test_open_ended_amount_uses_sentinel():
    statement = build_invoice_query(None, AmountRange(Decimal("1000"), AMOUNT_SENTINEL_MAX), 5)
    assert f"TotalAmt <= {AMOUNT_SENTINEL_MAX}" in statement


@pytest.mark.asyncio
async def test_query_invoices_hits_company_endpoint():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["query"] = request.url.params["query"]
        return httpx.Response(200, json={"QueryResponse": {"Invoice": [{"Id": "1"}]}})

    client = QuickBooksClient(
        auth=BearerTokenAuth("QuickBooks", "qb-token"),
        realm_id="4620816365",
        base_url="https://qb.test",
        transport=httpx.MockTransport(handler),
    )
    invoices = await client.query_invoices(limit=3)

    assert invoices == [{"Id": "1"}]
    assert seen["path"] == "/v3/company/4620816365/query"
    assert seen["query"].endswith("MAXRESULTS 3")


@pytest.mark.asyncio
async def test_query_invoices_without_realm_is_auth_error():
    client = QuickBooksClient(auth=BearerTokenAuth("QuickBooks", "qb-token"))
    with pytest.raises(AuthError):
        await client.query_invoices()
