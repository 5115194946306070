# Multi-Source MCP Server
# File: client.py
# Version: v1
"""Thin async clients for the upstream REST APIs.

Implements:

- SheetsClient.get_metadata() via the Google Sheets spreadsheets endpoint
- SheetsClient.get_values() via the Google Sheets values endpoint
- QuickBooksClient.query_invoices() via the QuickBooks Online query endpoint

HTTP failures are translated into the typed errors of
:mod:`multisource_mcp.errors`; timeouts surface as UpstreamError.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from httpx import HTTPStatusError, RequestError, TimeoutException

from .auth import BearerTokenAuth
from .errors import AuthError, NotFoundError, RateLimitError, UpstreamError
from .models import AmountRange, DateRange, SheetProperties, SpreadsheetMetadata


def _raise_for_status(response: httpx.Response, context: str) -> None:
    """Map an HTTP error status onto the typed error taxonomy."""
    try:
        response.raise_for_status()
    except HTTPStatusError as exc:
        status = response.status_code
        body_preview = response.text[:500]
        message = f"{context} failed (HTTP {status}). Response snippet: {body_preview}"
        details = {"status": status}

        if status in (401, 403):
            raise AuthError(
                f"{context} was rejected (HTTP {status}); the access token is missing, "
                "invalid or expired.",
                details,
            ) from exc
        if status == 404:
            raise NotFoundError(f"{context} found nothing (HTTP 404).", details) from exc
        if status == 429:
            raise RateLimitError(
                f"{context} hit the upstream rate limit (HTTP 429); try again shortly.",
                details,
            ) from exc
        raise UpstreamError(message, details) from exc


async def _get_json(
    url: str,
    headers: Dict[str, str],
    context: str,
    timeout: float,
    params: Optional[Dict[str, Any]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Any:
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as http_client:
        try:
            response = await http_client.get(url, headers=headers, params=params or None)
        except TimeoutException as exc:
            raise UpstreamError(
                f"{context} timed out after {timeout:g} seconds at '{url}'."
            ) from exc
        except RequestError as exc:
            raise UpstreamError(f"Error calling '{url}' for {context}: {exc}") from exc

        _raise_for_status(response, context)

    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamError(
            f"{context} returned a non-JSON response from '{url}'."
        ) from exc


@dataclass
class SheetsClient:
    """Wrapper around the Google Sheets v4 read endpoints."""

    auth: BearerTokenAuth
    base_url: str = "https://sheets.googleapis.com/v4"
    timeout: float = 30.0
    transport: Optional[httpx.AsyncBaseTransport] = None

    async def get_metadata(self, spreadsheet_id: str) -> SpreadsheetMetadata:
        """Fetch the spreadsheet title and its tabs."""
        headers = await self.auth.headers()
        url = f"{self.base_url.rstrip('/')}/spreadsheets/{quote(spreadsheet_id, safe='')}"
        data = await _get_json(
            url,
            headers,
            context=f"Reading spreadsheet '{spreadsheet_id}'",
            timeout=self.timeout,
            params={"fields": "properties.title,sheets.properties"},
            transport=self.transport,
        )
        if not isinstance(data, dict):
            raise UpstreamError(
                f"Unexpected metadata payload for spreadsheet '{spreadsheet_id}': "
                f"expected JSON object, got {type(data).__name__}."
            )

        sheets: List[SheetProperties] = []
        for item in data.get("sheets") or []:
            props = item.get("properties") if isinstance(item, dict) else None
            if not isinstance(props, dict):
                continue
            grid = props.get("gridProperties") or {}
            sheets.append(
                SheetProperties(
                    title=str(props.get("title") or ""),
                    sheet_id=props.get("sheetId"),
                    row_count=grid.get("rowCount"),
                    column_count=grid.get("columnCount"),
                )
            )

        title = (data.get("properties") or {}).get("title")
        return SpreadsheetMetadata(
            spreadsheet_id=spreadsheet_id,
            title=title,
            sheets=sheets,
            raw=data,
        )

    async def get_values(self, spreadsheet_id: str, a1_range: str) -> List[List[Any]]:
        """Fetch raw cell values for an A1 range (first row is the header)."""
        headers = await self.auth.headers()
        url = (
            f"{self.base_url.rstrip('/')}/spreadsheets/{quote(spreadsheet_id, safe='')}"
            f"/values/{quote(a1_range, safe='')}"
        )
        data = await _get_json(
            url,
            headers,
            context=f"Reading range '{a1_range}' of spreadsheet '{spreadsheet_id}'",
            timeout=self.timeout,
            transport=self.transport,
        )
        values = data.get("values") if isinstance(data, dict) else None
        if not isinstance(values, list):
            return []
        return [list(row) if isinstance(row, list) else [row] for row in values]


def build_invoice_query(
    date_range: Optional[DateRange],
    amount_range: Optional[AmountRange],
    limit: Optional[int],
) -> str:
    """Build a QuickBooks query-language statement for invoices."""
    statement = "SELECT * FROM Invoice"
    conditions: List[str] = []

    if date_range:
        conditions.append(f"TxnDate >= '{date_range.start.isoformat()}'")
        conditions.append(f"TxnDate <= '{date_range.end.isoformat()}'")

    if amount_range:
        conditions.append(f"TotalAmt >= {amount_range.min}")
        conditions.append(f"TotalAmt <= {amount_range.max}")

    if conditions:
        statement += " WHERE " + " AND ".join(conditions)

    statement += " ORDER BY TxnDate DESC"
    if limit:
        statement += f" MAXRESULTS {int(limit)}"
    return statement


@dataclass
class QuickBooksClient:
    """Wrapper around the QuickBooks Online accounting query endpoint."""

    auth: BearerTokenAuth
    realm_id: Optional[str] = None
    base_url: str = "https://sandbox-quickbooks.api.intuit.com"
    timeout: float = 30.0
    transport: Optional[httpx.AsyncBaseTransport] = None

    @property
    def authenticated(self) -> bool:
        return self.auth.configured and bool(self.realm_id)

    async def query_invoices(
        self,
        date_range: Optional[DateRange] = None,
        amount_range: Optional[AmountRange] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return raw invoice objects, newest transaction date first."""
        if not self.realm_id:
            raise AuthError(
                "QuickBooks is not connected: no company (realm) id is configured. "
                "Set QUICKBOOKS_REALM_ID and QUICKBOOKS_ACCESS_TOKEN."
            )

        headers = await self.auth.headers()
        url = f"{self.base_url.rstrip('/')}/v3/company/{quote(self.realm_id, safe='')}/query"
        statement = build_invoice_query(date_range, amount_range, limit)

        data = await _get_json(
            url,
            headers,
            context="Searching QuickBooks invoices",
            timeout=self.timeout,
            params={"query": statement},
            transport=self.transport,
        )
        query_response = data.get("QueryResponse") if isinstance(data, dict) else None
        invoices = (query_response or {}).get("Invoice") or []
        return [inv for inv in invoices if isinstance(inv, dict)]
