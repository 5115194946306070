# Multi-Source MCP Server
# File: mock.py
# Version: v1

"""In-memory stand-ins for the upstream clients.

Used when ``MULTISOURCE_MOCK_MODE`` is on, by the demo script and by the
tests. They expose the same coroutine methods as the REST clients in
:mod:`multisource_mcp.client`.
"""

from __future__ import annotations

import copy
import re
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from .errors import NotFoundError
from .models import AmountRange, DateRange, SheetProperties, SpreadsheetMetadata

MOCK_SPREADSHEET_TITLE = "Mock Company Workbook"

MOCK_SHEETS: Dict[str, List[List[str]]] = {
    "Employees": [
        ["Name", "Email", "Department", "Salary"],
        ["John Doe", "john@example.com", "Engineering", "120000"],
        ["Jane Smith", "jane@example.com", "Marketing", "95000"],
        ["Bob Johnson", "bob@example.com", "Sales", "85000"],
    ],
    "Sales": [
        ["Region", "Product", "Quarter", "Revenue"],
        ["North", "Widgets", "Q1", "15000"],
        ["South", "Gadgets", "Q1", "9800"],
        ["East", "Widgets", "Q2", "12250"],
        ["West", "Gizmos", "Q2", "7400"],
        ["North", "Gadgets", "Q3", "11900"],
        ["South", "Widgets", "Q3", "13100"],
        ["East", "Gizmos", "Q4", "6050"],
    ],
}


def _invoice(
    invoice_id: str,
    doc_number: str,
    txn_date: str,
    due_date: str,
    total: str,
    balance: str,
    customer: Tuple[str, str],
    item: Tuple[str, str],
) -> Dict[str, Any]:
    return {
        "Id": invoice_id,
        "DocNumber": doc_number,
        "TxnDate": txn_date,
        "DueDate": due_date,
        "TotalAmt": total,
        "Balance": balance,
        "CustomerRef": {"value": customer[0], "name": customer[1]},
        "Line": [
            {
                "Amount": total,
                "DetailType": "SalesItemLineDetail",
                "SalesItemLineDetail": {
                    "ItemRef": {"value": item[0], "name": item[1]},
                },
            }
        ],
    }


MOCK_INVOICES: List[Dict[str, Any]] = [
    _invoice("123", "INV-001", "2025-01-15", "2025-02-15", "1500.00", "500.00",
             ("456", "Acme Corporation"), ("789", "Consulting Services")),
    _invoice("124", "INV-002", "2025-01-22", "2025-02-21", "420.00", "0.00",
             ("457", "Globex Ltd"), ("790", "Support Plan")),
    _invoice("125", "INV-003", "2025-02-03", "2025-03-05", "2750.50", "2750.50",
             ("456", "Acme Corporation"), ("791", "Implementation")),
    _invoice("126", "INV-004", "2025-02-18", "2025-03-20", "980.00", "0.00",
             ("458", "Initech"), ("789", "Consulting Services")),
    _invoice("127", "INV-005", "2025-03-07", "2025-04-06", "12000.00", "6000.00",
             ("459", "Umbrella Corp"), ("792", "Annual License")),
]

_A1_RE = re.compile(
    r"^(?:(?P<sheet>'[^']+'|[^!]+)!)?"
    r"(?P<c1>[A-Za-z]+)(?P<r1>\d+)?"
    r"(?::(?P<c2>[A-Za-z]+)(?P<r2>\d+)?)?$"
)


def _column_index(letters: str) -> int:
    index = 0
    for ch in letters.upper():
        index = index * 26 + (ord(ch) - ord("A") + 1)
    return index - 1


def _slice_range(a1_range: str, sheets: Dict[str, List[List[str]]]) -> List[List[str]]:
    """Apply an A1 range to the fixture grid, like the values endpoint."""
    match = _A1_RE.match(a1_range.strip())
    if not match:
        # bare sheet name
        sheet_name = a1_range.strip().strip("'")
        if sheet_name not in sheets:
            raise NotFoundError(f"Sheet '{sheet_name}' does not exist in the mock spreadsheet.")
        return copy.deepcopy(sheets[sheet_name])

    sheet_name = (match.group("sheet") or next(iter(sheets))).strip("'")
    rows = sheets.get(sheet_name)
    if rows is None:
        raise NotFoundError(f"Sheet '{sheet_name}' does not exist in the mock spreadsheet.")

    c1 = _column_index(match.group("c1"))
    c2 = _column_index(match.group("c2") or match.group("c1"))
    r1 = int(match.group("r1") or 1) - 1
    r2 = int(match.group("r2")) if match.group("r2") else len(rows)

    out: List[List[str]] = []
    for row in rows[r1:r2]:
        cells = row[c1 : c2 + 1]
        # trailing empty cells are omitted upstream
        while cells and cells[-1] == "":
            cells = cells[:-1]
        out.append(list(cells))
    return out


class MockSheetsClient:
    """Fixture spreadsheet; every spreadsheet id resolves to the same workbook."""

    def __init__(
        self,
        sheets: Optional[Dict[str, List[List[str]]]] = None,
        title: str = MOCK_SPREADSHEET_TITLE,
    ) -> None:
        self.sheets = sheets if sheets is not None else MOCK_SHEETS
        self.title = title
        self.calls: List[Tuple[str, str]] = []

    async def get_metadata(self, spreadsheet_id: str) -> SpreadsheetMetadata:
        self.calls.append(("get_metadata", spreadsheet_id))
        props = [
            SheetProperties(
                title=name,
                sheet_id=index,
                row_count=len(rows),
                column_count=max((len(r) for r in rows), default=0),
            )
            for index, (name, rows) in enumerate(self.sheets.items())
        ]
        return SpreadsheetMetadata(
            spreadsheet_id=spreadsheet_id,
            title=self.title,
            sheets=props,
            raw={"mock": True},
        )

    async def get_values(self, spreadsheet_id: str, a1_range: str) -> List[List[str]]:
        self.calls.append(("get_values", a1_range))
        return _slice_range(a1_range, self.sheets)


class MockQuickBooksClient:
    """Fixture invoice ledger honouring the same filters as the query endpoint."""

    def __init__(self, invoices: Optional[List[Dict[str, Any]]] = None) -> None:
        self.invoices = invoices if invoices is not None else MOCK_INVOICES
        self.calls: List[Dict[str, Any]] = []

    async def query_invoices(
        self,
        date_range: Optional[DateRange] = None,
        amount_range: Optional[AmountRange] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        self.calls.append(
            {"date_range": date_range, "amount_range": amount_range, "limit": limit}
        )

        matched = []
        for invoice in self.invoices:
            if date_range and not date_range.contains(date.fromisoformat(invoice["TxnDate"][:10])):
                continue
            if amount_range and not amount_range.contains(Decimal(str(invoice["TotalAmt"]))):
                continue
            matched.append(copy.deepcopy(invoice))

        matched.sort(key=lambda inv: inv["TxnDate"], reverse=True)
        if limit:
            matched = matched[:limit]
        return matched
