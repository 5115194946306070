# Multi-Source MCP Server
# File: tests/test_formatter.py
# Version: v1

from __future__ import annotations

import pytest

from multisource_mcp.formatter import VERBAL_DISPLAY_CAP, format_amount, format_response
from multisource_mcp.models import NormalizedDataset


def _invoices(records=None, **filters) -> NormalizedDataset:
    records = records or []
    return NormalizedDataset(
        source_id="realm-1",
        scope="invoices",
        range=None,
        fields=["docNumber", "totalAmt"],
        records=records,
        total_matched=len(records),
        kind="invoices",
        filters=filters,
    )


def _rows(count: int, total: int | None = None) -> NormalizedDataset:
    return NormalizedDataset(
        source_id="SHEET",
        scope="Sales",
        range="Sales!A1:Z30",
        fields=["n"],
        records=[{"n": str(i)} for i in range(count)],
        total_matched=total if total is not None else count,
        limit=count,
    )


def test_empty_invoice_search_names_both_filters():
    dataset = _invoices(
        dateRange={"start": "2025-01-01", "end": "2025-01-31"},
        amountRange={"min": 500.0, "max": 2000.0},
    )
    verbal = format_response(dataset, "verbal")["verbalResponse"]

    assert "from 2025-01-01 to 2025-01-31" in verbal
    assert "between $500 and $2000" in verbal
    assert verbal == (
        "I didn't find any invoices from 2025-01-01 to 2025-01-31 "
        "with amounts between $500 and $2000."
    )


def test_open_ended_amount_reads_as_over():
    dataset = _invoices(amountRange={"min": 1000.0, "max": 999999999.0})
    verbal = format_response(dataset, "verbal")["verbalResponse"]
    assert verbal == "I didn't find any invoices with amounts over $1000."


def test_empty_rows_sentence_is_sheet_specific():
    verbal = format_response(_rows(0), "verbal")["verbalResponse"]
    assert verbal.startswith('I found the sheet "Sales" but it has no data')


def test_verbal_cap_is_independent_of_limit():
    dataset = _rows(25)
    verbal = format_response(dataset, "verbal")["verbalResponse"]
    lines = verbal.splitlines()

    row_lines = [line for line in lines if line.startswith("Row ")]
    assert len(row_lines) == VERBAL_DISPLAY_CAP
    assert lines[-1] == "... and 15 more rows."
    # structured output keeps every fetched record
    assert len(format_response(dataset, "structured")["data"]["records"]) == 25


def test_header_line_names_fields_and_total():
    verbal = format_response(_rows(2, total=8), "verbal")["verbalResponse"]
    first = verbal.splitlines()[0]
    assert first == 'I found 8 rows from the "Sales" sheet (showing first 2 of 8). Fields: n'


def test_invoice_lines_render_money():
    dataset = _invoices([{"docNumber": "INV-001", "totalAmt": 1500.0}])
    verbal = format_response(dataset, "verbal")["verbalResponse"]
    assert "Invoice 1: docNumber: INV-001, totalAmt: $1500.00" in verbal


def test_modes_are_exclusive():
    dataset = _rows(1)

    verbal = format_response(dataset, "verbal")
    assert set(verbal) == {"verbalResponse"}

    structured = format_response(dataset, "structured")
    assert set(structured) == {"data"}
    assert structured["data"]["totalMatched"] == 1

    both = format_response(dataset, "both", "first row please")
    assert set(both) == {"verbalResponse", "data", "conversationalContext"}
    assert both["conversationalContext"].startswith('Based on your query "first row please"')


def test_unknown_mode_rejected():
    with pytest.raises(ValueError):
        format_response(_rows(1), "loud")


def test_format_amount():
    assert format_amount(500) == "$500"
    assert format_amount(500.0) == "$500"
    assert format_amount("1500.5") == "$1500.50"
