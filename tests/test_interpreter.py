# Multi-Source MCP Server
# File: tests/test_interpreter.py
# Version: v1

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal

import pytest

from multisource_mcp.errors import ParseError
from multisource_mcp.interpreter import QueryInterpreter
from multisource_mcp.models import AMOUNT_SENTINEL_MAX, Action, DateRange

TODAY = date(2025, 3, 12)


def _interpreter(**kwargs) -> QueryInterpreter:
    kwargs.setdefault("default_source_id", "DEFAULT_SHEET")
    kwargs.setdefault("default_ledger_id", "realm-1")
    return QueryInterpreter(clock=lambda: TODAY, **kwargs)


def test_rows_from_named_sheet():
    intent = _interpreter().interpret("Get first 5 rows from the Sales sheet")
    assert intent.action is Action.FETCH_ROWS
    assert intent.scope == "Sales"
    assert intent.limit == 5
    assert intent.source_id == "DEFAULT_SHEET"
    assert intent.date_range is None
    assert intent.amount_range is None


def test_invoices_over_amount_this_month():
    intent = _interpreter().interpret("Show me invoices over $1000 this month")
    assert intent.action is Action.SEARCH_RECORDS
    assert intent.amount_range.min == Decimal("1000")
    assert intent.amount_range.max == AMOUNT_SENTINEL_MAX
    assert intent.date_range == DateRange(date(2025, 3, 1), TODAY)
    assert intent.limit == 10
    assert intent.source_id == "realm-1"


def test_default_limits_per_action():
    interpreter = _interpreter()
    assert interpreter.interpret("rows from the Sales sheet").limit == 5
    assert interpreter.interpret("invoices last month").limit == 10


def test_limit_is_clamped():
    intent = _interpreter(max_limit=50).interpret("top 900 rows")
    assert intent.limit == 50


def test_iso_range_round_trips_exactly():
    intent = _interpreter().interpret("invoices from 2025-01-01 to 2025-01-31")
    assert intent.date_range.start.isoformat() == "2025-01-01"
    assert intent.date_range.end.isoformat() == "2025-01-31"
    assert intent.to_dict()["dateRange"] == {"start": "2025-01-01", "end": "2025-01-31"}


def test_inline_source_id_beats_override_and_default():
    interpreter = _interpreter()
    inline = interpreter.interpret("rows from spreadsheet id: INLINE", {"source_id": "ARG"})
    assert inline.source_id == "INLINE"

    override = interpreter.interpret("rows please", {"source_id": "ARG"})
    assert override.source_id == "ARG"


def test_scope_from_text_beats_override():
    interpreter = _interpreter()
    assert interpreter.interpret("rows from the Sales sheet", {"scope": "Other"}).scope == "Sales"
    assert interpreter.interpret("first 3 rows", {"scope": "Other"}).scope == "Other"


def test_missing_source_raises_parse_error():
    interpreter = QueryInterpreter(clock=lambda: TODAY)
    with pytest.raises(ParseError):
        interpreter.interpret("first 5 rows")


def test_pinned_action_ignores_keywords():
    intent = _interpreter().interpret(
        "details for last month", {"action": Action.SEARCH_RECORDS}
    )
    assert intent.action is Action.SEARCH_RECORDS
    assert intent.confidence == 1.0
    assert intent.source_id == "realm-1"


def test_range_action_keeps_a1_notation():
    intent = _interpreter().interpret("get cells Sales!A1:C4")
    assert intent.action is Action.FETCH_RANGE
    assert intent.range == "Sales!A1:C4"


def test_fields_and_offset():
    intent = _interpreter().interpret("skip 2 rows and show columns name, email from the Employees tab")
    assert intent.offset == 2
    assert intent.requested_fields == ("name", "email")
    assert intent.scope == "Employees"


def test_intent_dict_is_json_safe():
    intent = _interpreter().interpret("invoices between $500 and $2000 in January 2025")
    payload = json.loads(json.dumps(intent.to_dict()))
    assert payload["action"] == "search_records"
    assert payload["amountRange"] == {"min": 500.0, "max": 2000.0}
    assert payload["dateRange"] == {"start": "2025-01-01", "end": "2025-01-31"}


def test_dollar_amount_is_not_read_as_year():
    interpreter = _interpreter()

    between = interpreter.interpret("invoices between $500 and $2000 in January 2025")
    assert between.date_range == DateRange(date(2025, 1, 1), date(2025, 1, 31))

    over = interpreter.interpret("invoices over $2024 in January 2025")
    assert over.date_range == DateRange(date(2025, 1, 1), date(2025, 1, 31))
    assert over.amount_range.min == Decimal("2024")


def test_fields_without_article_keep_scope_out_of_projection():
    intent = _interpreter().interpret("show columns name, email from Employees tab")
    assert intent.requested_fields == ("name", "email")
    assert intent.scope == "Employees"


def test_quoted_sheet_range_is_kept():
    intent = _interpreter().interpret("Get cells 'Q1 Budget'!A1:C3")
    assert intent.action is Action.FETCH_RANGE
    assert intent.range == "'Q1 Budget'!A1:C3"


def test_last_n_reads_as_a_row_limit():
    # "last 30 days" is a limit, not a rolling date window
    intent = _interpreter().interpret("invoices from the last 30 days")
    assert intent.action is Action.SEARCH_RECORDS
    assert intent.limit == 30
    assert intent.date_range is None
