# Multi-Source MCP Server
# File: formatter.py
# Version: v1

"""Render a :class:`NormalizedDataset` for a voice/chat client.

``verbal`` produces a short spoken-style summary, ``structured`` the raw
dataset, ``both`` both plus a one-paragraph conversational context.

The verbal summary lists at most :data:`VERBAL_DISPLAY_CAP` records no
matter how many were fetched; the query ``limit`` bounds what is fetched and
counted, this cap only bounds what is read out.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional

from .models import AMOUNT_SENTINEL_MAX, NormalizedDataset

VERBAL_DISPLAY_CAP = 10

RESPONSE_FORMATS = ("verbal", "structured", "both")

_NOUNS = {"rows": "row", "invoices": "invoice", "sheets": "sheet"}
_MONEY_FIELDS = {"totalAmt", "balance"}


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def format_amount(value: Any) -> str:
    """``500`` -> ``$500``; ``1500.5`` -> ``$1500.50``."""
    amount = Decimal(str(value))
    if amount == amount.to_integral_value():
        return f"${amount:.0f}"
    return f"${amount:.2f}"


def _amount_phrase(amount_range: Dict[str, Any]) -> str:
    low = Decimal(str(amount_range["min"]))
    high = Decimal(str(amount_range["max"]))
    if high >= AMOUNT_SENTINEL_MAX:
        return f"with amounts over {format_amount(low)}"
    if low == high:
        return f"with amounts of exactly {format_amount(low)}"
    if low == 0:
        return f"with amounts up to {format_amount(high)}"
    return f"with amounts between {format_amount(low)} and {format_amount(high)}"


def describe_filters(dataset: NormalizedDataset) -> str:
    """Active date/amount filters as a phrase with a leading space, or ``""``."""
    parts: List[str] = []
    date_range = dataset.filters.get("dateRange")
    if date_range:
        parts.append(f"from {date_range['start']} to {date_range['end']}")
    amount_range = dataset.filters.get("amountRange")
    if amount_range:
        parts.append(_amount_phrase(amount_range))
    return "".join(f" {p}" for p in parts)


def _render_value(field: str, value: Any, kind: str) -> str:
    if value is None or value == "":
        return "-"
    if kind == "invoices" and field in _MONEY_FIELDS:
        return f"${Decimal(str(value)):.2f}"
    return str(value)


def _nothing_found(dataset: NormalizedDataset) -> str:
    if dataset.kind == "invoices":
        return f"I didn't find any invoices{describe_filters(dataset)}."

    if dataset.kind == "sheets":
        label = dataset.title or dataset.source_id
        return f'The spreadsheet "{label}" does not contain any sheets.'

    sentence = (
        f'I found the sheet "{dataset.scope}" but it has no data in the requested range'
    )
    if dataset.offset:
        sentence += f" after skipping {_plural(dataset.offset, 'row')}"
    requested = dataset.filters.get("requestedFields")
    if requested:
        sentence += f" for the columns {', '.join(requested)}"
    return sentence + "."


def _header_line(dataset: NormalizedDataset) -> str:
    shown = len(dataset.records)
    total = dataset.total_matched

    if dataset.kind == "invoices":
        line = f"I found {_plural(total, 'invoice')}{describe_filters(dataset)}"
    elif dataset.kind == "sheets":
        label = dataset.title or dataset.source_id
        line = f'The spreadsheet "{label}" has {_plural(total, "sheet")}'
    else:
        line = f'I found {_plural(total, "row")} from the "{dataset.scope}" sheet'

    if total > shown:
        line += f" (showing first {shown} of {total})"
    return f"{line}. Fields: {', '.join(dataset.fields)}"


def render_verbal(dataset: NormalizedDataset) -> str:
    if not dataset.records:
        return _nothing_found(dataset)

    noun = _NOUNS.get(dataset.kind, "record")
    label = noun.capitalize()

    lines = [_header_line(dataset), ""]
    for index, record in enumerate(dataset.records[:VERBAL_DISPLAY_CAP], start=1):
        cells = ", ".join(
            f"{name}: {_render_value(name, record.get(name), dataset.kind)}"
            for name in dataset.fields
        )
        lines.append(f"{label} {index}: {cells}")

    hidden = len(dataset.records) - VERBAL_DISPLAY_CAP
    if hidden > 0:
        lines.append(f"... and {hidden} more {noun}{'' if hidden == 1 else 's'}.")
    return "\n".join(lines)


def conversational_context(
    dataset: NormalizedDataset, original_query: Optional[str] = None
) -> str:
    noun = _NOUNS.get(dataset.kind, "record")

    if dataset.kind == "invoices":
        searched = "QuickBooks invoices"
    elif dataset.kind == "sheets":
        searched = f'the sheet list of "{dataset.title or dataset.source_id}"'
    else:
        searched = f'the "{dataset.scope}" sheet of "{dataset.title or dataset.source_id}"'

    context = f"I searched {searched}. "
    if original_query:
        context = f'Based on your query "{original_query}", ' + context

    if not dataset.records:
        return context + f"No {noun}s matched your criteria."

    context += f"I found {_plural(dataset.total_matched, noun)}{describe_filters(dataset)}. "
    return context + "I can provide more details or help you analyze this data further."


def format_response(
    dataset: NormalizedDataset,
    mode: str = "both",
    original_query: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the tool result for ``mode`` (``verbal``, ``structured`` or ``both``)."""
    if mode not in RESPONSE_FORMATS:
        raise ValueError(f"Unknown response format {mode!r}; expected one of {RESPONSE_FORMATS}")

    result: Dict[str, Any] = {}
    if mode in ("verbal", "both"):
        result["verbalResponse"] = render_verbal(dataset)
    if mode in ("structured", "both"):
        result["data"] = dataset.to_dict()
    if mode == "both":
        result["conversationalContext"] = conversational_context(dataset, original_query)
    return result
