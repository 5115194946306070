# Multi-Source MCP Server
# File: patterns.py
# Version: v1

"""Ordered pattern tables used by the query interpreter.

Every table is a tuple of pure matcher functions. ``first_match`` evaluates
them in order and returns the first non-``None`` result, so the position of a
matcher in its table is its precedence.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from .models import AMOUNT_SENTINEL_MAX, Action, AmountRange, DateRange

T = TypeVar("T")


def first_match(matchers: Sequence[Callable[..., Optional[T]]], *args) -> Optional[T]:
    """Return the result of the first matcher that recognises the input."""
    for matcher in matchers:
        found = matcher(*args)
        if found is not None:
            return found
    return None


# ---------------------------------------------------------------------------
# Source identifier & scope
# ---------------------------------------------------------------------------

_SOURCE_ID_RE = re.compile(
    r"\b(?:spreadsheet|sheet)(?:\s+with)?[\s_-]*id\b\s*(?:is\s+)?[:=]?\s*([A-Za-z0-9_-]+)",
    re.IGNORECASE,
)

# Words that can precede "sheet" without naming one ("the first sheet").
_GENERIC_SCOPE_WORDS = {
    "first",
    "this",
    "that",
    "the",
    "same",
    "current",
    "default",
    "active",
    "whole",
    "entire",
    "main",
    "a",
    "my",
}

_SCOPE_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(
        r"\b(?:sheet|tab)\s+(?:named|called|titled)\s+[\"'“]([^\"'”\n]+)[\"'”]",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:sheet|tab)\s+(?:named|called|titled)\s+([\w-]+)", re.IGNORECASE),
    re.compile(
        r"\b(?:from|in|on|of)\s+(?:the\s+)?[\"']([^\"'\n]+)[\"']\s+(?:sheet|tab)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:from|in|on|of)\s+(?:the\s+)?([\w-]+)\s+(?:sheet|tab)\b", re.IGNORECASE),
)


def match_source_id(text: str) -> Optional[str]:
    m = _SOURCE_ID_RE.search(text)
    return m.group(1) if m else None


def _scope_matcher(pattern: re.Pattern) -> Callable[[str], Optional[str]]:
    def matcher(text: str) -> Optional[str]:
        m = pattern.search(text)
        if not m:
            return None
        name = m.group(1).strip()
        if not name or name.lower() in _GENERIC_SCOPE_WORDS:
            return None
        return name

    return matcher


SCOPE_MATCHERS: Tuple[Callable[[str], Optional[str]], ...] = tuple(
    _scope_matcher(p) for p in _SCOPE_PATTERNS
)


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_ISO_DATE = r"\d{4}-\d{2}-\d{2}"
ISO_DATE_RE = re.compile(_ISO_DATE)

_ISO_PAIR_RE = re.compile(
    rf"({_ISO_DATE})\s*(?:to|through|until|and|-)\s*({_ISO_DATE})", re.IGNORECASE
)
_ISO_SINCE_RE = re.compile(rf"\b(?:since|after)\s+({_ISO_DATE})", re.IGNORECASE)
_ISO_SINGLE_RE = re.compile(rf"({_ISO_DATE})")
_YEAR_RE = re.compile(r"\b(20\d{2})\b")
_CURRENCY_AMOUNT_RE = re.compile(r"[$€£¥]\s*\d[\d,]*(?:\.\d+)?")

MONTHS = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)


def _ordered(start: date, end: date) -> DateRange:
    if start > end:
        start, end = end, start
    return DateRange(start=start, end=end)


def _parse_iso(raw: str) -> Optional[date]:
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _week_start(today: date) -> date:
    # Weeks start on Sunday.
    return today - timedelta(days=(today.weekday() + 1) % 7)


def _today(today: date) -> DateRange:
    return DateRange(today, today)


def _yesterday(today: date) -> DateRange:
    day = today - timedelta(days=1)
    return DateRange(day, day)


def _this_week(today: date) -> DateRange:
    return DateRange(_week_start(today), today)


def _last_week(today: date) -> DateRange:
    end = _week_start(today) - timedelta(days=1)
    return DateRange(end - timedelta(days=6), end)


def _this_month(today: date) -> DateRange:
    return DateRange(today.replace(day=1), today)


def _last_month(today: date) -> DateRange:
    end = today.replace(day=1) - timedelta(days=1)
    return DateRange(end.replace(day=1), end)


def _this_year(today: date) -> DateRange:
    return DateRange(date(today.year, 1, 1), today)


RELATIVE_DATES: Tuple[Tuple[str, Callable[[date], DateRange]], ...] = (
    ("today", _today),
    ("yesterday", _yesterday),
    ("this week", _this_week),
    ("last week", _last_week),
    ("this month", _this_month),
    ("last month", _last_month),
    ("this year", _this_year),
)

_RELATIVE_RES = tuple(
    (re.compile(rf"\b{keyword}\b", re.IGNORECASE), fn) for keyword, fn in RELATIVE_DATES
)
# A year written right after the month ("January 2025", "May, 2024") wins.
_MONTH_RES = tuple(
    re.compile(rf"\b{name}\b(?:\s*,?\s*(?:of\s+)?(20\d{{2}})\b)?", re.IGNORECASE)
    for name in MONTHS
)


def match_relative_date(text: str, today: date) -> Optional[DateRange]:
    for pattern, fn in _RELATIVE_RES:
        if pattern.search(text):
            return fn(today)
    return None


def _month_year(m: re.Match, text: str, today: date) -> int:
    if m.group(1):
        return int(m.group(1))
    # Amounts such as "$2000" or "over 2024" are not years.
    masked = _CURRENCY_AMOUNT_RE.sub(" ", text)
    for amount_re in (_BETWEEN_RE, _OVER_RE, _UNDER_RE, _EXACT_RE):
        masked = amount_re.sub(" ", masked)
    year_match = _YEAR_RE.search(masked)
    return int(year_match.group(1)) if year_match else today.year


def match_month_name(text: str, today: date) -> Optional[DateRange]:
    for index, pattern in enumerate(_MONTH_RES):
        m = pattern.search(text)
        if not m:
            continue
        year = _month_year(m, text, today)
        month = index + 1
        last_day = calendar.monthrange(year, month)[1]
        return DateRange(date(year, month, 1), date(year, month, last_day))
    return None


def match_iso_dates(text: str, today: date) -> Optional[DateRange]:
    m = _ISO_PAIR_RE.search(text)
    if m:
        start, end = _parse_iso(m.group(1)), _parse_iso(m.group(2))
        if start and end:
            return _ordered(start, end)

    m = _ISO_SINCE_RE.search(text)
    if m:
        start = _parse_iso(m.group(1))
        if start:
            return _ordered(start, today)

    for m in _ISO_SINGLE_RE.finditer(text):
        day = _parse_iso(m.group(1))
        if day:
            return DateRange(day, day)
    return None


DATE_MATCHERS = (match_relative_date, match_month_name, match_iso_dates)


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_NUM = r"[$€£¥]?\s*(\d[\d,]*(?:\.\d+)?)"

_BETWEEN_RE = re.compile(
    rf"\b(?:between|from)\s*{_NUM}\s*(?:and|to|-)\s*{_NUM}", re.IGNORECASE
)
_OVER_RE = re.compile(
    rf"\b(?:over|above|greater\s+than|more\s+than|at\s+least)\s*{_NUM}", re.IGNORECASE
)
_UNDER_RE = re.compile(rf"\b(?:under|below|less\s+than|at\s+most)\s*{_NUM}", re.IGNORECASE)
_EXACT_RE = re.compile(rf"\b(?:exactly|equals?|equal\s+to)\s*{_NUM}", re.IGNORECASE)


def parse_amount(raw: str) -> Decimal:
    """Parse an amount after stripping currency symbols and thousand separators."""
    cleaned = re.sub(r"[$€£¥,\s]", "", raw)
    return Decimal(cleaned)


def _mask_dates(text: str) -> str:
    return ISO_DATE_RE.sub(" ", text)


def match_amount_between(text: str) -> Optional[AmountRange]:
    m = _BETWEEN_RE.search(_mask_dates(text))
    if not m:
        return None
    low, high = parse_amount(m.group(1)), parse_amount(m.group(2))
    if low > high:
        low, high = high, low
    return AmountRange(min=low, max=high)


def match_amount_over(text: str) -> Optional[AmountRange]:
    m = _OVER_RE.search(_mask_dates(text))
    if not m:
        return None
    low = parse_amount(m.group(1))
    return AmountRange(min=low, max=max(low, AMOUNT_SENTINEL_MAX))


def match_amount_under(text: str) -> Optional[AmountRange]:
    m = _UNDER_RE.search(_mask_dates(text))
    if not m:
        return None
    return AmountRange(min=Decimal("0"), max=parse_amount(m.group(1)))


def match_amount_exact(text: str) -> Optional[AmountRange]:
    m = _EXACT_RE.search(_mask_dates(text))
    if not m:
        return None
    value = parse_amount(m.group(1))
    return AmountRange(min=value, max=value)


AMOUNT_MATCHERS = (
    match_amount_between,
    match_amount_over,
    match_amount_under,
    match_amount_exact,
)


# ---------------------------------------------------------------------------
# Limit & offset
# ---------------------------------------------------------------------------

_LIMIT_KEYWORD_RE = re.compile(
    r"\b(?:first|last|top|limit(?:\s+to)?|show)\s+(\d+)\b", re.IGNORECASE
)
_LIMIT_NOUN_RE = re.compile(
    r"\b(\d+)\s+(?:rows?|records?|results?|items?|invoices?|entries)\b", re.IGNORECASE
)
_OFFSET_RE = re.compile(r"\b(?:skip|skipping|offset)\s+(\d+)\b", re.IGNORECASE)
_START_ROW_RE = re.compile(r"\bstarting\s+(?:at|from)\s+row\s+(\d+)\b", re.IGNORECASE)


def match_limit_keyword(text: str) -> Optional[int]:
    m = _LIMIT_KEYWORD_RE.search(_mask_dates(text))
    return int(m.group(1)) if m else None


def match_limit_noun(text: str) -> Optional[int]:
    m = _LIMIT_NOUN_RE.search(_mask_dates(text))
    return int(m.group(1)) if m else None


LIMIT_MATCHERS = (match_limit_keyword, match_limit_noun)


def match_offset(text: str) -> Optional[int]:
    m = _OFFSET_RE.search(text)
    if m:
        return int(m.group(1))
    m = _START_ROW_RE.search(text)
    if m:
        return max(int(m.group(1)) - 1, 0)
    return None


# ---------------------------------------------------------------------------
# Requested fields
# ---------------------------------------------------------------------------

_FIELDS_RE = re.compile(
    r"\b(?:fields?|columns?|only|just)\b\s*:?\s*(.+?)"
    r"(?=\s+(?:from|in|of|on|for|where|with)\b"
    r"|[.;?!\n]|$)",
    re.IGNORECASE,
)
_FIELD_SPLIT_RE = re.compile(r"[,&\s]+")
_FIELD_STOP_WORDS = {
    "a",
    "all",
    "and",
    "or",
    "the",
    "me",
    "show",
    "please",
    "data",
    "column",
    "columns",
    "field",
    "fields",
    "first",
    "last",
    "top",
    "row",
    "rows",
    "record",
    "records",
}


def match_requested_fields(text: str) -> Optional[Tuple[str, ...]]:
    m = _FIELDS_RE.search(text)
    if not m:
        return None

    tokens: List[str] = []
    for raw in _FIELD_SPLIT_RE.split(m.group(1)):
        token = raw.strip().strip("\"'")
        if len(token) < 2 or token.isdigit() or token.lower() in _FIELD_STOP_WORDS:
            continue
        if token not in tokens:
            tokens.append(token)
    return tuple(tokens) or None


def resolve_fields(tokens: Optional[Sequence[str]], fields: Sequence[str]) -> List[str]:
    """Map requested tokens onto real field names.

    A token matches the first field that contains it, or that it contains
    (case-insensitive). Unmatched tokens are dropped; an empty result means
    no projection should be applied.
    """
    if not tokens:
        return []

    matched: List[str] = []
    for token in tokens:
        needle = token.lower()
        for name in fields:
            hay = name.lower()
            if needle in hay or (hay and hay in needle):
                if name not in matched:
                    matched.append(name)
                break
    return matched


# ---------------------------------------------------------------------------
# Ranges & actions
# ---------------------------------------------------------------------------

_A1_RANGE_RE = re.compile(
    r"(?<![\w!])((?:'(?:[^']|'')+'!|[A-Za-z0-9_]+!)?[A-Za-z]{1,3}\d+:[A-Za-z]{1,3}\d+)\b"
)
_INVOICE_RE = re.compile(r"\binvoices?\b", re.IGNORECASE)
_INFO_RE = re.compile(r"\b(?:info|information|details?)\b", re.IGNORECASE)
_RANGE_RE = re.compile(r"\b(?:range|cells?|cell\s+coordinates)\b", re.IGNORECASE)


def match_a1_range(text: str) -> Optional[str]:
    m = _A1_RANGE_RE.search(text)
    return m.group(1) if m else None


def _keyword_action(pattern: re.Pattern, action: Action) -> Callable[[str], Optional[Action]]:
    def matcher(text: str) -> Optional[Action]:
        return action if pattern.search(text) else None

    return matcher


def _a1_action(text: str) -> Optional[Action]:
    return Action.FETCH_RANGE if match_a1_range(text) else None


# The invoice keyword is checked first so cross-domain queries go to the ledger.
ACTION_MATCHERS = (
    _keyword_action(_INVOICE_RE, Action.SEARCH_RECORDS),
    _keyword_action(_INFO_RE, Action.FETCH_INFO),
    _keyword_action(_RANGE_RE, Action.FETCH_RANGE),
    _a1_action,
)
