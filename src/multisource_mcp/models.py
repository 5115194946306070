# Multi-Source MCP Server
# File: models.py
# Version: v1

"""Domain models shared by the interpreter, adapters, formatter and cache."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

# Upper bound used for open-ended amount filters ("over $1000").
AMOUNT_SENTINEL_MAX = Decimal("999999999")


class Action(str, Enum):
    """What a query asks for; each action is served by exactly one adapter call."""

    FETCH_ROWS = "fetch_rows"
    FETCH_INFO = "fetch_info"
    FETCH_RANGE = "fetch_range"
    SEARCH_RECORDS = "search_records"


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-day range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"DateRange start {self.start} is after end {self.end}")

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class AmountRange:
    """Inclusive, currency-agnostic amount range."""

    min: Decimal
    max: Decimal

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"AmountRange min {self.min} is above max {self.max}")

    @property
    def open_ended(self) -> bool:
        return self.max >= AMOUNT_SENTINEL_MAX

    def contains(self, amount: Decimal) -> bool:
        return self.min <= amount <= self.max

    def to_dict(self) -> Dict[str, float]:
        return {"min": float(self.min), "max": float(self.max)}


@dataclass(frozen=True)
class QueryIntent:
    """Structured form of a free-text request."""

    action: Action
    source_id: str
    scope: Optional[str] = None
    range: Optional[str] = None
    limit: int = 5
    offset: int = 0
    date_range: Optional[DateRange] = None
    amount_range: Optional[AmountRange] = None
    # Raw tokens; adapters resolve them against real field names.
    requested_fields: Optional[Tuple[str, ...]] = None
    confidence: float = 0.0
    original_query: str = ""

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError("QueryIntent.limit must be >= 0")
        if self.offset < 0:
            raise ValueError("QueryIntent.offset must be >= 0")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("QueryIntent.confidence must be within [0, 1]")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action.value,
            "sourceId": self.source_id,
            "scope": self.scope,
            "range": self.range,
            "limit": self.limit,
            "offset": self.offset,
            "dateRange": self.date_range.to_dict() if self.date_range else None,
            "amountRange": self.amount_range.to_dict() if self.amount_range else None,
            "requestedFields": list(self.requested_fields) if self.requested_fields else None,
            "confidence": self.confidence,
            "originalQuery": self.original_query,
        }


def unique_field_names(headers: Iterable[Any]) -> List[str]:
    """Return header names made unique and non-empty, preserving order.

    Blank headers become ``Column N`` (1-based position); repeated names get
    ``(2)``, ``(3)``... suffixes.
    """
    seen: Dict[str, int] = {}
    out: List[str] = []
    for index, raw in enumerate(headers):
        name = str(raw).strip() if raw is not None else ""
        if not name:
            name = f"Column {index + 1}"
        base = name
        while name in seen:
            seen[base] += 1
            name = f"{base} ({seen[base]})"
        seen.setdefault(base, 1)
        seen.setdefault(name, 1)
        out.append(name)
    return out


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NormalizedDataset:
    """Adapter output: ordered fields plus one mapping per record."""

    source_id: str
    scope: Optional[str]
    range: Optional[str]
    fields: List[str]
    records: List[Dict[str, Any]]
    total_matched: int
    executed_at: datetime = field(default_factory=_utcnow)

    # rows | sheets | invoices
    kind: str = "rows"
    title: Optional[str] = None
    limit: Optional[int] = None
    offset: int = 0
    filters: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(set(self.fields)) != len(self.fields):
            raise ValueError("NormalizedDataset.fields must be unique")
        if self.total_matched < len(self.records):
            raise ValueError("NormalizedDataset.total_matched is below the record count")
        allowed = set(self.fields)
        for record in self.records:
            extra = set(record) - allowed
            if extra:
                raise ValueError(f"Record keys {sorted(extra)} are not declared fields")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sourceId": self.source_id,
            "scope": self.scope,
            "range": self.range,
            "fields": list(self.fields),
            "records": [dict(r) for r in self.records],
            "totalMatched": self.total_matched,
            "executedAt": self.executed_at.isoformat(),
            "kind": self.kind,
            "title": self.title,
            "limit": self.limit,
            "offset": self.offset,
            "filters": dict(self.filters),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "NormalizedDataset":
        return cls(
            source_id=payload["sourceId"],
            scope=payload.get("scope"),
            range=payload.get("range"),
            fields=list(payload.get("fields") or []),
            records=[dict(r) for r in payload.get("records") or []],
            total_matched=int(payload.get("totalMatched") or 0),
            executed_at=datetime.fromisoformat(payload["executedAt"]),
            kind=payload.get("kind") or "rows",
            title=payload.get("title"),
            limit=payload.get("limit"),
            offset=int(payload.get("offset") or 0),
            filters=dict(payload.get("filters") or {}),
        )


@dataclass
class SheetProperties:
    """One tab of a spreadsheet as reported by the metadata endpoint."""

    title: str
    sheet_id: Optional[int] = None
    row_count: Optional[int] = None
    column_count: Optional[int] = None


@dataclass
class SpreadsheetMetadata:
    """Spreadsheet title plus its tabs in display order."""

    spreadsheet_id: str
    title: Optional[str]
    sheets: List[SheetProperties]

    # Raw JSON payload from the API, for debugging / advanced use.
    raw: Optional[Dict[str, Any]] = None
