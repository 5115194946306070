# Multi-Source MCP Server
# File: interpreter.py
# Version: v1

"""Deterministic free-text query interpreter.

Turns a request such as "Show me invoices over $1000 this month" into a
:class:`~multisource_mcp.models.QueryIntent`. Each concern (source, scope,
dates, amounts, limit, fields, action) is resolved independently from the
ordered tables in :mod:`multisource_mcp.patterns`; within a table the first
matching pattern wins and nothing is merged across patterns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional

from . import patterns
from .errors import ParseError
from .models import Action, QueryIntent

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 5
DEFAULT_RECORD_LIMIT = 10

ACTION_CONFIDENCE: Dict[Action, float] = {
    Action.FETCH_INFO: 0.9,
    Action.FETCH_RANGE: 0.85,
    Action.FETCH_ROWS: 0.8,
    Action.SEARCH_RECORDS: 0.9,
}


def default_limit(action: Action) -> int:
    return DEFAULT_RECORD_LIMIT if action is Action.SEARCH_RECORDS else DEFAULT_ROW_LIMIT


@dataclass
class QueryInterpreter:
    """Resolve free text plus caller overrides into a structured intent.

    Attributes:
        default_source_id:
            Spreadsheet used when neither the text nor the caller names one.
        default_ledger_id:
            Ledger/company used for invoice searches without an explicit id.
        max_limit:
            Hard cap applied to any limit found in the text.
        clock:
            Returns "today"; relative date keywords are computed from it.
    """

    default_source_id: Optional[str] = None
    default_ledger_id: Optional[str] = None
    max_limit: int = 500
    clock: Callable[[], date] = field(default=date.today)

    def interpret(
        self,
        raw_text: str,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> QueryIntent:
        """Parse ``raw_text`` into a :class:`QueryIntent`.

        ``overrides`` may carry ``source_id``, ``scope`` and ``action``. The
        action override pins single-domain tools (e.g. invoice search) to
        their adapter; text keywords are ignored for the action in that case.

        Raises:
            ParseError: no source identifier in the text, the overrides or
                the configured defaults.
        """
        text = raw_text or ""
        overrides = overrides or {}
        today = self.clock()

        pinned = overrides.get("action")
        if pinned is not None:
            action = Action(pinned)
            confidence = 1.0
        else:
            action = patterns.first_match(patterns.ACTION_MATCHERS, text) or Action.FETCH_ROWS
            confidence = ACTION_CONFIDENCE[action]

        source_id = self._resolve_source_id(text, overrides, action)

        scope = patterns.first_match(patterns.SCOPE_MATCHERS, text) or overrides.get("scope")
        date_range = patterns.first_match(patterns.DATE_MATCHERS, text, today)
        amount_range = patterns.first_match(patterns.AMOUNT_MATCHERS, text)

        limit = patterns.first_match(patterns.LIMIT_MATCHERS, text)
        if limit is None:
            limit = default_limit(action)
        limit = min(limit, self.max_limit)

        offset = patterns.match_offset(text) or 0
        requested_fields = patterns.match_requested_fields(text)

        cell_range = None
        if action is Action.FETCH_RANGE:
            cell_range = patterns.match_a1_range(text)

        intent = QueryIntent(
            action=action,
            source_id=source_id,
            scope=scope,
            range=cell_range,
            limit=limit,
            offset=offset,
            date_range=date_range,
            amount_range=amount_range,
            requested_fields=requested_fields,
            confidence=confidence,
            original_query=text,
        )
        logger.debug("Interpreted %r as %s", text, intent.to_dict())
        return intent

    def _resolve_source_id(
        self,
        text: str,
        overrides: Mapping[str, Any],
        action: Action,
    ) -> str:
        inline = patterns.match_source_id(text)
        if inline:
            return inline

        override = overrides.get("source_id")
        if override:
            return str(override)

        fallback = (
            self.default_ledger_id
            if action is Action.SEARCH_RECORDS
            else self.default_source_id
        )
        if fallback:
            return fallback

        raise ParseError(
            "No spreadsheet ID was found in the query, the tool arguments or the "
            "DEFAULT_SPREADSHEET_ID setting; name one with 'spreadsheet id: <ID>'."
        )
