# Multi-Source MCP Server
# File: adapters/tabular.py
# Version: v1

"""Spreadsheet adapter.

The first row of every retrieved span is the header. Rows are zipped onto
the (de-duplicated) header names; short rows are padded with ``""``.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from ..errors import NotFoundError
from ..models import NormalizedDataset, QueryIntent, SheetProperties, SpreadsheetMetadata, unique_field_names
from ..patterns import resolve_fields

logger = logging.getLogger(__name__)

SHEET_INFO_FIELDS = ["name", "sheetId", "rowCount", "columnCount"]

_PLAIN_SHEET_NAME = re.compile(r"^[A-Za-z0-9_]+$")


def quote_sheet_name(name: str) -> str:
    """Quote a tab name for A1 notation when it is not a plain word."""
    if _PLAIN_SHEET_NAME.match(name):
        return name
    return "'" + name.replace("'", "''") + "'"


def _split_range(cell_range: str) -> tuple[Optional[str], str]:
    if "!" not in cell_range:
        return None, cell_range
    sheet, _, cells = cell_range.rpartition("!")
    return sheet.strip("'").replace("''", "'"), cells


def _to_record(fields: Sequence[str], row: Sequence[Any]) -> Dict[str, Any]:
    return {
        name: (row[i] if i < len(row) and row[i] is not None else "")
        for i, name in enumerate(fields)
    }


class TabularAdapter:
    """Reads rows, ranges and tab listings from a spreadsheet client.

    ``client`` is either :class:`~multisource_mcp.client.SheetsClient` or
    :class:`~multisource_mcp.mock.MockSheetsClient`.
    """

    def __init__(self, client: Any, max_column: str = "Z") -> None:
        self.client = client
        self.max_column = max_column

    def _resolve_sheet(
        self, metadata: SpreadsheetMetadata, requested: Optional[str]
    ) -> SheetProperties:
        if not metadata.sheets:
            raise NotFoundError(
                f"Spreadsheet '{metadata.spreadsheet_id}' has no sheets to read from."
            )

        if requested:
            wanted = requested.strip().lower()
            for sheet in metadata.sheets:
                if sheet.title.lower() == wanted:
                    return sheet
            logger.info(
                "Sheet %r not found in spreadsheet %s; using first sheet %r",
                requested,
                metadata.spreadsheet_id,
                metadata.sheets[0].title,
            )
        return metadata.sheets[0]

    async def fetch(self, intent: QueryIntent) -> NormalizedDataset:
        """Fetch rows (or an explicit A1 range) for ``intent``."""
        metadata = await self.client.get_metadata(intent.source_id)

        explicit_sheet: Optional[str] = None
        cells: Optional[str] = None
        if intent.range:
            explicit_sheet, cells = _split_range(intent.range)

        sheet = self._resolve_sheet(metadata, explicit_sheet or intent.scope)
        prefix = quote_sheet_name(sheet.title)

        if cells:
            span = f"{prefix}!{cells}"
        else:
            # header + offset + limit rows; never the whole sheet
            span = f"{prefix}!A1:{self.max_column}{intent.offset + intent.limit + 1}"

        values = await self.client.get_values(intent.source_id, span)
        header: List[Any] = values[0] if values else []
        body = values[1:]

        fields = unique_field_names(header)
        width = max([len(fields)] + [len(row) for row in body])
        if width > len(fields):
            fields = unique_field_names(list(header) + [""] * (width - len(header)))

        remaining = body[intent.offset:]
        total_matched = len(remaining)
        records = [_to_record(fields, row) for row in remaining[: intent.limit]]

        filters: Dict[str, Any] = {"range": span}
        if intent.offset:
            filters["offset"] = intent.offset
        if intent.requested_fields:
            filters["requestedFields"] = list(intent.requested_fields)

        projected = resolve_fields(intent.requested_fields, fields)
        if projected:
            fields = projected
            records = [{name: record[name] for name in projected} for record in records]

        return NormalizedDataset(
            source_id=intent.source_id,
            scope=sheet.title,
            range=span,
            fields=fields,
            records=records,
            total_matched=total_matched,
            kind="rows",
            title=metadata.title,
            limit=intent.limit,
            offset=intent.offset,
            filters=filters,
        )

    async def info(self, intent: QueryIntent) -> NormalizedDataset:
        """List the tabs of the spreadsheet named by ``intent.source_id``."""
        metadata = await self.client.get_metadata(intent.source_id)
        records = [
            {
                "name": sheet.title,
                "sheetId": sheet.sheet_id,
                "rowCount": sheet.row_count,
                "columnCount": sheet.column_count,
            }
            for sheet in metadata.sheets
        ]
        return NormalizedDataset(
            source_id=intent.source_id,
            scope=None,
            range=None,
            fields=list(SHEET_INFO_FIELDS),
            records=records,
            total_matched=len(records),
            kind="sheets",
            title=metadata.title,
        )
