# Multi-Source MCP Server
# File: tools/sheets.py
# Version: v1

"""Spreadsheet tools: free-text row/range queries and tab listings."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..dispatcher import Services, ToolDescriptor, input_schema_for
from ..formatter import format_response
from ..models import Action

ResponseFormat = Literal["verbal", "structured", "both"]

RESPONSE_FORMAT_HELP = (
    "Format of response - verbal for conversational output, structured for raw "
    "data, both for complete response"
)


class SheetsQueryArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str = Field(
        ...,
        min_length=1,
        description=(
            'Natural language query, e.g. "Get first 5 rows from the Sales sheet" '
            'or "show columns name, email from the Employees tab".'
        ),
    )
    spreadsheetId: Optional[str] = Field(
        None, description="Google Sheets spreadsheet ID (defaults to DEFAULT_SPREADSHEET_ID)"
    )
    sheetName: Optional[str] = Field(
        None, description="Sheet/tab to read when the query does not name one"
    )
    responseFormat: ResponseFormat = Field("both", description=RESPONSE_FORMAT_HELP)


class SheetInfoArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    spreadsheetId: Optional[str] = Field(
        None, description="Google Sheets spreadsheet ID (defaults to DEFAULT_SPREADSHEET_ID)"
    )
    responseFormat: ResponseFormat = Field("both", description=RESPONSE_FORMAT_HELP)


async def query_google_sheets(services: Services, args: SheetsQueryArgs) -> Dict[str, Any]:
    """Interpret ``args.query`` and run it.

    An "invoice" keyword routes the query to the invoice ledger instead of
    the spreadsheet.
    """
    intent = services.interpreter.interpret(
        args.query,
        {"source_id": args.spreadsheetId, "scope": args.sheetName},
    )
    dataset = await services.execute(intent)
    result = format_response(dataset, args.responseFormat, args.query)
    result["meta"] = {"tool": "query_google_sheets", "intent": intent.to_dict()}
    return result


async def get_sheet_info(services: Services, args: SheetInfoArgs) -> Dict[str, Any]:
    intent = services.interpreter.interpret(
        "",
        {"source_id": args.spreadsheetId, "action": Action.FETCH_INFO},
    )
    dataset = await services.execute(intent)
    result = format_response(dataset, args.responseFormat)
    result["meta"] = {"tool": "get_sheet_info", "intent": intent.to_dict()}
    return result


def get_tools() -> List[ToolDescriptor]:
    return [
        ToolDescriptor(
            name="query_google_sheets",
            description=(
                "Query Google Sheets data using natural language. Reads rows, cell "
                "ranges or sheet details and can narrow results to named columns."
            ),
            input_schema=input_schema_for(SheetsQueryArgs),
            args_model=SheetsQueryArgs,
            handler=query_google_sheets,
        ),
        ToolDescriptor(
            name="get_sheet_info",
            description=(
                "Get basic information about a Google Spreadsheet including sheet "
                "names and properties."
            ),
            input_schema=input_schema_for(SheetInfoArgs),
            args_model=SheetInfoArgs,
            handler=get_sheet_info,
        ),
    ]
