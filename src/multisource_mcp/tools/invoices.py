# Multi-Source MCP Server
# File: tools/invoices.py
# Version: v1

"""QuickBooks invoice search tool."""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from ..dispatcher import Services, ToolDescriptor, input_schema_for
from ..formatter import format_response
from ..models import Action
from .sheets import RESPONSE_FORMAT_HELP, ResponseFormat


class InvoiceSearchArgs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    query: str = Field(
        ...,
        min_length=1,
        description=(
            'Natural language query describing what invoices to find (e.g., '
            '"invoices from January 2025 over $1000", "invoices over $500 this month")'
        ),
    )
    responseFormat: ResponseFormat = Field("both", description=RESPONSE_FORMAT_HELP)


async def search_quickbooks_invoices(
    services: Services, args: InvoiceSearchArgs
) -> Dict[str, Any]:
    # pinned: "show me last month" has no invoice keyword but is still a ledger query
    intent = services.interpreter.interpret(args.query, {"action": Action.SEARCH_RECORDS})
    dataset = await services.execute(intent)
    result = format_response(dataset, args.responseFormat, args.query)
    result["meta"] = {"tool": "search_quickbooks_invoices", "intent": intent.to_dict()}
    return result


def get_tools() -> List[ToolDescriptor]:
    return [
        ToolDescriptor(
            name="search_quickbooks_invoices",
            description=(
                "Search QuickBooks invoices using natural language. Supports filtering "
                "by date range and amount range."
            ),
            input_schema=input_schema_for(InvoiceSearchArgs),
            args_model=InvoiceSearchArgs,
            handler=search_quickbooks_invoices,
        )
    ]
