# Multi-Source MCP Server
# File: demo_mcp_query.py
# Version: v1
#
# Demo: send a few free-text queries through the dispatcher and print the
# spoken-style answers.
#
# Usage:
#
#   MULTISOURCE_MOCK_MODE=1 python demo_mcp_query.py
#   MULTISOURCE_MOCK_MODE=1 python demo_mcp_query.py "invoices over $1000 in February 2025"

import asyncio
import json
import sys
from typing import Any, Dict, List

from multisource_mcp.server import build_dispatcher

DEFAULT_QUERIES: List[Dict[str, Any]] = [
    {"name": "get_sheet_info", "arguments": {"responseFormat": "verbal"}},
    {
        "name": "query_google_sheets",
        "arguments": {"query": "Get first 3 rows from the Sales sheet", "responseFormat": "verbal"},
    },
    {
        "name": "query_google_sheets",
        "arguments": {"query": "show columns name, department from the Employees tab"},
    },
    {
        "name": "search_quickbooks_invoices",
        "arguments": {"query": "invoices between $500 and $2000 in January 2025", "responseFormat": "verbal"},
    },
]


async def main() -> None:
    dispatcher = build_dispatcher()

    calls = DEFAULT_QUERIES
    if len(sys.argv) > 1:
        calls = [
            {
                "name": "query_google_sheets",
                "arguments": {"query": " ".join(sys.argv[1:]), "responseFormat": "verbal"},
            }
        ]

    for request_id, call in enumerate(calls, start=1):
        print(f"\n>>> {call['name']} {call['arguments']}")
        response = await dispatcher.dispatch(
            {"method": "tools/call", "params": call, "id": request_id}
        )

        if "error" in response:
            print(f"Error {response['error']['code']}: {response['error']['message']}")
            continue

        result = response["result"]
        if "verbalResponse" in result:
            print(result["verbalResponse"])
        else:
            print(json.dumps(result.get("data"), indent=2))


if __name__ == "__main__":
    asyncio.run(main())
