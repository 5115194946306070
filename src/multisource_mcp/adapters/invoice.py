# Multi-Source MCP Server
# File: adapters/invoice.py
# Version: v1

"""Invoice-ledger adapter.

The store (REST client or fixture) pre-filters where it can; the date and
amount predicates are applied again here so the result never depends on how
faithfully a store implements them.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from ..errors import AuthError, UpstreamError
from ..models import NormalizedDataset, QueryIntent

logger = logging.getLogger(__name__)

INVOICE_FIELDS = [
    "id",
    "docNumber",
    "customer",
    "txnDate",
    "dueDate",
    "totalAmt",
    "balance",
    "item",
]


def _amount(value: Any) -> Decimal:
    try:
        return Decimal(str(value if value not in (None, "") else "0"))
    except InvalidOperation as exc:
        raise UpstreamError(f"Invoice amount {value!r} is not numeric.") from exc


def _txn_day(invoice: Dict[str, Any]) -> Optional[date]:
    raw = str(invoice.get("TxnDate") or "")[:10]
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def _first_item_name(invoice: Dict[str, Any]) -> Optional[str]:
    for line in invoice.get("Line") or []:
        detail = line.get("SalesItemLineDetail") if isinstance(line, dict) else None
        if detail:
            return (detail.get("ItemRef") or {}).get("name") or "Unknown Item"
    return None


def normalize_invoice(invoice: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a raw QuickBooks invoice into the normalised record shape."""
    customer = invoice.get("CustomerRef") or {}
    return {
        "id": invoice.get("Id"),
        "docNumber": invoice.get("DocNumber"),
        "customer": customer.get("name") or "Unknown Customer",
        "txnDate": invoice.get("TxnDate"),
        "dueDate": invoice.get("DueDate"),
        "totalAmt": float(_amount(invoice.get("TotalAmt"))),
        "balance": float(_amount(invoice.get("Balance"))),
        "item": _first_item_name(invoice),
    }


class InvoiceAdapter:
    """Searches invoices by date and amount.

    Args:
        store: object with ``async query_invoices(date_range, amount_range, limit)``.
        fetch_cap: most candidates requested from the store; ``totalMatched``
            counts matches within this window.
    """

    def __init__(self, store: Any, fetch_cap: int = 500) -> None:
        self.store = store
        self.fetch_cap = fetch_cap

    async def search(self, intent: QueryIntent) -> NormalizedDataset:
        if getattr(self.store, "authenticated", True) is False:
            raise AuthError(
                "QuickBooks is not connected. Set QUICKBOOKS_ACCESS_TOKEN and "
                "QUICKBOOKS_REALM_ID (or enable MULTISOURCE_MOCK_MODE)."
            )

        candidates = await self.store.query_invoices(
            date_range=intent.date_range,
            amount_range=intent.amount_range,
            limit=max(self.fetch_cap, intent.limit),
        )

        matched: List[Dict[str, Any]] = []
        for invoice in candidates:
            if intent.date_range:
                day = _txn_day(invoice)
                if day is None or not intent.date_range.contains(day):
                    continue
            if intent.amount_range and not intent.amount_range.contains(
                _amount(invoice.get("TotalAmt"))
            ):
                continue
            matched.append(invoice)

        logger.debug(
            "Invoice search matched %d of %d candidates", len(matched), len(candidates)
        )

        filters: Dict[str, Any] = {}
        if intent.date_range:
            filters["dateRange"] = intent.date_range.to_dict()
        if intent.amount_range:
            filters["amountRange"] = intent.amount_range.to_dict()

        return NormalizedDataset(
            source_id=intent.source_id,
            scope="invoices",
            range=None,
            fields=list(INVOICE_FIELDS),
            records=[normalize_invoice(inv) for inv in matched[: intent.limit]],
            total_matched=len(matched),
            kind="invoices",
            title="QuickBooks invoices",
            limit=intent.limit,
            filters=filters,
        )
