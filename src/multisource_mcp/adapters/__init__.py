# Multi-Source MCP Server
# File: adapters/__init__.py
# Version: v1

"""Source adapters: upstream data to :class:`NormalizedDataset`."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Tuple

from ..models import Action
from .invoice import InvoiceAdapter
from .tabular import TabularAdapter

# action -> (service attribute, adapter method); every action has exactly one route
ACTION_ROUTES: Mapping[Action, Tuple[str, str]] = MappingProxyType(
    {
        Action.FETCH_ROWS: ("tabular", "fetch"),
        Action.FETCH_RANGE: ("tabular", "fetch"),
        Action.FETCH_INFO: ("tabular", "info"),
        Action.SEARCH_RECORDS: ("invoice", "search"),
    }
)

__all__ = ["ACTION_ROUTES", "InvoiceAdapter", "TabularAdapter"]
