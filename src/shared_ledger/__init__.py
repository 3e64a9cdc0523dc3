"""Shared Ledger - Track shared expenses between two people and settle up."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .models import (
    Category,
    EntryDraft,
    EntryPatch,
    LedgerEntry,
    LedgerSnapshot,
    NetBalance,
    NewLedgerEntry,
    Party,
    SettlementResult,
    SplitMode,
)
from .money import format_cents, split_even, to_cents
from .query import (
    EntryFilter,
    SortDirection,
    SortKey,
    aggregate_by_category,
    aggregate_by_month,
    filter_entries,
    sort_entries,
)
from .reconciler import net_balance, settle, settle_many
from .service import LedgerService
from .validation import validate

__all__ = [
    "Settings",
    "load_settings",
    "Category",
    "EntryDraft",
    "EntryPatch",
    "LedgerEntry",
    "LedgerSnapshot",
    "NetBalance",
    "NewLedgerEntry",
    "Party",
    "SettlementResult",
    "SplitMode",
    "format_cents",
    "split_even",
    "to_cents",
    "EntryFilter",
    "SortDirection",
    "SortKey",
    "aggregate_by_category",
    "aggregate_by_month",
    "filter_entries",
    "sort_entries",
    "net_balance",
    "settle",
    "settle_many",
    "LedgerService",
    "validate",
]
