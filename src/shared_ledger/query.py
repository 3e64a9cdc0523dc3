"""Filtering, sorting and aggregation over ledger entries.

Every function here is pure: inputs are never mutated and a new list is
always returned.
"""

import calendar
from collections.abc import Iterable
from datetime import date, timedelta
from enum import Enum

from pydantic import BaseModel, ConfigDict, field_validator

from .models import Category, CategoryTotal, LedgerEntry, MonthTotal

_CATEGORY_ORDER = {category: index for index, category in enumerate(Category)}


class SettlementState(str, Enum):
    """Settlement predicate for filtering."""

    ANY = "any"
    SETTLED = "settled"
    UNSETTLED = "unsettled"


class SortKey(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    CATEGORY = "category"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class DateRangePreset(str, Enum):
    """Shortcut date ranges offered by the list views."""

    ALL = "all"
    THIS_MONTH = "this-month"
    LAST_30_DAYS = "last-30"


# ============================================================================
# Filtering
# ============================================================================


class EntryFilter(BaseModel):
    """A set of independent predicates combined with AND.

    Each predicate left at its default matches everything. ``search`` holds
    one or more terms that must all appear in the description. The date
    range is inclusive, and a missing bound leaves that side open.
    ``match_none`` marks a contradictory combination (two different
    categories, settled and unsettled) that no entry can satisfy.
    """

    model_config = ConfigDict(frozen=True)

    search: tuple[str, ...] = ()
    category: Category | None = None
    settlement: SettlementState = SettlementState.ANY
    start: date | None = None
    end: date | None = None
    match_none: bool = False

    @field_validator("search", mode="before")
    @classmethod
    def normalize_search(cls, value):
        """Accept a single term; drop blank and repeated terms."""
        terms = (value,) if isinstance(value, str) else tuple(value or ())
        cleaned = [term.strip() for term in terms if term.strip()]
        return tuple(dict.fromkeys(cleaned))

    @property
    def is_match_any(self) -> bool:
        """True when no predicate is active."""
        return (
            not self.search
            and self.category is None
            and self.settlement is SettlementState.ANY
            and self.start is None
            and self.end is None
            and not self.match_none
        )

    def matches(self, entry: LedgerEntry) -> bool:
        """Check an entry against every active predicate."""
        if self.match_none:
            return False

        description = entry.description.casefold()
        if any(term.casefold() not in description for term in self.search):
            return False

        if self.category is not None and entry.category is not self.category:
            return False

        if self.settlement is SettlementState.SETTLED and not entry.settled:
            return False
        if self.settlement is SettlementState.UNSETTLED and entry.settled:
            return False

        if self.start is not None and entry.expense_date < self.start:
            return False
        if self.end is not None and entry.expense_date > self.end:
            return False

        return True

    def and_(self, other: "EntryFilter") -> "EntryFilter":
        """
        Combine two filters into one that matches only what both match.

        Search terms accumulate and date ranges intersect. Conflicting
        categories or settlement states give a filter that matches nothing.
        """
        category, category_conflict = _combine_option(self.category, other.category, None)
        settlement, settlement_conflict = _combine_option(
            self.settlement, other.settlement, SettlementState.ANY
        )
        return EntryFilter(
            search=self.search + other.search,
            category=category,
            settlement=settlement,
            start=max((d for d in (self.start, other.start) if d is not None), default=None),
            end=min((d for d in (self.end, other.end) if d is not None), default=None),
            match_none=(
                self.match_none
                or other.match_none
                or category_conflict
                or settlement_conflict
            ),
        )


def _combine_option(first, second, open_value):
    """Intersect two single-valued predicates; returns (value, conflict)."""
    if first == open_value or first == second:
        return second, False
    if second == open_value:
        return first, False
    return first, True


def filter_entries(
    entries: Iterable[LedgerEntry], criteria: EntryFilter | None = None
) -> list[LedgerEntry]:
    """
    Keep the entries matching every active predicate, in input order.

    Args:
        entries: Entries to filter (typically a snapshot)
        criteria: Predicates to apply; None matches everything

    Returns:
        The matching entries
    """
    if criteria is None or criteria.is_match_any:
        return list(entries)
    return [entry for entry in entries if criteria.matches(entry)]


def preset_range(
    preset: DateRangePreset, today: date | None = None
) -> tuple[date | None, date | None]:
    """
    Resolve a date range preset into (start, end) bounds.

    Args:
        preset: The preset to resolve
        today: Reference day (defaults to today)

    Returns:
        Inclusive (start, end); (None, None) for ALL
    """
    today = today or date.today()

    if preset is DateRangePreset.THIS_MONTH:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return today.replace(day=1), today.replace(day=last_day)
    if preset is DateRangePreset.LAST_30_DAYS:
        return today - timedelta(days=30), today
    return None, None


# ============================================================================
# Sorting
# ============================================================================


def _sort_value(entry: LedgerEntry, key: SortKey):
    if key is SortKey.DATE:
        return entry.expense_date
    if key is SortKey.AMOUNT:
        return entry.amount_cents
    return entry.category.value.casefold()


def sort_entries(
    entries: Iterable[LedgerEntry],
    key: SortKey = SortKey.DATE,
    direction: SortDirection = SortDirection.DESC,
) -> list[LedgerEntry]:
    """
    Sort entries by one key.

    The sort is stable in both directions: entries with equal keys keep
    their input order.

    Args:
        entries: Entries to sort
        key: Date, amount or category (alphabetical)
        direction: Ascending or descending

    Returns:
        A new sorted list
    """
    return sorted(
        entries,
        key=lambda entry: _sort_value(entry, key),
        reverse=direction is SortDirection.DESC,
    )


def parse_sort_option(option: str) -> tuple[SortKey, SortDirection]:
    """
    Parse a "key-direction" sort option such as "date-desc" or "amount-asc".

    Raises:
        ValueError: If the option is not a known key and direction
    """
    key_text, _, direction_text = option.strip().lower().partition("-")
    try:
        return SortKey(key_text), SortDirection(direction_text)
    except ValueError as e:
        raise ValueError(
            f"Unknown sort option {option!r}; expected one of "
            f"{', '.join(f'{k.value}-{d.value}' for k in SortKey for d in SortDirection)}"
        ) from e


# ============================================================================
# Aggregation
# ============================================================================


def aggregate_by_category(entries: Iterable[LedgerEntry]) -> list[CategoryTotal]:
    """
    Sum amounts per category.

    Only categories that appear in the input are listed. Largest total
    first; equal totals follow the categories' declaration order.
    """
    totals: dict[Category, int] = {}
    for entry in entries:
        totals[entry.category] = totals.get(entry.category, 0) + entry.amount_cents

    ordered = sorted(totals.items(), key=lambda item: (-item[1], _CATEGORY_ORDER[item[0]]))
    return [CategoryTotal(category=category, total_cents=total) for category, total in ordered]


def month_key(day: date) -> str:
    """Zero-padded "YYYY-MM" key; sorts chronologically as a string."""
    return f"{day.year:04d}-{day.month:02d}"


def aggregate_by_month(entries: Iterable[LedgerEntry]) -> list[MonthTotal]:
    """Sum amounts per expense month, oldest month first."""
    totals: dict[str, int] = {}
    for entry in entries:
        key = month_key(entry.expense_date)
        totals[key] = totals.get(key, 0) + entry.amount_cents

    return [
        MonthTotal(year_month=key, total_cents=totals[key]) for key in sorted(totals)
    ]


def total_cents(entries: Iterable[LedgerEntry]) -> int:
    """Sum of amounts across entries."""
    return sum(entry.amount_cents for entry in entries)
