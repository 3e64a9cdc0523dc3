"""Shared fixtures for Shared Ledger tests."""

from datetime import UTC, date, datetime
from itertools import count

import pytest

from shared_ledger.models import Category, LedgerEntry, Party, SplitMode
from shared_ledger.money import split_even
from shared_ledger.service import LedgerService
from shared_ledger.store import SqliteLedgerStore


@pytest.fixture
def make_entry():
    """Factory for ledger entries with sensible defaults."""
    ids = count(1)

    def _make_entry(
        amount_cents: int = 10000,
        paid_by: Party = Party.A,
        shares: tuple[int, int] | None = None,
        description: str | None = None,
        category: Category = Category.MISC,
        expense_date: date = date(2026, 1, 15),
        settled: bool = False,
        entry_id: str | None = None,
    ) -> LedgerEntry:
        n = next(ids)
        party_a, party_b = shares if shares is not None else split_even(amount_cents)
        return LedgerEntry(
            id=entry_id or f"e{n}",
            created_by=paid_by,
            paid_by=paid_by,
            description=description or f"Test expense {n}",
            amount_cents=amount_cents,
            expense_date=expense_date,
            created_at=datetime(2026, 1, 15, 12, 0, n, tzinfo=UTC),
            category=category,
            split_mode=SplitMode.EVEN if shares is None else SplitMode.CUSTOM,
            party_a_owes_cents=party_a,
            party_b_owes_cents=party_b,
            settled=settled,
            settled_at=datetime(2026, 2, 1, tzinfo=UTC) if settled else None,
        )

    return _make_entry


@pytest.fixture
def store(tmp_path):
    """Create a temporary SQLite ledger store."""
    db = SqliteLedgerStore(tmp_path / "ledger.db")
    yield db
    db.close()


@pytest.fixture
def fixed_now():
    return datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


@pytest.fixture
def service(store, fixed_now):
    """Create a LedgerService over the temporary store with a fixed clock."""
    return LedgerService(store, clock=lambda: fixed_now)
