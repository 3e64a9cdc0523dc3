"""Pydantic domain models for Shared Ledger."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .money import SPLIT_TOLERANCE_CENTS, shares_reconcile

# ============================================================================
# Enums
# ============================================================================


class Party(str, Enum):
    """One of the two fixed participants in the ledger."""

    A = "a"
    B = "b"

    @property
    def other(self) -> "Party":
        """The counterparty."""
        return Party.B if self is Party.A else Party.A


class Category(str, Enum):
    """Expense categories, in their fixed declaration order."""

    FOOD = "Food"
    GAS_ELECTRIC = "Gas & Electric"
    WIFI = "WiFi"
    HOUSEHOLD = "Household"
    FUN = "Fun"
    MISC = "Misc"


class SplitMode(str, Enum):
    """How an expense is divided between the two parties."""

    EVEN = "even"
    CUSTOM = "custom"


# ============================================================================
# Ledger Entry Models
# ============================================================================


class EntryDraft(BaseModel):
    """Raw user input for a new or edited entry, before validation."""

    description: str = ""
    amount: str = ""  # decimal text, e.g. "42.50"
    paid_by: Party | None = None
    created_by: Party
    expense_date: date = Field(default_factory=date.today)
    category: Category = Category.MISC
    split_mode: SplitMode = SplitMode.EVEN
    party_a_share: str | None = None  # custom split only
    party_b_share: str | None = None  # custom split only


class NewLedgerEntry(BaseModel):
    """A validated entry that has not been stored yet."""

    model_config = ConfigDict(frozen=True)

    created_by: Party
    paid_by: Party
    description: str = Field(min_length=1)
    amount_cents: int = Field(gt=0)
    expense_date: date
    category: Category
    split_mode: SplitMode
    party_a_owes_cents: int = Field(ge=0)
    party_b_owes_cents: int = Field(ge=0)

    @model_validator(mode="after")
    def check_shares(self):
        if not shares_reconcile(
            self.party_a_owes_cents, self.party_b_owes_cents, self.amount_cents
        ):
            raise ValueError(
                f"Shares {self.party_a_owes_cents} + {self.party_b_owes_cents} "
                f"differ from amount {self.amount_cents} by more than "
                f"{SPLIT_TOLERANCE_CENTS} cents"
            )
        return self

    def share_of(self, party: Party) -> int:
        """Get the amount the given party owes for this expense."""
        return self.party_a_owes_cents if party is Party.A else self.party_b_owes_cents


class LedgerEntry(NewLedgerEntry):
    """A stored shared expense.

    ``id``, ``created_by`` and ``created_at`` are assigned once and never
    change. ``settled_at`` is present exactly when ``settled`` is true.
    """

    id: str
    created_at: datetime
    settled: bool = False
    settled_at: datetime | None = None

    @model_validator(mode="after")
    def check_settlement(self):
        if self.settled != (self.settled_at is not None):
            raise ValueError("settled_at must be set if and only if settled is true")
        return self


class EntryPatch(BaseModel):
    """A partial update to an entry.

    Immutable fields (id, created_by, created_at) are not part of the patch
    and are rejected if passed.
    """

    model_config = ConfigDict(extra="forbid")

    paid_by: Party | None = None
    description: str | None = None
    amount_cents: int | None = None
    expense_date: date | None = None
    category: Category | None = None
    split_mode: SplitMode | None = None
    party_a_owes_cents: int | None = None
    party_b_owes_cents: int | None = None
    settled: bool | None = None
    settled_at: datetime | None = None

    @classmethod
    def from_entry(cls, entry: NewLedgerEntry) -> "EntryPatch":
        """Build a patch replacing every editable field with the entry's values."""
        return cls(
            paid_by=entry.paid_by,
            description=entry.description,
            amount_cents=entry.amount_cents,
            expense_date=entry.expense_date,
            category=entry.category,
            split_mode=entry.split_mode,
            party_a_owes_cents=entry.party_a_owes_cents,
            party_b_owes_cents=entry.party_b_owes_cents,
        )

    def changes(self) -> dict:
        """Get only the fields explicitly set on this patch, JSON-ready."""
        return self.model_dump(mode="json", exclude_unset=True)


@dataclass(frozen=True)
class LedgerSnapshot:
    """An immutable, ordered view of every ledger entry at one fetch instant."""

    entries: tuple[LedgerEntry, ...] = ()
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, entry_id: str) -> LedgerEntry | None:
        """Look up an entry by id."""
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def ids(self) -> list[str]:
        """Get entry ids in snapshot order."""
        return [entry.id for entry in self.entries]


# ============================================================================
# Result Models
# ============================================================================


class NetBalance(BaseModel):
    """Outstanding debt between the two parties after offsetting."""

    model_config = ConfigDict(frozen=True)

    owing_party: Party | None = None
    owed_party: Party | None = None
    amount_cents: int = Field(default=0, ge=0)

    @property
    def is_settled(self) -> bool:
        """True when nobody owes anything."""
        return self.owing_party is None


class SettlementResult(BaseModel):
    """Outcome of a batch settlement.

    Batches are best effort: ids missing from the snapshot (or deleted before
    the write) are reported as skipped, store failures as failed.
    """

    settled: list[LedgerEntry] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)  # entry id -> error

    @property
    def settled_ids(self) -> list[str]:
        return [entry.id for entry in self.settled]

    @property
    def is_complete(self) -> bool:
        """True when every requested id was settled."""
        return not self.skipped and not self.failed


class CategoryTotal(BaseModel):
    """Spending total for one category."""

    category: Category
    total_cents: int


class MonthTotal(BaseModel):
    """Spending total for one calendar month."""

    year_month: str  # "YYYY-MM"
    total_cents: int
