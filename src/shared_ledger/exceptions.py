"""Custom exceptions for Shared Ledger."""


class SharedLedgerError(Exception):
    """Base exception for all Shared Ledger errors."""

    pass


class ConfigurationError(SharedLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class EntryValidationError(SharedLedgerError):
    """Raised when a draft entry cannot become a ledger entry."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidAmountError(EntryValidationError):
    """Raised when a money value is malformed, negative or has sub-cent digits."""

    def __init__(self, value: object, message: str | None = None, field: str = "amount"):
        self.value = value
        super().__init__(message or f"Invalid amount: {value!r}", field=field)


class SplitMismatchError(EntryValidationError):
    """Raised when custom shares don't add up to the total within tolerance."""

    def __init__(self, total_cents: int, party_a_cents: int, party_b_cents: int):
        self.total_cents = total_cents
        self.party_a_cents = party_a_cents
        self.party_b_cents = party_b_cents
        self.difference_cents = party_a_cents + party_b_cents - total_cents
        super().__init__(
            f"Split amounts should add up to total: "
            f"{party_a_cents} + {party_b_cents} != {total_cents} "
            f"(off by {abs(self.difference_cents)} cents)",
            field="split",
        )


class EntryNotFoundError(SharedLedgerError):
    """Raised when an operation references an entry that is no longer in the store."""

    def __init__(self, entry_id: str, message: str | None = None):
        self.entry_id = entry_id
        super().__init__(message or f"Entry {entry_id} not found")


class SettledEntryError(SharedLedgerError):
    """Raised when editing a settled entry while settled edits are disabled."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} is already settled and cannot be edited")


class LedgerStoreError(SharedLedgerError):
    """Raised when the ledger store backend fails (network, permission, SQL)."""

    pass
