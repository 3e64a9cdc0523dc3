"""Ledger store contract."""

from abc import ABC, abstractmethod

from ..models import EntryPatch, LedgerSnapshot, NewLedgerEntry


class LedgerStore(ABC):
    """
    Durable record keeper for ledger entries.

    Snapshots are ordered by (expense_date desc, created_at desc). Adapters
    own timeouts and retries and report backend failures as
    LedgerStoreError.
    """

    @abstractmethod
    def fetch_snapshot(self) -> LedgerSnapshot:
        """Fetch every entry as an immutable snapshot."""

    @abstractmethod
    def insert(self, entry: NewLedgerEntry) -> str:
        """
        Insert a validated entry.

        Returns:
            The store-assigned entry id
        """

    @abstractmethod
    def update(self, entry_id: str, patch: EntryPatch) -> None:
        """
        Apply a patch to an entry.

        Raises:
            EntryNotFoundError: If the entry doesn't exist
        """

    @abstractmethod
    def delete(self, entry_id: str) -> None:
        """Delete an entry. Deleting a missing entry is not an error."""

    def close(self):
        """Release backend resources."""

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
