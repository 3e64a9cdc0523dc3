"""Service layer that composes the ledger store and the pure engine.

Every operation fetches a fresh snapshot from the store; nothing is cached
between calls, so a stale view is always an explicit input, never hidden
state.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from .exceptions import EntryNotFoundError, LedgerStoreError, SettledEntryError
from .models import (
    EntryDraft,
    EntryPatch,
    LedgerEntry,
    LedgerSnapshot,
    NetBalance,
    SettlementResult,
)
from .notifier import ChangeNotifier
from .query import EntryFilter, SortDirection, SortKey, filter_entries, sort_entries
from .reconciler import net_balance, settle, settle_many, settlement_patch, unsettled_ids
from .store import LedgerStore
from .validation import validate

logger = logging.getLogger(__name__)


class LedgerService:
    """Records, edits and settles shared expenses."""

    def __init__(
        self,
        store: LedgerStore,
        notifier: ChangeNotifier | None = None,
        allow_settled_edits: bool = False,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the ledger service.

        Args:
            store: The ledger store
            notifier: Signalled after every successful mutation
            allow_settled_edits: Whether settled entries may still be edited
            clock: Source of settlement timestamps (defaults to UTC now)
        """
        self.store = store
        self.notifier = notifier
        self.allow_settled_edits = allow_settled_edits
        self.clock = clock or (lambda: datetime.now(UTC))

    def _changed(self) -> None:
        if self.notifier is not None:
            self.notifier.notify()

    def _require(self, snapshot: LedgerSnapshot, entry_id: str) -> LedgerEntry:
        entry = snapshot.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    def snapshot(self) -> LedgerSnapshot:
        """Fetch a fresh snapshot from the store."""
        return self.store.fetch_snapshot()

    # ========================================================================
    # Entries
    # ========================================================================

    def add_entry(self, draft: EntryDraft) -> str:
        """
        Validate a draft and record it.

        Returns:
            The new entry's id
        """
        entry = validate(draft)
        entry_id = self.store.insert(entry)

        logger.info(
            f"Added entry {entry_id}: {entry.description} "
            f"({entry.amount_cents} cents, paid by {entry.paid_by.value})"
        )
        self._changed()
        return entry_id

    def edit_entry(self, entry_id: str, draft: EntryDraft) -> None:
        """
        Replace an entry's editable fields with a validated draft.

        The entry's id, creator and creation time are never touched.

        Raises:
            EntryNotFoundError: If the entry doesn't exist
            SettledEntryError: If the entry is settled and settled edits are off
        """
        entry = validate(draft)
        current = self._require(self.snapshot(), entry_id)
        if current.settled and not self.allow_settled_edits:
            raise SettledEntryError(entry_id)

        self.store.update(entry_id, EntryPatch.from_entry(entry))

        logger.info(f"Edited entry {entry_id}")
        self._changed()

    def delete_entry(self, entry_id: str) -> None:
        """Delete an entry."""
        self.store.delete(entry_id)
        self._changed()

    # ========================================================================
    # Settlement
    # ========================================================================

    def settle_entry(self, entry_id: str) -> LedgerEntry:
        """
        Settle one entry. Settling a settled entry is a harmless no-op.

        Raises:
            EntryNotFoundError: If the entry doesn't exist
        """
        entry = self._require(self.snapshot(), entry_id)
        settled = settle(entry, self.clock())

        if settled is not entry:
            self.store.update(entry_id, settlement_patch(settled))
            logger.info(f"Settled entry {entry_id}")
            self._changed()
        else:
            logger.debug(f"Entry {entry_id} already settled")

        return settled

    def settle_selected(self, entry_ids: Iterable[str]) -> SettlementResult:
        """
        Settle a batch of entries, best effort.

        Each entry is an independent update. Ids missing from the snapshot or
        deleted before the write are reported as skipped; store failures are
        reported per id as failed. Nothing is rolled back.

        Returns:
            What was settled, skipped and failed
        """
        planned = settle_many(entry_ids, self.snapshot(), self.clock())
        result = SettlementResult(skipped=list(planned.skipped))

        for entry in planned.settled:
            try:
                self.store.update(entry.id, settlement_patch(entry))
            except EntryNotFoundError:
                result.skipped.append(entry.id)
                continue
            except LedgerStoreError as e:
                logger.warning(f"Failed to settle entry {entry.id}: {e}")
                result.failed[entry.id] = str(e)
                continue
            result.settled.append(entry)

        logger.info(
            f"Batch settlement: {len(result.settled)} settled, "
            f"{len(result.skipped)} skipped, {len(result.failed)} failed"
        )
        if result.settled:
            self._changed()
        return result

    def settle_all_unsettled(self) -> SettlementResult:
        """Settle every entry that is currently unsettled."""
        return self.settle_selected(unsettled_ids(self.snapshot()))

    # ========================================================================
    # Views
    # ========================================================================

    def balance(self) -> NetBalance:
        """Compute the current net balance."""
        return net_balance(self.snapshot())

    def view(
        self,
        criteria: EntryFilter | None = None,
        sort: tuple[SortKey, SortDirection] | None = None,
    ) -> list[LedgerEntry]:
        """
        Filter and sort a fresh snapshot.

        Without a sort the store's order (newest expense first) is kept.
        """
        entries = filter_entries(self.snapshot(), criteria)
        if sort is not None:
            entries = sort_entries(entries, *sort)
        return entries
