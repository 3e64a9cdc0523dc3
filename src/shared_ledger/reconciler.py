"""Core reconciliation logic: who owes whom, and settling entries."""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from .models import (
    EntryPatch,
    LedgerEntry,
    LedgerSnapshot,
    NetBalance,
    Party,
    SettlementResult,
)

logger = logging.getLogger(__name__)

# Nets below one cent are split residue, not debt
SETTLED_THRESHOLD_CENTS = 1


def outstanding_debt(entry: LedgerEntry) -> tuple[Party, int] | None:
    """
    Get what the non-payer still owes the payer for one entry.

    Args:
        entry: The ledger entry

    Returns:
        Tuple of (debtor, cents), or None if settled or nothing is owed
    """
    if entry.settled:
        return None

    debtor = entry.paid_by.other
    owed = entry.share_of(debtor)
    if owed <= 0:
        return None
    return debtor, owed


def net_balance(entries: Iterable[LedgerEntry]) -> NetBalance:
    """
    Offset all unsettled entries into a single debt between the parties.

    For each unsettled entry the non-payer's share is added to their debt
    towards the payer. The two running debts are then netted. The fold is a
    plain sum, so entry order never changes the result.

    Args:
        entries: Ledger entries (typically a snapshot)

    Returns:
        The net balance; settled when the net is under one cent
    """
    debts = {Party.A: 0, Party.B: 0}
    for entry in entries:
        debt = outstanding_debt(entry)
        if debt is not None:
            debtor, cents = debt
            debts[debtor] += cents

    net = debts[Party.A] - debts[Party.B]
    if abs(net) < SETTLED_THRESHOLD_CENTS:
        return NetBalance()

    owing = Party.A if net > 0 else Party.B
    return NetBalance(owing_party=owing, owed_party=owing.other, amount_cents=abs(net))


def settle(entry: LedgerEntry, now: datetime | None = None) -> LedgerEntry:
    """
    Mark an entry as settled.

    Settling is idempotent: an already-settled entry comes back unchanged,
    keeping its original settlement time, so a double submission is harmless.

    Args:
        entry: The entry to settle
        now: Settlement time (defaults to the current UTC time)

    Returns:
        The settled entry
    """
    if entry.settled:
        return entry
    return entry.model_copy(
        update={"settled": True, "settled_at": now or datetime.now(UTC)}
    )


def settlement_patch(entry: LedgerEntry) -> EntryPatch:
    """Build the store patch that records a settled entry."""
    return EntryPatch(settled=entry.settled, settled_at=entry.settled_at)


def settle_many(
    entry_ids: Iterable[str],
    snapshot: LedgerSnapshot,
    now: datetime | None = None,
) -> SettlementResult:
    """
    Settle every referenced entry present in a snapshot.

    Ids that are not in the snapshot (deleted, or never existed) are skipped
    instead of failing the batch. Repeated ids are settled once.

    Args:
        entry_ids: Ids selected for settlement
        snapshot: The snapshot the selection was made from
        now: Settlement time shared by the whole batch

    Returns:
        Settled entries and skipped ids
    """
    now = now or datetime.now(UTC)
    result = SettlementResult()
    seen: set[str] = set()

    for entry_id in entry_ids:
        if entry_id in seen:
            continue
        seen.add(entry_id)

        entry = snapshot.get(entry_id)
        if entry is None:
            result.skipped.append(entry_id)
            continue
        result.settled.append(settle(entry, now))

    if result.skipped:
        logger.info(
            f"Skipped {len(result.skipped)} id(s) not in snapshot: "
            f"{', '.join(result.skipped)}"
        )
    logger.debug(f"Settled {len(result.settled)} entries in batch")

    return result


def unsettled_ids(entries: Iterable[LedgerEntry]) -> list[str]:
    """Get the ids of every unsettled entry, in input order."""
    return [entry.id for entry in entries if not entry.settled]
