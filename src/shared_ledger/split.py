"""Split policies: how an expense total is divided between the two parties.

A policy only answers "how much does each party owe for this expense". Who
paid is recorded separately on the entry and only matters to the reconciler.
"""

from abc import ABC, abstractmethod

from .exceptions import EntryValidationError, SplitMismatchError
from .models import SplitMode
from .money import shares_reconcile, split_even


class SplitPolicy(ABC):
    """Computes (party_a_owes_cents, party_b_owes_cents) for a total."""

    mode: SplitMode

    @abstractmethod
    def shares(self, total_cents: int) -> tuple[int, int]:
        """Return each party's share of the total."""


class EvenSplit(SplitPolicy):
    """50/50 split; an odd cent goes to party A."""

    mode = SplitMode.EVEN

    def shares(self, total_cents: int) -> tuple[int, int]:
        return split_even(total_cents)


class CustomSplit(SplitPolicy):
    """Caller-supplied shares, checked against the total.

    The shares may differ from the total by up to SPLIT_TOLERANCE_CENTS
    since they are entered as two separately rounded amounts.
    """

    mode = SplitMode.CUSTOM

    def __init__(self, party_a_cents: int, party_b_cents: int):
        if party_a_cents < 0 or party_b_cents < 0:
            raise EntryValidationError("Split amounts cannot be negative", field="split")
        self.party_a_cents = party_a_cents
        self.party_b_cents = party_b_cents

    def shares(self, total_cents: int) -> tuple[int, int]:
        if not shares_reconcile(self.party_a_cents, self.party_b_cents, total_cents):
            raise SplitMismatchError(total_cents, self.party_a_cents, self.party_b_cents)
        return self.party_a_cents, self.party_b_cents

    def __repr__(self) -> str:
        return f"CustomSplit({self.party_a_cents}, {self.party_b_cents})"


def policy_for(
    mode: SplitMode,
    party_a_cents: int | None = None,
    party_b_cents: int | None = None,
) -> SplitPolicy:
    """
    Build the split policy for a split mode.

    Args:
        mode: The split mode
        party_a_cents: Party A's share (custom mode only)
        party_b_cents: Party B's share (custom mode only)

    Returns:
        The matching policy

    Raises:
        EntryValidationError: If custom mode is missing a share
    """
    if mode is SplitMode.EVEN:
        return EvenSplit()

    if party_a_cents is None or party_b_cents is None:
        raise EntryValidationError(
            "Custom split requires both parties' shares", field="split"
        )
    return CustomSplit(party_a_cents, party_b_cents)
