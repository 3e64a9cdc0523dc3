"""Turn raw drafts into validated ledger entries.

Validation is pure: it never talks to the store, so it can run (and be
tested) without any persistence configured.
"""

from .exceptions import EntryValidationError, InvalidAmountError
from .models import EntryDraft, LedgerEntry, NewLedgerEntry, SplitMode
from .money import cents_to_decimal_text, to_cents
from .split import policy_for


def validate(draft: EntryDraft) -> NewLedgerEntry:
    """
    Validate a draft and compute its split.

    Checks run in the order a user would fix them: description, amount,
    payer, then split.

    Args:
        draft: The raw entry input

    Returns:
        A validated entry ready to be inserted

    Raises:
        EntryValidationError: If the description or payer is missing
        InvalidAmountError: If the amount is malformed or not positive, or a
            custom share is malformed
        SplitMismatchError: If custom shares don't add up to the amount
    """
    description = draft.description.strip()
    if not description:
        raise EntryValidationError("Description is required", field="description")

    amount_cents = to_cents(draft.amount)
    if amount_cents <= 0:
        raise InvalidAmountError(draft.amount, "Amount must be greater than zero")

    if draft.paid_by is None:
        raise EntryValidationError("Please select who paid", field="paid_by")

    party_a_cents = None
    party_b_cents = None
    if draft.split_mode is SplitMode.CUSTOM:
        if draft.party_a_share is not None:
            party_a_cents = to_cents(draft.party_a_share, field="party_a_share")
        if draft.party_b_share is not None:
            party_b_cents = to_cents(draft.party_b_share, field="party_b_share")

    policy = policy_for(draft.split_mode, party_a_cents, party_b_cents)
    party_a_owes, party_b_owes = policy.shares(amount_cents)

    return NewLedgerEntry(
        created_by=draft.created_by,
        paid_by=draft.paid_by,
        description=description,
        amount_cents=amount_cents,
        expense_date=draft.expense_date,
        category=draft.category,
        split_mode=draft.split_mode,
        party_a_owes_cents=party_a_owes,
        party_b_owes_cents=party_b_owes,
    )


def draft_from_entry(entry: LedgerEntry) -> EntryDraft:
    """Pre-fill a draft from a stored entry so it can be edited and re-validated."""
    return EntryDraft(
        description=entry.description,
        amount=cents_to_decimal_text(entry.amount_cents),
        paid_by=entry.paid_by,
        created_by=entry.created_by,
        expense_date=entry.expense_date,
        category=entry.category,
        split_mode=entry.split_mode,
        party_a_share=cents_to_decimal_text(entry.party_a_owes_cents),
        party_b_share=cents_to_decimal_text(entry.party_b_owes_cents),
    )
