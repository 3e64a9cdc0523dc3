"""Exact integer-cents money arithmetic.

Money is always held as an ``int`` number of cents. Parsing goes through
``Decimal`` so no binary floating point value is ever involved.
"""

import re
from decimal import Decimal, InvalidOperation, localcontext

from .exceptions import InvalidAmountError

# Custom splits come from two independently rounded fields
SPLIT_TOLERANCE_CENTS = 2

_AMOUNT_PATTERN = re.compile(r"^\$?(\d{1,3}(,\d{3})+|\d+)?(\.\d{1,2})?$", re.ASCII)


def to_cents(text: str, field: str = "amount") -> int:
    """
    Parse a decimal money string into integer cents.

    Accepts a non-negative decimal with at most two fractional digits.
    Surrounding whitespace, a leading "$" and thousands separators are
    tolerated ("$1,234.5" -> 123450).

    Args:
        text: The user-entered amount
        field: Field name reported on failure

    Returns:
        Amount in cents

    Raises:
        InvalidAmountError: If the text is not a well-formed amount
    """
    if not isinstance(text, str):
        raise InvalidAmountError(text, field=field)

    cleaned = text.strip()
    match = _AMOUNT_PATTERN.match(cleaned)
    if not cleaned or match is None or not (match.group(1) or match.group(3)):
        raise InvalidAmountError(
            text,
            f"Invalid amount {text!r}: expected a non-negative number "
            f"with at most two decimal places",
            field=field,
        )

    try:
        value = Decimal(cleaned.lstrip("$").replace(",", ""))
    except InvalidOperation as e:
        raise InvalidAmountError(text, field=field) from e

    # Wide enough that shifting the point never rounds
    with localcontext() as ctx:
        ctx.prec = len(value.as_tuple().digits) + 2
        return int(value.scaleb(2))


def split_even(total_cents: int) -> tuple[int, int]:
    """
    Split a total in two halves that add up exactly.

    When the total is odd, party A carries the extra cent.

    Returns:
        Tuple of (party_a_cents, party_b_cents)
    """
    if total_cents < 0:
        raise InvalidAmountError(total_cents, "Cannot split a negative amount")

    party_b = total_cents // 2
    return total_cents - party_b, party_b


def shares_reconcile(party_a_cents: int, party_b_cents: int, total_cents: int) -> bool:
    """Check that two shares add up to the total within the split tolerance."""
    return abs(party_a_cents + party_b_cents - total_cents) <= SPLIT_TOLERANCE_CENTS


def format_cents(cents: int) -> str:
    """Format cents for display, e.g. 123456 -> "$1,234.56", -100 -> "-$1.00"."""
    sign = "-" if cents < 0 else ""
    dollars, remainder = divmod(abs(cents), 100)
    return f"{sign}${dollars:,}.{remainder:02d}"


def cents_to_decimal_text(cents: int) -> str:
    """Render cents as plain decimal text that ``to_cents`` parses back."""
    sign = "-" if cents < 0 else ""
    dollars, remainder = divmod(abs(cents), 100)
    return f"{sign}{dollars}.{remainder:02d}"
