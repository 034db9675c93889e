"""Utilities for working with monetary values in Kid Brokerage."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

from .exceptions import InvalidAmountError

CENT = Decimal("0.01")
WHOLE = Decimal("1")
# Largest amount an INTEGER column can hold.
MAX_AMOUNT_CENTS = 2**63 - 1

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike) -> Decimal:
    """Convert ``value`` to a :class:`~decimal.Decimal` without rounding."""

    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        return Decimal(value)
    raise TypeError(f"Unsupported amount type: {type(value)!r}")


def to_cents(dollars: AmountLike) -> int:
    """Round a dollar amount to whole cents, ties away from zero."""

    return int((to_decimal(dollars) * 100).quantize(WHOLE, rounding=ROUND_HALF_UP))


def parse_amount(text: str) -> int:
    """Parse user input such as ``"12.50"`` or ``"$1,200"`` into positive cents.

    Raises :class:`~kidbrokerage.exceptions.InvalidAmountError` when the input
    is not a finite number, does not round to at least one cent, or exceeds
    :data:`MAX_AMOUNT_CENTS`.
    """

    cleaned = (text or "").strip().replace(",", "")
    if cleaned.startswith("$"):
        cleaned = cleaned[1:].strip()
    try:
        value = Decimal(cleaned)
        if not value.is_finite() or value <= 0:
            raise InvalidAmountError("Please enter a valid amount greater than 0.")
        cents = to_cents(value)
    except (InvalidOperation, ValueError):
        raise InvalidAmountError("Please enter a valid amount greater than 0.") from None
    if cents <= 0:
        raise InvalidAmountError("Please enter a valid amount greater than 0.")
    if cents > MAX_AMOUNT_CENTS:
        raise InvalidAmountError(f"Amount must be at most {format_amount(MAX_AMOUNT_CENTS)}.")
    return cents


def _split_cents(cents: int) -> tuple[str, int, int]:
    value = int(cents)
    dollars, remainder = divmod(abs(value), 100)
    return ("-" if value < 0 else ""), dollars, remainder


def format_amount(cents: int) -> str:
    """Return ``cents`` as a signed currency string (e.g. ``-$1,234.56``)."""

    sign, dollars, remainder = _split_cents(cents)
    return f"{sign}${dollars:,}.{remainder:02d}"


def format_amount_numeric(cents: int) -> str:
    """Return ``cents`` as a plain decimal string suitable for form values."""

    sign, dollars, remainder = _split_cents(cents)
    return f"{sign}{dollars}.{remainder:02d}"


__all__ = [
    "AmountLike",
    "CENT",
    "MAX_AMOUNT_CENTS",
    "format_amount",
    "format_amount_numeric",
    "parse_amount",
    "to_cents",
    "to_decimal",
]
