"""Savings growth projections for a fixed weekly deposit."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from .exceptions import ValidationError
from .money import to_cents

WEEKS_PER_YEAR = 52
MAX_YEARS = 100


@dataclass(frozen=True, slots=True)
class SavingsProjection:
    weekly_deposit_cents: int
    annual_return_percent: float
    years: float
    weeks: int
    balance_cents: int
    invested_cents: int

    @property
    def growth_cents(self) -> int:
        return self.balance_cents - self.invested_cents


def project_weekly_savings(
    weekly_deposit_cents: int, annual_return_percent: float, years: float
) -> SavingsProjection:
    """Compound ``weekly_deposit_cents`` weekly for ``years`` at an annual rate.

    Each week the deposit is added first and then the weekly rate
    (``annual_return_percent / 100 / 52``) is applied to the whole balance.
    A partial final week counts as a full one, and ``invested_cents`` counts
    every deposit made, including that last one, so total deposits are always
    a whole number of weekly deposits.

    Raises :class:`ValidationError` when the inputs are out of range or the
    balance grows past what can be shown in cents.
    """

    if weekly_deposit_cents <= 0 or years <= 0:
        raise ValidationError("Please enter valid values.")
    if years > MAX_YEARS:
        raise ValidationError(f"Projections are limited to {MAX_YEARS} years.")
    weekly_rate = annual_return_percent / 100 / WEEKS_PER_YEAR
    weeks = math.ceil(years * WEEKS_PER_YEAR)
    deposit = weekly_deposit_cents / 100
    balance = 0.0
    for _ in range(weeks):
        balance = (balance + deposit) * (1 + weekly_rate)
    if not math.isfinite(balance):
        raise ValidationError("Please enter valid values.")
    try:
        balance_cents = to_cents(balance)
    except InvalidOperation:
        raise ValidationError("Please enter valid values.") from None
    return SavingsProjection(
        weekly_deposit_cents=weekly_deposit_cents,
        annual_return_percent=annual_return_percent,
        years=years,
        weeks=weeks,
        balance_cents=balance_cents,
        invested_cents=weekly_deposit_cents * weeks,
    )


def parse_number(text: str, label: str) -> float:
    """Parse a plain (possibly negative) decimal form value."""

    try:
        value = Decimal((text or "").strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{label} must be a number.") from None
    if not value.is_finite():
        raise ValidationError(f"{label} must be a number.")
    return float(value)


__all__ = ["MAX_YEARS", "SavingsProjection", "WEEKS_PER_YEAR", "parse_number", "project_weekly_savings"]
