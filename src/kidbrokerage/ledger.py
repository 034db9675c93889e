"""Balance and position accounting over an account's stored transactions.

Every function here is pure: read paths recompute balances and positions
from the full transaction list on each request instead of keeping running
totals in storage.
"""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from .exceptions import PriceUnavailableError
from .models import MarketFill, Position, TickerEvent, Transaction, Valuation
from .money import to_cents


def cash_balance(transactions: Iterable[Transaction]) -> int:
    """Return the signed sum of all transaction amounts in cents.

    Balances are not clamped and may go negative.
    """

    return sum((transaction.signed_amount_cents for transaction in transactions), 0)


def reconstruct_position(transactions: Iterable[Transaction]) -> Position:
    """Accumulate shares and cost basis across every transaction.

    Totals run across ticker changes; a new ticker does not reset them.
    """

    total_shares = 0.0
    cost_basis_cents = 0
    for transaction in transactions:
        total_shares += transaction.signed_shares
        cost_basis_cents += transaction.signed_amount_cents
    return Position(total_shares=total_shares, cost_basis_cents=cost_basis_cents)


def mark_to_market(position: Position, price: float) -> Valuation:
    """Value ``position`` at ``price`` per share."""

    market_value_cents = to_cents(position.total_shares * price)
    gain_loss_cents = market_value_cents - position.cost_basis_cents
    if position.cost_basis_cents == 0:
        gain_loss_percent = 0.0
    else:
        gain_loss_percent = gain_loss_cents / abs(position.cost_basis_cents) * 100
    return Valuation(
        market_value_cents=market_value_cents,
        gain_loss_cents=gain_loss_cents,
        gain_loss_percent=gain_loss_percent,
    )


def shares_for(amount_cents: int, price: float) -> float:
    """Return the number of shares ``amount_cents`` buys at ``price``."""

    if not price or price <= 0:
        raise PriceUnavailableError(f"Cannot compute shares at a price of {price!r}.")
    return (amount_cents / 100) / price


def market_fill(amount_cents: int, price: float) -> MarketFill:
    return MarketFill(shares=shares_for(amount_cents, price), price=float(price))


def _ticker_sort_key(event: TickerEvent):
    return (event.effective_date, event.created_at)


def current_ticker(events: Iterable[TickerEvent]) -> Optional[TickerEvent]:
    """Return the event with the latest effective date, or ``None``.

    Events sharing an effective date resolve to the most recently created one.
    """

    return max(events, key=_ticker_sort_key, default=None)


def ticker_history(events: Iterable[TickerEvent]) -> Tuple[TickerEvent, ...]:
    return tuple(sorted(events, key=_ticker_sort_key, reverse=True))


def display_order(transactions: Iterable[Transaction]) -> Tuple[Transaction, ...]:
    """Sort newest effective date first; same-day entries newest-created first."""

    return tuple(
        sorted(
            transactions,
            key=lambda transaction: (transaction.occurred_on, transaction.created_at),
            reverse=True,
        )
    )


__all__ = [
    "cash_balance",
    "current_ticker",
    "display_order",
    "mark_to_market",
    "market_fill",
    "reconstruct_position",
    "shares_for",
    "ticker_history",
]
