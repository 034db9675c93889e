"""Domain models used by the Kid Brokerage package."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from .exceptions import InvalidAmountError, InvalidTypeError


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


class AccountKind(str, Enum):
    """Enumerates the supported account kinds."""

    CHECKING = "checking"
    SAVINGS = "savings"
    MARKET = "market"

    @classmethod
    def parse(cls, value: str) -> "AccountKind":
        cleaned = (value or "").strip().lower()
        for kind in cls:
            if kind.value == cleaned:
                return kind
        raise InvalidTypeError("Invalid account type.")

    @property
    def label(self) -> str:
        return self.value.title()

    @property
    def is_market(self) -> bool:
        return self is AccountKind.MARKET


class TransactionDirection(str, Enum):
    """Enumerates the two directions cash can move through an account."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"

    @classmethod
    def parse(cls, value: str) -> "TransactionDirection":
        cleaned = (value or "").strip().lower()
        for direction in cls:
            if direction.value == cleaned:
                return direction
        raise InvalidTypeError("Invalid transaction type.")

    @property
    def label(self) -> str:
        return self.value.title()

    @property
    def sign(self) -> int:
        if self is TransactionDirection.DEPOSIT:
            return 1
        if self is TransactionDirection.WITHDRAWAL:
            return -1
        raise InvalidTypeError(f"Unhandled transaction direction: {self!r}")


@dataclass(frozen=True, slots=True)
class Kid:
    id: str
    name: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class Account:
    """A kid's checking, savings or market account."""

    id: str
    kid_id: str
    name: str
    kind: AccountKind
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class MarketFill:
    """Shares bought or sold by a market transaction and the unit price used."""

    shares: float
    price: float


@dataclass(frozen=True, slots=True)
class Transaction:
    """Represents a single immutable ledger entry for an :class:`Account`.

    ``fill`` is only populated for transactions on market accounts.
    """

    id: str
    account_id: str
    direction: TransactionDirection
    amount_cents: int
    occurred_on: date
    note: Optional[str] = None
    fill: Optional[MarketFill] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if int(self.amount_cents) <= 0:
            raise InvalidAmountError("Transaction amount must be greater than zero.")
        object.__setattr__(self, "amount_cents", int(self.amount_cents))

    @property
    def signed_amount_cents(self) -> int:
        return self.direction.sign * self.amount_cents

    @property
    def signed_shares(self) -> float:
        if self.fill is None:
            return 0.0
        return self.direction.sign * self.fill.shares


@dataclass(frozen=True, slots=True)
class TickerEvent:
    """Assignment of an instrument to a market account from ``effective_date`` on."""

    id: str
    account_id: str
    ticker: str
    effective_date: date
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        object.__setattr__(self, "ticker", self.ticker.strip().upper())


@dataclass(frozen=True, slots=True)
class Position:
    """Running share count and net cash invested for a market account."""

    total_shares: float
    cost_basis_cents: int


@dataclass(frozen=True, slots=True)
class Valuation:
    market_value_cents: int
    gain_loss_cents: int
    gain_loss_percent: float


@dataclass(frozen=True, slots=True)
class MarketSummary:
    """Mark-to-market block shown on a market account's detail view.

    ``price`` and ``valuation`` are ``None`` when the live quote could not be
    fetched; the position is always available.
    """

    ticker: str
    position: Position
    price: Optional[float] = None
    valuation: Optional[Valuation] = None

    @property
    def price_available(self) -> bool:
        return self.price is not None


@dataclass(frozen=True, slots=True)
class TransferResult:
    withdrawal: Transaction
    deposit: Transaction


@dataclass(frozen=True, slots=True)
class AccountOverview:
    account: Account
    balance_cents: int
    current_ticker: Optional[str] = None


@dataclass(frozen=True, slots=True)
class KidOverview:
    kid: Kid
    accounts: Tuple[AccountOverview, ...] = ()


@dataclass(frozen=True, slots=True)
class AccountDetail:
    """Everything the single-account view renders."""

    account: Account
    kid: Kid
    balance_cents: int
    transactions: Tuple[Transaction, ...] = ()
    ticker_events: Tuple[TickerEvent, ...] = ()
    market: Optional[MarketSummary] = None


__all__ = [
    "Account",
    "AccountDetail",
    "AccountKind",
    "AccountOverview",
    "Kid",
    "KidOverview",
    "MarketFill",
    "MarketSummary",
    "Position",
    "TickerEvent",
    "Transaction",
    "TransactionDirection",
    "TransferResult",
    "Valuation",
    "utcnow",
]
