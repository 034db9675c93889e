"""High level service for coordinating kids, accounts and their ledgers."""

from __future__ import annotations

from datetime import date
from typing import Callable, Dict, Optional, Tuple, Union
from uuid import uuid4

from . import ledger
from .exceptions import (
    AccountNotFoundError,
    InvalidDateError,
    InvalidTypeError,
    KidNotFoundError,
    MissingTickerError,
    NotMarketAccountError,
    PriceUnavailableError,
    RequiredFieldError,
    SameAccountError,
    ValidationError,
)
from .models import (
    Account,
    AccountDetail,
    AccountKind,
    AccountOverview,
    Kid,
    KidOverview,
    MarketFill,
    MarketSummary,
    TickerEvent,
    Transaction,
    TransactionDirection,
    TransferResult,
)
from .money import parse_amount
from .ops import StructuredLogger
from .pricing import PriceOracle, normalize_ticker
from .store import RecordStore

DateLike = Union[date, str]

TRANSFER_NOTE_PREFIX = "Transfer:"
MAX_TICKER_LENGTH = 10


def _new_id() -> str:
    return uuid4().hex


def must(value: Optional[str], label: str) -> str:
    """Return ``value`` stripped, raising when it is blank."""

    text = (value or "").strip()
    if not text:
        raise RequiredFieldError(f"{label} is required.")
    return text


def parse_date(value: Optional[DateLike], label: str) -> date:
    if isinstance(value, date):
        return value
    text = must(value, label)
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise InvalidDateError(f"{label} must be a date like 2024-01-31.") from None


def optional_note(value: Optional[str]) -> Optional[str]:
    text = (value or "").strip()
    return text or None


class KidBrokerage:
    """Manage kids, their accounts, deposits, transfers and market tickers.

    The service holds no ledger state of its own. Every read recomputes
    balances and positions from whatever the record store currently holds.
    """

    __slots__ = ("_store", "_oracle", "_logger", "_new_id")

    def __init__(
        self,
        store: RecordStore,
        oracle: PriceOracle,
        *,
        logger: StructuredLogger | None = None,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._store = store
        self._oracle = oracle
        self._logger = logger or StructuredLogger()
        self._new_id = id_factory

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    # ------------------------------------------------------------------
    # Kids and accounts
    # ------------------------------------------------------------------
    def create_kid(self, name: Optional[str]) -> Kid:
        kid = Kid(id=self._new_id(), name=must(name, "Kid name"))
        with self._store.unit_of_work() as uow:
            uow.add_kid(kid)
        self._logger.log("kid_created", kid_id=kid.id, name=kid.name)
        return kid

    def create_account(self, kid_id: Optional[str], name: Optional[str], kind: Optional[str]) -> Account:
        owner = self.get_kid(must(kid_id, "Kid"))
        account_name = must(name, "Account name")
        account_kind = AccountKind.parse(must(kind, "Account type"))
        account = Account(id=self._new_id(), kid_id=owner.id, name=account_name, kind=account_kind)
        with self._store.unit_of_work() as uow:
            uow.add_account(account)
        self._logger.log(
            "account_created", account_id=account.id, kid_id=owner.id, kind=account_kind.value
        )
        return account

    def get_kid(self, kid_id: str) -> Kid:
        kid = self._store.get_kid(kid_id)
        if kid is None:
            raise KidNotFoundError(f"Kid '{kid_id}' does not exist.")
        return kid

    def get_account(self, account_id: str) -> Account:
        account = self._store.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(f"Account '{account_id}' does not exist.")
        return account

    # ------------------------------------------------------------------
    # Ledger writes
    # ------------------------------------------------------------------
    def add_transaction(
        self,
        account_id: Optional[str],
        direction: Optional[str],
        amount: Optional[str],
        occurred_on: Optional[DateLike],
        note: Optional[str] = None,
    ) -> Transaction:
        account = self.get_account(must(account_id, "Account"))
        tx_direction = TransactionDirection.parse(must(direction, "Transaction type"))
        amount_cents = parse_amount(must(amount, "Amount"))
        occurred = parse_date(occurred_on, "Date")
        ticker = self._ticker_for_write(account)
        fill = self._fill_for(account, ticker, amount_cents)
        transaction = Transaction(
            id=self._new_id(),
            account_id=account.id,
            direction=tx_direction,
            amount_cents=amount_cents,
            occurred_on=occurred,
            note=optional_note(note),
            fill=fill,
        )
        with self._store.unit_of_work() as uow:
            uow.add_transaction(transaction)
        self._log_transaction("transaction_recorded", transaction, ticker)
        return transaction

    def transfer_funds(
        self,
        from_account_id: Optional[str],
        to_account_id: Optional[str],
        amount: Optional[str],
        occurred_on: Optional[DateLike],
        note: Optional[str] = None,
    ) -> TransferResult:
        """Move money between two accounts as one all-or-nothing write.

        Market sides are priced independently, so a transfer between two market
        accounts holding different tickers records different share counts.
        """

        source_id = must(from_account_id, "From account")
        destination_id = must(to_account_id, "To account")
        if source_id == destination_id:
            raise SameAccountError("Choose two different accounts for a transfer.")
        source = self.get_account(source_id)
        destination = self.get_account(destination_id)
        amount_cents = parse_amount(must(amount, "Amount"))
        occurred = parse_date(occurred_on, "Date")
        extra = optional_note(note)
        memo = (
            f"{TRANSFER_NOTE_PREFIX} {extra}"
            if extra
            else f"{TRANSFER_NOTE_PREFIX} {source.name} to {destination.name}"
        )

        # Both tickers are checked before any quote is fetched.
        tickers: Dict[str, Optional[str]] = {
            source.id: self._ticker_for_write(source),
            destination.id: self._ticker_for_write(destination),
        }
        withdrawal = Transaction(
            id=self._new_id(),
            account_id=source.id,
            direction=TransactionDirection.WITHDRAWAL,
            amount_cents=amount_cents,
            occurred_on=occurred,
            note=memo,
            fill=self._fill_for(source, tickers[source.id], amount_cents),
        )
        deposit = Transaction(
            id=self._new_id(),
            account_id=destination.id,
            direction=TransactionDirection.DEPOSIT,
            amount_cents=amount_cents,
            occurred_on=occurred,
            note=memo,
            fill=self._fill_for(destination, tickers[destination.id], amount_cents),
        )
        with self._store.unit_of_work() as uow:
            uow.add_transaction(withdrawal)
            uow.add_transaction(deposit)
        self._logger.log(
            "transfer_recorded",
            from_account_id=source.id,
            to_account_id=destination.id,
            amount_cents=amount_cents,
            occurred_on=occurred.isoformat(),
            withdrawal_id=withdrawal.id,
            deposit_id=deposit.id,
        )
        return TransferResult(withdrawal=withdrawal, deposit=deposit)

    def set_market_ticker(
        self,
        account_id: Optional[str],
        ticker: Optional[str],
        effective_date: Optional[DateLike],
    ) -> TickerEvent:
        account = self.get_account(must(account_id, "Account"))
        symbol = normalize_ticker(must(ticker, "Ticker"))
        if len(symbol) > MAX_TICKER_LENGTH or any(ch.isspace() for ch in symbol):
            raise ValidationError(f"Ticker must be a single symbol of at most {MAX_TICKER_LENGTH} characters.")
        effective = parse_date(effective_date, "Effective date")
        if not account.kind.is_market:
            raise NotMarketAccountError("Ticker updates are only allowed for Market accounts.")
        event = TickerEvent(
            id=self._new_id(), account_id=account.id, ticker=symbol, effective_date=effective
        )
        with self._store.unit_of_work() as uow:
            uow.add_ticker_event(event)
        self._logger.log(
            "ticker_set", account_id=account.id, ticker=symbol, effective_date=effective.isoformat()
        )
        return event

    # ------------------------------------------------------------------
    # Read views
    # ------------------------------------------------------------------
    def list_kids(self) -> Tuple[KidOverview, ...]:
        """Return every kid (by name) with each account's balance and ticker."""

        overviews = []
        for kid in self._store.list_kids():
            accounts = tuple(
                self._overview(account) for account in self._store.list_accounts(kid.id)
            )
            overviews.append(KidOverview(kid=kid, accounts=accounts))
        return tuple(overviews)

    def account_detail(self, account_id: str) -> AccountDetail:
        account = self.get_account(account_id)
        kid = self.get_kid(account.kid_id)
        transactions = self._store.transactions_for(account.id)
        events = self._store.ticker_events_for(account.id) if account.kind.is_market else ()
        return AccountDetail(
            account=account,
            kid=kid,
            balance_cents=ledger.cash_balance(transactions),
            transactions=ledger.display_order(transactions),
            ticker_events=ledger.ticker_history(events),
            market=self._market_summary(account, transactions, events),
        )

    def _overview(self, account: Account) -> AccountOverview:
        transactions = self._store.transactions_for(account.id)
        current = None
        if account.kind.is_market:
            event = ledger.current_ticker(self._store.ticker_events_for(account.id))
            current = event.ticker if event else None
        return AccountOverview(
            account=account,
            balance_cents=ledger.cash_balance(transactions),
            current_ticker=current,
        )

    def _market_summary(self, account, transactions, events) -> Optional[MarketSummary]:
        if not account.kind.is_market:
            return None
        event = ledger.current_ticker(events)
        if event is None:
            return None
        position = ledger.reconstruct_position(transactions)
        try:
            price = self._oracle.fetch_price(event.ticker)
        except PriceUnavailableError as exc:
            self._logger.log(
                "price_unavailable", account_id=account.id, ticker=event.ticker, error=str(exc), path="read"
            )
            return MarketSummary(ticker=event.ticker, position=position)
        return MarketSummary(
            ticker=event.ticker,
            position=position,
            price=price,
            valuation=ledger.mark_to_market(position, price),
        )

    # ------------------------------------------------------------------
    # Market pricing for writes
    # ------------------------------------------------------------------
    def _ticker_for_write(self, account: Account) -> Optional[str]:
        kind = account.kind
        if kind is AccountKind.MARKET:
            event = ledger.current_ticker(self._store.ticker_events_for(account.id))
            if event is None:
                raise MissingTickerError(
                    f"Set a ticker for market account '{account.name}' before adding transactions."
                )
            return event.ticker
        if kind is AccountKind.CHECKING or kind is AccountKind.SAVINGS:
            return None
        raise InvalidTypeError(f"Unhandled account kind: {kind!r}")

    def _fill_for(self, account: Account, ticker: Optional[str], amount_cents: int) -> Optional[MarketFill]:
        if ticker is None:
            return None
        try:
            price = self._oracle.fetch_price(ticker)
        except PriceUnavailableError as exc:
            self._logger.log(
                "price_unavailable", account_id=account.id, ticker=ticker, error=str(exc), path="write"
            )
            raise
        return ledger.market_fill(amount_cents, price)

    def _log_transaction(self, event_type: str, transaction: Transaction, ticker: Optional[str]) -> None:
        fields: Dict[str, object] = {
            "transaction_id": transaction.id,
            "account_id": transaction.account_id,
            "direction": transaction.direction.value,
            "amount_cents": transaction.amount_cents,
            "occurred_on": transaction.occurred_on.isoformat(),
        }
        if transaction.fill is not None:
            fields.update(ticker=ticker, shares=transaction.fill.shares, price=transaction.fill.price)
        self._logger.log(event_type, **fields)


__all__ = ["KidBrokerage", "TRANSFER_NOTE_PREFIX", "must", "optional_note", "parse_date"]
