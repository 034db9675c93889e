"""Record store contract and an in-memory implementation.

Writes always go through :meth:`RecordStore.unit_of_work`. Rows staged in a
unit of work become visible together when the ``with`` block exits normally;
if the block raises, nothing staged is kept and the exception propagates.
"""

from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from typing import ContextManager, Dict, Iterator, List, Optional, Protocol, Sequence

from .exceptions import RecordStoreError
from .models import Account, Kid, TickerEvent, Transaction


class UnitOfWork(Protocol):
    def add_kid(self, kid: Kid) -> None: ...

    def add_account(self, account: Account) -> None: ...

    def add_transaction(self, transaction: Transaction) -> None: ...

    def add_ticker_event(self, event: TickerEvent) -> None: ...


class RecordStore(Protocol):
    def unit_of_work(self) -> ContextManager[UnitOfWork]: ...

    def get_kid(self, kid_id: str) -> Optional[Kid]: ...

    def get_account(self, account_id: str) -> Optional[Account]: ...

    def list_kids(self) -> Sequence[Kid]: ...

    def list_accounts(self, kid_id: Optional[str] = None) -> Sequence[Account]: ...

    def transactions_for(self, account_id: str) -> Sequence[Transaction]: ...

    def ticker_events_for(self, account_id: str) -> Sequence[TickerEvent]: ...


class StagedWrites:
    """Rows collected by an in-memory unit of work before commit."""

    def __init__(self) -> None:
        self.kids: List[Kid] = []
        self.accounts: List[Account] = []
        self.transactions: List[Transaction] = []
        self.ticker_events: List[TickerEvent] = []

    def add_kid(self, kid: Kid) -> None:
        self.kids.append(kid)

    def add_account(self, account: Account) -> None:
        self.accounts.append(account)

    def add_transaction(self, transaction: Transaction) -> None:
        self.transactions.append(transaction)

    def add_ticker_event(self, event: TickerEvent) -> None:
        self.ticker_events.append(event)


class InMemoryRecordStore:
    """Dictionary backed store used by tests and scripted sessions."""

    def __init__(self) -> None:
        self._kids: Dict[str, Kid] = {}
        self._accounts: Dict[str, Account] = {}
        self._transactions: Dict[str, List[Transaction]] = defaultdict(list)
        self._ticker_events: Dict[str, List[TickerEvent]] = defaultdict(list)
        self._transaction_ids: set[str] = set()
        self._ticker_event_ids: set[str] = set()

    @contextmanager
    def unit_of_work(self) -> Iterator[StagedWrites]:
        staged = StagedWrites()
        yield staged
        self._commit(staged)

    def _commit(self, staged: StagedWrites) -> None:
        self._check_unique(staged)
        for kid in staged.kids:
            self._kids[kid.id] = kid
        for account in staged.accounts:
            self._accounts[account.id] = account
        for transaction in staged.transactions:
            self._transactions[transaction.account_id].append(transaction)
            self._transaction_ids.add(transaction.id)
        for event in staged.ticker_events:
            self._ticker_events[event.account_id].append(event)
            self._ticker_event_ids.add(event.id)

    def _check_unique(self, staged: StagedWrites) -> None:
        checks = (
            ("kid", [kid.id for kid in staged.kids], set(self._kids)),
            ("account", [account.id for account in staged.accounts], set(self._accounts)),
            ("transaction", [tx.id for tx in staged.transactions], self._transaction_ids),
            ("ticker event", [event.id for event in staged.ticker_events], self._ticker_event_ids),
        )
        for label, new_ids, existing in checks:
            if len(set(new_ids)) != len(new_ids) or existing.intersection(new_ids):
                raise RecordStoreError(f"Duplicate {label} id in unit of work.")

    def get_kid(self, kid_id: str) -> Optional[Kid]:
        return self._kids.get(kid_id)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    def list_kids(self) -> Sequence[Kid]:
        return tuple(sorted(self._kids.values(), key=lambda kid: (kid.name.lower(), kid.created_at)))

    def list_accounts(self, kid_id: Optional[str] = None) -> Sequence[Account]:
        accounts = [
            account for account in self._accounts.values() if kid_id is None or account.kid_id == kid_id
        ]
        return tuple(sorted(accounts, key=lambda account: account.created_at))

    def transactions_for(self, account_id: str) -> Sequence[Transaction]:
        return tuple(self._transactions.get(account_id, ()))

    def ticker_events_for(self, account_id: str) -> Sequence[TickerEvent]:
        return tuple(self._ticker_events.get(account_id, ()))


__all__ = ["InMemoryRecordStore", "RecordStore", "StagedWrites", "UnitOfWork"]
