from datetime import date, datetime, timezone

import pytest

from kidbrokerage.exceptions import RecordStoreError
from kidbrokerage.models import (
    Account,
    AccountKind,
    Kid,
    MarketFill,
    TickerEvent,
    Transaction,
    TransactionDirection,
    utcnow,
)
from kidbrokerage.service import KidBrokerage
from kidbrokerage.webapp import persistence


class FakeOracle:
    def __init__(self, prices) -> None:
        self.prices = prices

    def fetch_price(self, ticker: str) -> float:
        return self.prices[ticker]


@pytest.fixture()
def store(tmp_path):
    engine = persistence.make_engine(str(tmp_path / "ledger.db"))
    persistence.create_db_and_tables(engine)
    return persistence.SqlRecordStore(engine)


def seed(store) -> Account:
    kid = Kid(id="kid-1", name="Avery")
    account = Account(id="acct-1", kid_id=kid.id, name="Brokerage", kind=AccountKind.MARKET)
    with store.unit_of_work() as uow:
        uow.add_kid(kid)
        uow.add_account(account)
    return account


def test_records_round_trip(store) -> None:
    account = seed(store)
    transaction = Transaction(
        id="tx-1",
        account_id=account.id,
        direction=TransactionDirection.DEPOSIT,
        amount_cents=100000,
        occurred_on=date(2024, 1, 2),
        note="Birthday",
        fill=MarketFill(shares=2.5, price=400.0),
    )
    event = TickerEvent(id="evt-1", account_id=account.id, ticker="voo", effective_date=date(2024, 1, 1))
    with store.unit_of_work() as uow:
        uow.add_transaction(transaction)
        uow.add_ticker_event(event)

    assert store.get_kid("kid-1").name == "Avery"
    assert store.get_account("acct-1").kind is AccountKind.MARKET
    assert store.get_account("missing") is None
    assert [kid.id for kid in store.list_kids()] == ["kid-1"]
    assert [acct.id for acct in store.list_accounts("kid-1")] == ["acct-1"]
    assert store.list_accounts("nobody") == ()

    (loaded,) = store.transactions_for(account.id)
    assert loaded.direction is TransactionDirection.DEPOSIT
    assert loaded.amount_cents == 100000
    assert loaded.occurred_on == date(2024, 1, 2)
    assert loaded.note == "Birthday"
    assert loaded.fill == MarketFill(shares=2.5, price=400.0)
    (loaded_event,) = store.ticker_events_for(account.id)
    assert loaded_event.ticker == "VOO"


def test_cash_transactions_have_no_fill(store) -> None:
    seed(store)
    with store.unit_of_work() as uow:
        uow.add_transaction(
            Transaction(
                id="tx-cash",
                account_id="acct-1",
                direction=TransactionDirection.WITHDRAWAL,
                amount_cents=500,
                occurred_on=date(2024, 1, 3),
            )
        )

    (loaded,) = store.transactions_for("acct-1")
    assert loaded.fill is None
    assert loaded.note is None


def test_duplicate_ids_reject_the_whole_unit_of_work(store) -> None:
    seed(store)
    rows = [
        Transaction(
            id=tx_id,
            account_id="acct-1",
            direction=TransactionDirection.DEPOSIT,
            amount_cents=100,
            occurred_on=date(2024, 1, 2),
        )
        for tx_id in ("tx-new", "tx-dup", "tx-dup")
    ]

    with pytest.raises(RecordStoreError):
        with store.unit_of_work() as uow:
            for row in rows:
                uow.add_transaction(row)

    assert store.transactions_for("acct-1") == ()


def test_errors_inside_the_block_roll_back_and_propagate(store) -> None:
    seed(store)

    with pytest.raises(RuntimeError, match="boom"):
        with store.unit_of_work() as uow:
            uow.add_kid(Kid(id="kid-2", name="Blake"))
            raise RuntimeError("boom")

    assert store.get_kid("kid-2") is None


def test_list_kids_orders_by_name_case_insensitively(store) -> None:
    with store.unit_of_work() as uow:
        uow.add_kid(Kid(id="z", name="Zoe"))
        uow.add_kid(Kid(id="a", name="avery"))
        uow.add_kid(Kid(id="b", name="Blake"))

    assert [kid.id for kid in store.list_kids()] == ["a", "b", "z"]


def test_failed_transfer_commits_neither_leg(store) -> None:
    ids = iter(["kid", "acct-a", "acct-b", "tx-1", "tx-2", "tx-1"])
    bank = KidBrokerage(store, FakeOracle({}), id_factory=lambda: next(ids))
    kid = bank.create_kid("Avery")
    checking = bank.create_account(kid.id, "Checking", "CHECKING")
    savings = bank.create_account(kid.id, "Savings", "SAVINGS")
    bank.add_transaction(checking.id, "DEPOSIT", "50.00", "2024-01-01")

    # The deposit leg reuses an existing id, so the insert fails after the
    # withdrawal leg has already been staged.
    with pytest.raises(RecordStoreError):
        bank.transfer_funds(checking.id, savings.id, "20.00", "2024-01-02")

    assert [tx.id for tx in store.transactions_for(checking.id)] == ["tx-1"]
    assert store.transactions_for(savings.id) == ()
    assert bank.account_detail(checking.id).balance_cents == 5000


def test_created_at_round_trips_as_aware_utc(store) -> None:
    stamp = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    account = Account(id="acct-1", kid_id="kid-1", name="Brokerage", kind=AccountKind.MARKET, created_at=stamp)
    with store.unit_of_work() as uow:
        uow.add_kid(Kid(id="kid-1", name="Avery", created_at=stamp))
        uow.add_account(account)
        uow.add_transaction(
            Transaction(
                id="tx-1",
                account_id="acct-1",
                direction=TransactionDirection.DEPOSIT,
                amount_cents=100,
                occurred_on=date(2024, 1, 2),
                created_at=stamp,
            )
        )
        uow.add_ticker_event(
            TickerEvent(id="evt-1", account_id="acct-1", ticker="VOO", effective_date=date(2024, 1, 1), created_at=stamp)
        )

    assert store.get_kid("kid-1").created_at == stamp
    assert store.get_account("acct-1").created_at == stamp
    assert store.transactions_for("acct-1")[0].created_at == stamp
    assert store.ticker_events_for("acct-1")[0].created_at.tzinfo is not None
    assert store.ticker_events_for("acct-1")[0].created_at == stamp


def test_default_timestamps_are_aware_and_persist(store) -> None:
    before = utcnow()
    kid = Kid(id="kid-9", name="Blake")
    with store.unit_of_work() as uow:
        uow.add_kid(kid)

    loaded = store.get_kid("kid-9")
    assert before.tzinfo is not None
    assert loaded.created_at == kid.created_at
    assert loaded.created_at >= before
