from datetime import date, datetime, timedelta
from itertools import count, permutations

import pytest

from kidbrokerage import ledger
from kidbrokerage.exceptions import InvalidAmountError, PriceUnavailableError
from kidbrokerage.models import MarketFill, Position, TickerEvent, Transaction, TransactionDirection

_ids = count(1)
_BASE = datetime(2024, 1, 1, 12, 0, 0)

DEPOSIT = TransactionDirection.DEPOSIT
WITHDRAWAL = TransactionDirection.WITHDRAWAL


def make_tx(direction, cents, *, on=date(2024, 1, 1), shares=None, price=None, created_offset=0):
    fill = MarketFill(shares=shares, price=price) if shares is not None else None
    return Transaction(
        id=f"tx-{next(_ids)}",
        account_id="acct",
        direction=direction,
        amount_cents=cents,
        occurred_on=on,
        fill=fill,
        created_at=_BASE + timedelta(seconds=created_offset),
    )


def make_event(ticker, effective, *, created_offset=0):
    return TickerEvent(
        id=f"evt-{next(_ids)}",
        account_id="acct",
        ticker=ticker,
        effective_date=effective,
        created_at=_BASE + timedelta(seconds=created_offset),
    )


def test_cash_balance_scenario() -> None:
    transactions = [
        make_tx(DEPOSIT, 10000),
        make_tx(DEPOSIT, 5000),
        make_tx(DEPOSIT, 2500),
        make_tx(WITHDRAWAL, 3000),
    ]

    assert ledger.cash_balance(transactions) == 14500


def test_cash_balance_ignores_order() -> None:
    transactions = [
        make_tx(DEPOSIT, 1234),
        make_tx(WITHDRAWAL, 99),
        make_tx(DEPOSIT, 50000),
        make_tx(WITHDRAWAL, 7001),
    ]
    expected = 1234 - 99 + 50000 - 7001

    for ordering in permutations(transactions):
        assert ledger.cash_balance(ordering) == expected


def test_cash_balance_can_go_negative() -> None:
    assert ledger.cash_balance([make_tx(DEPOSIT, 500), make_tx(WITHDRAWAL, 800)]) == -300
    assert ledger.cash_balance([]) == 0


def test_transactions_require_positive_amounts() -> None:
    with pytest.raises(InvalidAmountError):
        make_tx(DEPOSIT, 0)


def test_position_and_mark_to_market_scenario() -> None:
    deposit = make_tx(DEPOSIT, 100000, shares=2.5, price=400.0)

    position = ledger.reconstruct_position([deposit])
    valuation = ledger.mark_to_market(position, 440.0)

    assert position.total_shares == pytest.approx(2.5)
    assert position.cost_basis_cents == 100000
    assert valuation.market_value_cents == 110000
    assert valuation.gain_loss_cents == 10000
    assert valuation.gain_loss_percent == pytest.approx(10.0)


def test_position_nets_withdrawals() -> None:
    transactions = [
        make_tx(DEPOSIT, 100000, shares=2.5, price=400.0),
        make_tx(WITHDRAWAL, 44000, shares=1.0, price=440.0),
    ]

    position = ledger.reconstruct_position(transactions)

    assert position.total_shares == pytest.approx(1.5)
    assert position.cost_basis_cents == 56000


def test_position_keeps_accumulating_across_ticker_changes() -> None:
    # 2.5 shares bought under one ticker and 2 under another are one running total.
    transactions = [
        make_tx(DEPOSIT, 100000, on=date(2024, 1, 2), shares=2.5, price=400.0),
        make_tx(DEPOSIT, 100000, on=date(2024, 6, 2), shares=2.0, price=500.0),
    ]

    position = ledger.reconstruct_position(transactions)

    assert position.total_shares == pytest.approx(4.5)
    assert position.cost_basis_cents == 200000


def test_gain_loss_percent_is_zero_without_cost_basis() -> None:
    valuation = ledger.mark_to_market(Position(total_shares=1.0, cost_basis_cents=0), 10.0)

    assert valuation.market_value_cents == 1000
    assert valuation.gain_loss_cents == 1000
    assert valuation.gain_loss_percent == 0.0


def test_gain_loss_percent_uses_absolute_cost_basis() -> None:
    valuation = ledger.mark_to_market(Position(total_shares=0.0, cost_basis_cents=-5000), 100.0)

    assert valuation.gain_loss_cents == 5000
    assert valuation.gain_loss_percent == pytest.approx(100.0)


def test_shares_for_divides_dollars_by_price() -> None:
    assert ledger.shares_for(100000, 400.0) == pytest.approx(2.5)
    fill = ledger.market_fill(10000, 500.0)
    assert fill.shares == pytest.approx(0.2)
    assert fill.price == 500.0

    with pytest.raises(PriceUnavailableError):
        ledger.shares_for(100, 0)


def test_current_ticker_uses_latest_effective_date() -> None:
    events = [
        make_event("qqq", date(2024, 6, 1), created_offset=1),
        make_event("VOO", date(2024, 1, 1), created_offset=2),
    ]

    current = ledger.current_ticker(events)

    assert current is not None
    assert current.ticker == "QQQ"
    assert ledger.current_ticker([]) is None


def test_current_ticker_breaks_ties_by_creation() -> None:
    events = [
        make_event("VTI", date(2024, 3, 1), created_offset=5),
        make_event("VOO", date(2024, 3, 1), created_offset=1),
    ]

    assert ledger.current_ticker(events).ticker == "VTI"
    assert [event.ticker for event in ledger.ticker_history(events)] == ["VTI", "VOO"]


def test_display_order_is_newest_effective_date_first() -> None:
    recorded_first = make_tx(DEPOSIT, 100, on=date(2024, 3, 1), created_offset=0)
    backdated = make_tx(DEPOSIT, 200, on=date(2024, 1, 15), created_offset=10)
    same_day_later = make_tx(WITHDRAWAL, 50, on=date(2024, 3, 1), created_offset=20)

    ordered = ledger.display_order([recorded_first, backdated, same_day_later])

    assert ordered == (same_day_later, recorded_first, backdated)
