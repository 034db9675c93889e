"""Persistence and SQLModel definitions for the Kid Brokerage web frontend."""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Iterator, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine, select

from ..exceptions import RecordStoreError
from ..models import (
    Account,
    AccountKind,
    Kid,
    MarketFill,
    TickerEvent,
    Transaction,
    TransactionDirection,
    utcnow,
)
from .config import SQLITE_FILE_NAME


# ---------------------------------------------------------------------------
# Database models
# ---------------------------------------------------------------------------
def make_engine(sqlite_file: str) -> Engine:
    return create_engine(
        f"sqlite:///{sqlite_file}",
        echo=False,
        connect_args={"check_same_thread": False},
    )


engine = make_engine(SQLITE_FILE_NAME)


class KidRecord(SQLModel, table=True):
    __tablename__ = "kid"

    id: str = Field(primary_key=True)
    name: str
    created_at: datetime = Field(default_factory=utcnow)


class AccountRecord(SQLModel, table=True):
    __tablename__ = "account"

    id: str = Field(primary_key=True)
    kid_id: str = Field(foreign_key="kid.id", index=True)
    name: str
    kind: str  # checking|savings|market
    created_at: datetime = Field(default_factory=utcnow)


class TransactionRecord(SQLModel, table=True):
    __tablename__ = "ledger_transaction"

    id: str = Field(primary_key=True)
    account_id: str = Field(foreign_key="account.id", index=True)
    direction: str  # deposit|withdrawal
    amount_cents: int
    occurred_on: date
    note: Optional[str] = None
    shares: Optional[float] = None  # market accounts only
    price: Optional[float] = None  # market accounts only
    created_at: datetime = Field(default_factory=utcnow)


class TickerEventRecord(SQLModel, table=True):
    __tablename__ = "ticker_event"

    id: str = Field(primary_key=True)
    account_id: str = Field(foreign_key="account.id", index=True)
    ticker: str
    effective_date: date
    created_at: datetime = Field(default_factory=utcnow)


_READY_ENGINES: set[int] = set()


def create_db_and_tables(target: Optional[Engine] = None) -> None:
    bind = target or engine
    SQLModel.metadata.create_all(bind)
    _READY_ENGINES.add(id(bind))


def ensure_tables(target: Engine) -> None:
    """Create tables on first use of ``target``."""

    if id(target) not in _READY_ENGINES:
        create_db_and_tables(target)


# ---------------------------------------------------------------------------
# Row <-> domain conversion
# ---------------------------------------------------------------------------
def _as_utc(value: datetime) -> datetime:
    """Rows read back from SQLite may be naive; every stored value is UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _kid(row: KidRecord) -> Kid:
    return Kid(id=row.id, name=row.name, created_at=_as_utc(row.created_at))


def _account(row: AccountRecord) -> Account:
    return Account(
        id=row.id,
        kid_id=row.kid_id,
        name=row.name,
        kind=AccountKind(row.kind),
        created_at=_as_utc(row.created_at),
    )


def _transaction(row: TransactionRecord) -> Transaction:
    fill = None
    if row.shares is not None and row.price is not None:
        fill = MarketFill(shares=row.shares, price=row.price)
    return Transaction(
        id=row.id,
        account_id=row.account_id,
        direction=TransactionDirection(row.direction),
        amount_cents=row.amount_cents,
        occurred_on=row.occurred_on,
        note=row.note,
        fill=fill,
        created_at=_as_utc(row.created_at),
    )


def _ticker_event(row: TickerEventRecord) -> TickerEvent:
    return TickerEvent(
        id=row.id,
        account_id=row.account_id,
        ticker=row.ticker,
        effective_date=row.effective_date,
        created_at=_as_utc(row.created_at),
    )


# ---------------------------------------------------------------------------
# Record store
# ---------------------------------------------------------------------------
class SqlUnitOfWork:
    """Stage domain records as rows on one open session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def add_kid(self, kid: Kid) -> None:
        self.session.add(KidRecord(id=kid.id, name=kid.name, created_at=kid.created_at))

    def add_account(self, account: Account) -> None:
        self.session.add(
            AccountRecord(
                id=account.id,
                kid_id=account.kid_id,
                name=account.name,
                kind=account.kind.value,
                created_at=account.created_at,
            )
        )

    def add_transaction(self, transaction: Transaction) -> None:
        fill = transaction.fill
        self.session.add(
            TransactionRecord(
                id=transaction.id,
                account_id=transaction.account_id,
                direction=transaction.direction.value,
                amount_cents=transaction.amount_cents,
                occurred_on=transaction.occurred_on,
                note=transaction.note,
                shares=fill.shares if fill else None,
                price=fill.price if fill else None,
                created_at=transaction.created_at,
            )
        )

    def add_ticker_event(self, event: TickerEvent) -> None:
        self.session.add(
            TickerEventRecord(
                id=event.id,
                account_id=event.account_id,
                ticker=event.ticker,
                effective_date=event.effective_date,
                created_at=event.created_at,
            )
        )


class SqlRecordStore:
    """Record store backed by SQLModel sessions on ``engine``.

    A unit of work commits once when its block exits; any error rolls the
    whole session back so no partial set of rows is ever committed.
    """

    def __init__(self, bind: Engine) -> None:
        self.engine = bind

    @contextmanager
    def unit_of_work(self) -> Iterator[SqlUnitOfWork]:
        with Session(self.engine) as session:
            try:
                yield SqlUnitOfWork(session)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                raise RecordStoreError(f"Could not save changes: {exc}") from exc
            except Exception:
                session.rollback()
                raise

    def get_kid(self, kid_id: str) -> Optional[Kid]:
        with Session(self.engine) as session:
            row = session.get(KidRecord, kid_id)
            return _kid(row) if row else None

    def get_account(self, account_id: str) -> Optional[Account]:
        with Session(self.engine) as session:
            row = session.get(AccountRecord, account_id)
            return _account(row) if row else None

    def list_kids(self) -> Sequence[Kid]:
        with Session(self.engine) as session:
            rows = session.exec(select(KidRecord).order_by(func.lower(KidRecord.name), KidRecord.created_at)).all()
            return tuple(_kid(row) for row in rows)

    def list_accounts(self, kid_id: Optional[str] = None) -> Sequence[Account]:
        query = select(AccountRecord).order_by(AccountRecord.created_at)
        if kid_id is not None:
            query = query.where(AccountRecord.kid_id == kid_id)
        with Session(self.engine) as session:
            return tuple(_account(row) for row in session.exec(query).all())

    def transactions_for(self, account_id: str) -> Sequence[Transaction]:
        query = select(TransactionRecord).where(TransactionRecord.account_id == account_id)
        with Session(self.engine) as session:
            return tuple(_transaction(row) for row in session.exec(query).all())

    def ticker_events_for(self, account_id: str) -> Sequence[TickerEvent]:
        query = select(TickerEventRecord).where(TickerEventRecord.account_id == account_id)
        with Session(self.engine) as session:
            return tuple(_ticker_event(row) for row in session.exec(query).all())


__all__ = [
    "AccountRecord",
    "KidRecord",
    "SqlRecordStore",
    "SqlUnitOfWork",
    "TickerEventRecord",
    "TransactionRecord",
    "create_db_and_tables",
    "engine",
    "ensure_tables",
    "make_engine",
]
