"""Kid Brokerage: custodial checking, savings and market accounts for kids."""

from .api import ApiExporter
from .exceptions import (
    AccountNotFoundError,
    DomainError,
    InvalidAmountError,
    InvalidDateError,
    InvalidTypeError,
    KidBrokerageError,
    KidNotFoundError,
    MissingTickerError,
    NotFoundError,
    NotMarketAccountError,
    OracleError,
    PriceUnavailableError,
    RecordStoreError,
    RequiredFieldError,
    SameAccountError,
    ValidationError,
)
from .ledger import cash_balance, current_ticker, mark_to_market, reconstruct_position
from .models import (
    Account,
    AccountDetail,
    AccountKind,
    AccountOverview,
    Kid,
    KidOverview,
    MarketFill,
    MarketSummary,
    Position,
    TickerEvent,
    Transaction,
    TransactionDirection,
    TransferResult,
    Valuation,
)
from .money import format_amount, format_amount_numeric, parse_amount
from .ops import StructuredLogger
from .planner import SavingsProjection, project_weekly_savings
from .pricing import PriceOracle, YahooPriceOracle
from .service import KidBrokerage
from .store import InMemoryRecordStore, RecordStore

__all__ = [
    "Account",
    "AccountDetail",
    "AccountKind",
    "AccountNotFoundError",
    "AccountOverview",
    "ApiExporter",
    "DomainError",
    "InMemoryRecordStore",
    "InvalidAmountError",
    "InvalidDateError",
    "InvalidTypeError",
    "Kid",
    "KidBrokerage",
    "KidBrokerageError",
    "KidNotFoundError",
    "KidOverview",
    "MarketFill",
    "MarketSummary",
    "MissingTickerError",
    "NotFoundError",
    "NotMarketAccountError",
    "OracleError",
    "Position",
    "PriceOracle",
    "PriceUnavailableError",
    "RecordStore",
    "RecordStoreError",
    "RequiredFieldError",
    "SameAccountError",
    "SavingsProjection",
    "StructuredLogger",
    "TickerEvent",
    "Transaction",
    "TransactionDirection",
    "TransferResult",
    "Valuation",
    "ValidationError",
    "YahooPriceOracle",
    "cash_balance",
    "current_ticker",
    "format_amount",
    "format_amount_numeric",
    "mark_to_market",
    "parse_amount",
    "project_weekly_savings",
    "reconstruct_position",
]
