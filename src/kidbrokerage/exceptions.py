"""Custom exception hierarchy for the Kid Brokerage package."""

from __future__ import annotations


class KidBrokerageError(Exception):
    """Base class for all Kid Brokerage specific errors."""


class ValidationError(KidBrokerageError):
    """Raised when a submitted field is missing or malformed."""


class RequiredFieldError(ValidationError):
    """Raised when a required form field is blank."""


class InvalidAmountError(ValidationError):
    """Raised when an amount cannot be parsed or is not positive."""


class InvalidDateError(ValidationError):
    """Raised when a date field is not an ISO calendar date."""


class DomainError(KidBrokerageError):
    """Raised when a well-formed request breaks an account rule."""


class InvalidTypeError(DomainError):
    """Raised for an unknown account kind or transaction direction."""


class SameAccountError(DomainError):
    """Raised when a transfer names the same account on both sides."""


class NotMarketAccountError(DomainError):
    """Raised when a market-only operation targets a cash account."""


class MissingTickerError(DomainError):
    """Raised when a market account has no ticker assigned yet."""


class OracleError(KidBrokerageError):
    """Base class for price lookup failures."""


class PriceUnavailableError(OracleError):
    """Raised when a live quote cannot be fetched or is unusable."""


class NotFoundError(KidBrokerageError):
    """Base class for lookups of unknown records."""


class KidNotFoundError(NotFoundError):
    """Raised when a kid lookup fails."""


class AccountNotFoundError(NotFoundError):
    """Raised when an account lookup fails."""


class RecordStoreError(KidBrokerageError):
    """Raised when the record store rejects a unit of work."""
