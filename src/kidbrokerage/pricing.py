"""Live quote lookups used to price market account transactions."""

from __future__ import annotations

import json
import math
from typing import Any, Callable, Optional, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request as URLRequest, urlopen

from .exceptions import PriceUnavailableError

DEFAULT_QUOTE_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}?interval=1d&range=1d"
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; KidsBrokerage/1.0)"
DEFAULT_TIMEOUT_SECONDS = 10.0


class PriceOracle(Protocol):
    def fetch_price(self, ticker: str) -> float:
        """Return the current price per unit for ``ticker``."""


def normalize_ticker(ticker: str) -> str:
    return (ticker or "").strip().upper()


def extract_regular_market_price(payload: Any) -> Optional[float]:
    """Pull ``chart.result[0].meta.regularMarketPrice`` out of a chart payload."""

    if not isinstance(payload, dict):
        return None
    chart = payload.get("chart")
    if not isinstance(chart, dict):
        return None
    result = chart.get("result")
    if not isinstance(result, list) or not result or not isinstance(result[0], dict):
        return None
    meta = result[0].get("meta")
    if not isinstance(meta, dict):
        return None
    price = meta.get("regularMarketPrice")
    # bool is an int subclass
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return float(price)


class YahooPriceOracle:
    """Fetch the latest regular market price from Yahoo's chart endpoint.

    Every call is a live request; there is no caching and no retry.
    """

    def __init__(
        self,
        *,
        url_template: str = DEFAULT_QUOTE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: Optional[float] = DEFAULT_TIMEOUT_SECONDS,
        opener: Callable[..., Any] = urlopen,
    ) -> None:
        self.url_template = url_template
        self.user_agent = user_agent
        self.timeout = timeout
        self._opener = opener

    def quote_url(self, ticker: str) -> str:
        return self.url_template.format(symbol=quote(normalize_ticker(ticker), safe=""))

    def fetch_price(self, ticker: str) -> float:
        symbol = normalize_ticker(ticker)
        if not symbol:
            raise PriceUnavailableError("A ticker is required to fetch a price.")
        req = URLRequest(self.quote_url(symbol), headers={"User-Agent": self.user_agent})
        try:
            with self._opener(req, timeout=self.timeout) as resp:
                status = getattr(resp, "status", 200)
                if not 200 <= int(status) < 300:
                    raise PriceUnavailableError(f"Failed to fetch price for {symbol}: {status}")
                data = json.load(resp)
        except HTTPError as exc:
            raise PriceUnavailableError(f"Failed to fetch price for {symbol}: {exc.code}") from exc
        except (URLError, TimeoutError, OSError, ValueError) as exc:
            raise PriceUnavailableError(f"Failed to fetch price for {symbol}: {exc}") from exc
        price = extract_regular_market_price(data)
        if price is None:
            raise PriceUnavailableError(f"No valid price found for {symbol}")
        return price


__all__ = [
    "DEFAULT_QUOTE_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_USER_AGENT",
    "PriceOracle",
    "YahooPriceOracle",
    "extract_regular_market_price",
    "normalize_ticker",
]
