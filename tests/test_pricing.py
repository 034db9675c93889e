import io
import json
from urllib.error import HTTPError, URLError

import pytest

from kidbrokerage.exceptions import PriceUnavailableError
from kidbrokerage.pricing import YahooPriceOracle, extract_regular_market_price


class FakeResponse(io.BytesIO):
    def __init__(self, body: bytes, status: int = 200) -> None:
        super().__init__(body)
        self.status = status


def chart_payload(price) -> dict:
    return {"chart": {"result": [{"meta": {"regularMarketPrice": price}}], "error": None}}


def opener_returning(body: bytes, status: int = 200, seen: list | None = None):
    def opener(req, timeout=None):
        if seen is not None:
            seen.append((req, timeout))
        return FakeResponse(body, status)

    return opener


def test_fetch_price_reads_regular_market_price() -> None:
    seen: list = []
    oracle = YahooPriceOracle(opener=opener_returning(json.dumps(chart_payload(412.5)).encode(), seen=seen), timeout=3)

    assert oracle.fetch_price(" voo ") == 412.5

    req, timeout = seen[0]
    assert "/chart/VOO?" in req.full_url
    assert req.get_header("User-agent")
    assert timeout == 3


def test_every_call_is_a_live_fetch() -> None:
    seen: list = []
    oracle = YahooPriceOracle(opener=opener_returning(json.dumps(chart_payload(10)).encode(), seen=seen))

    oracle.fetch_price("VOO")
    oracle.fetch_price("VOO")

    assert len(seen) == 2


@pytest.mark.parametrize(
    "payload",
    [
        chart_payload(0),
        chart_payload(-3.5),
        chart_payload("412.5"),
        chart_payload(None),
        chart_payload(True),
        {"chart": {"result": []}},
        {"chart": {"result": None, "error": {"code": "Not Found"}}},
        [],
    ],
)
def test_fetch_price_rejects_unusable_payloads(payload) -> None:
    oracle = YahooPriceOracle(opener=opener_returning(json.dumps(payload).encode()))

    with pytest.raises(PriceUnavailableError):
        oracle.fetch_price("VOO")


def test_fetch_price_rejects_invalid_json_and_non_2xx() -> None:
    with pytest.raises(PriceUnavailableError):
        YahooPriceOracle(opener=opener_returning(b"<html>oops</html>")).fetch_price("VOO")
    with pytest.raises(PriceUnavailableError):
        body = json.dumps(chart_payload(10)).encode()
        YahooPriceOracle(opener=opener_returning(body, status=503)).fetch_price("VOO")


def test_fetch_price_wraps_network_errors() -> None:
    def http_error(req, timeout=None):
        raise HTTPError(req.full_url, 404, "Not Found", hdrs=None, fp=None)

    def url_error(req, timeout=None):
        raise URLError("no route to host")

    with pytest.raises(PriceUnavailableError, match="404"):
        YahooPriceOracle(opener=http_error).fetch_price("ZZZZ")
    with pytest.raises(PriceUnavailableError):
        YahooPriceOracle(opener=url_error).fetch_price("VOO")


def test_blank_ticker_is_unavailable() -> None:
    with pytest.raises(PriceUnavailableError):
        YahooPriceOracle(opener=opener_returning(b"{}")).fetch_price("  ")


def test_extract_regular_market_price_accepts_ints() -> None:
    assert extract_regular_market_price(chart_payload(400)) == 400.0
