"""Tests for YahooPriceOracle over httpx.MockTransport."""

from decimal import Decimal

import httpx
import pytest

from src.tm_common.errors import OracleUnavailableError
from src.tm_settlement.infrastructure.price_oracle import YahooPriceOracle


def _chart(opens: list, closes: list, meta: dict | None = None) -> dict:
    return {
        "chart": {
            "result": [
                {
                    "meta": meta or {"regularMarketPrice": closes[-1] if closes else None,
                                     "chartPreviousClose": 498.5},
                    "indicators": {"quote": [{"open": opens, "close": closes}]},
                }
            ]
        }
    }


def _oracle(handler) -> YahooPriceOracle:  # type: ignore[no-untyped-def]
    return YahooPriceOracle(
        base_url="https://oracle.test", timeout=1.0, transport=httpx.MockTransport(handler)
    )


class TestDailyQuote:
    async def test_parses_quote(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_chart([500.25], [505.5]))

        quote = await _oracle(handler).get_daily_quote("SPY")

        assert quote.open == Decimal("500.25")
        assert quote.close == Decimal("505.5")
        assert quote.previous_close == Decimal("498.5")
        assert seen[0].url.path == "/v8/finance/chart/SPY"
        assert seen[0].url.params["range"] == "1d"

    async def test_falls_back_to_market_price(self) -> None:
        payload = _chart([500], [None], meta={"regularMarketPrice": 501})
        quote = await _oracle(lambda r: httpx.Response(200, json=payload)).get_daily_quote("SPY")
        assert quote.close == Decimal("501")

    async def test_http_error(self) -> None:
        with pytest.raises(OracleUnavailableError):
            await _oracle(lambda r: httpx.Response(502)).get_daily_quote("SPY")

    async def test_malformed_payload(self) -> None:
        with pytest.raises(OracleUnavailableError):
            await _oracle(lambda r: httpx.Response(200, json={"chart": {}})).get_daily_quote("SPY")

    async def test_non_positive_price_rejected(self) -> None:
        payload = _chart([0], [0], meta={})
        with pytest.raises(OracleUnavailableError):
            await _oracle(lambda r: httpx.Response(200, json=payload)).get_daily_quote("SPY")

    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(OracleUnavailableError):
            await _oracle(handler).get_daily_quote("SPY")


class TestRecentBars:
    async def test_skips_incomplete_bars(self) -> None:
        payload = _chart([100, None, 102], [101, 103, 104])
        bars = await _oracle(lambda r: httpx.Response(200, json=payload)).get_recent_bars("NVDA", 5)
        assert [(b.open, b.close) for b in bars] == [
            (Decimal("100"), Decimal("101")),
            (Decimal("102"), Decimal("104")),
        ]

    async def test_no_bars(self) -> None:
        payload = _chart([], [])
        with pytest.raises(OracleUnavailableError):
            await _oracle(lambda r: httpx.Response(200, json=payload)).get_recent_bars("NVDA", 5)
