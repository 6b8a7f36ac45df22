"""MexcMarketScanner — tradable contracts inside the 24h volume band."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

import structlog

from futures_core.config.schema import StrategyConfig
from futures_core.exchange.base import MarketScanner
from futures_core.exchange.cache import TTLCache
from futures_core.exchange.mexc import MexcFuturesClient
from futures_core.models import MarketSummary

log = structlog.get_logger("scanner")

CONTRACTS_KEY = "contracts"
DAY_MS = 24 * 60 * 60 * 1000

# Ticker field names that have carried 24h USD volume / last price
_VOLUME_FIELDS = ("turnover24h", "amount24", "amount24h", "volume24h", "volume24", "volume")
_PRICE_FIELDS = ("lastPrice", "last", "close", "price")


def _first_number(record: dict[str, Any], fields: tuple[str, ...]) -> float:
    for field in fields:
        value = record.get(field)
        if value in (None, "", 0, "0"):
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return 0.0


class MexcMarketScanner(MarketScanner):
    """Merge cached contract details with fresh tickers and filter by volume.

    Contract details change rarely and are cached for
    ``strategy.contracts_cache_ttl_s``; tickers are fetched every scan.
    """

    def __init__(
        self,
        client: MexcFuturesClient,
        config: StrategyConfig,
        cache: TTLCache | None = None,
        clock: Callable[[], float] = time.time,
        max_symbols: int | None = None,
    ) -> None:
        self.client = client
        self.config = config
        self.cache = cache or TTLCache(ttl_seconds=config.contracts_cache_ttl_s)
        self.max_symbols = max_symbols
        self._clock = clock

    def _old_enough(self, contract: dict[str, Any], now_ms: float) -> bool:
        created = contract.get("createTime")
        if created is None:
            return False
        try:
            created_ms = float(created)
        except (TypeError, ValueError):
            return False
        return now_ms - created_ms > self.config.min_listing_age_days * DAY_MS

    async def scan(self) -> list[MarketSummary]:
        tickers = await self.client.get_tickers()
        contracts = await self.cache.get_or_fetch(CONTRACTS_KEY, self.client.get_contracts)
        now_ms = self._clock() * 1000

        markets: list[MarketSummary] = []
        for contract in contracts:
            symbol = contract.get("symbol") or contract.get("contractCode")
            ticker = tickers.get(symbol) if symbol else None
            if ticker is None or not self._old_enough(contract, now_ms):
                continue
            volume = _first_number(ticker, _VOLUME_FIELDS)
            if not self.config.min_volume_usd <= volume <= self.config.max_volume_usd:
                continue
            markets.append(MarketSummary(
                symbol=symbol,
                volume_usd=volume,
                last_price=_first_number(ticker, _PRICE_FIELDS),
            ))

        markets.sort(key=lambda m: m.volume_usd, reverse=True)
        if self.max_symbols is not None:
            markets = markets[: self.max_symbols]

        log.info(
            "markets_scanned",
            contracts=len(contracts),
            tickers=len(tickers),
            selected=len(markets),
        )
        return markets
