"""Exchange API clients."""

from futures_core.exchange.base import BrokerGateway, MarketDataSource, MarketScanner
from futures_core.exchange.cache import TTLCache
from futures_core.exchange.mexc import MexcFuturesClient
from futures_core.exchange.price_feed import TickerFeed
from futures_core.exchange.scanner import MexcMarketScanner

__all__ = [
    "BrokerGateway",
    "MarketDataSource",
    "MarketScanner",
    "MexcFuturesClient",
    "MexcMarketScanner",
    "TTLCache",
    "TickerFeed",
]
