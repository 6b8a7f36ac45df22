"""Error taxonomy shared by the trading core and its collaborators."""

from __future__ import annotations


class TradingError(Exception):
    """Base class for all errors raised by futures_core."""


class TransientNetworkError(TradingError):
    """Transport failure that persisted through the client's retries."""


class BrokerRejection(TradingError):
    """The exchange refused an order or close request."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class InsufficientDataError(TradingError):
    """Candle series too short to compute indicators."""

    def __init__(self, symbol: str | None, got: int, need: int) -> None:
        super().__init__(f"{symbol or 'series'}: {got} candles, need {need}")
        self.symbol = symbol
        self.got = got
        self.need = need


class ConfigurationError(TradingError):
    """Missing credentials or invalid parameters. Fatal at startup."""


class DecodeError(TradingError):
    """An exchange payload did not match any recognized shape."""
