"""Market data models — candles, indicator snapshots, scanned markets."""

from __future__ import annotations

from pydantic import BaseModel


class Candle(BaseModel):
    """One candlestick bar. ``open_time`` is epoch milliseconds."""

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float


class MacdValue(BaseModel):
    line: float
    signal: float

    @property
    def histogram(self) -> float:
        return self.line - self.signal


class VolumeStats(BaseModel):
    """Latest volume against its 20-bar average."""

    last: float
    avg20: float
    factor: float


class Indicators(BaseModel):
    """Indicator snapshot computed from one candle series, latest values only.

    ``ema50`` and ``ema200`` are None when the series is too short for them.
    """

    latest: Candle
    rsi: float
    macd: MacdValue
    ema20: float
    ema50: float | None = None
    ema200: float | None = None
    volume: VolumeStats


class MarketSummary(BaseModel):
    """A tradable contract that passed the scanner's volume band."""

    symbol: str
    volume_usd: float
    last_price: float
