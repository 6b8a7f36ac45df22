"""Technical indicators — pure functions on price series."""

from __future__ import annotations

from collections.abc import Sequence
from statistics import mean

from futures_core.errors import InsufficientDataError
from futures_core.models import Candle, Indicators, MacdValue, VolumeStats

RSI_PERIOD = 14
MACD_FAST = 12
MACD_SLOW = 26
MACD_SIGNAL = 9
VOLUME_WINDOW = 20

# Shortest series that yields RSI, MACD (line and signal) and EMA20
MIN_CANDLES = MACD_SLOW + MACD_SIGNAL - 1


def rsi(closes: Sequence[float], period: int = RSI_PERIOD) -> float | None:
    """Relative Strength Index (Wilder's smoothing).

    Returns a float in [0, 100] or None if there are fewer than
    ``period + 1`` data points.
    """
    if len(closes) < period + 1:
        return None

    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]

    # Seed with simple average of first *period* changes
    avg_gain = mean(d if d > 0 else 0.0 for d in deltas[:period])
    avg_loss = mean(-d if d < 0 else 0.0 for d in deltas[:period])

    # Wilder smoothing over remaining deltas
    for d in deltas[period:]:
        avg_gain = (avg_gain * (period - 1) + (d if d > 0 else 0.0)) / period
        avg_loss = (avg_loss * (period - 1) + (-d if d < 0 else 0.0)) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1 + rs)


def ema_series(values: Sequence[float], period: int) -> list[float]:
    """Full EMA series, seeded with the SMA of the first *period* values.

    The result has ``len(values) - period + 1`` entries, or none if the
    input is shorter than *period*.
    """
    if len(values) < period:
        return []
    k = 2.0 / (period + 1)
    out = [mean(values[:period])]
    for v in values[period:]:
        out.append(v * k + out[-1] * (1 - k))
    return out


def ema(values: Sequence[float], period: int) -> float | None:
    series = ema_series(values, period)
    return series[-1] if series else None


def macd(
    closes: Sequence[float],
    fast: int = MACD_FAST,
    slow: int = MACD_SLOW,
    signal_period: int = MACD_SIGNAL,
) -> MacdValue | None:
    """MACD line (EMA fast − EMA slow) and its EMA signal line, latest values.

    Returns None if fewer than ``slow + signal_period - 1`` closes.
    """
    if len(closes) < slow + signal_period - 1:
        return None

    fast_series = ema_series(closes, fast)
    slow_series = ema_series(closes, slow)
    # fast_series starts (slow - fast) bars earlier than slow_series
    offset = slow - fast
    line_series = [f - s for f, s in zip(fast_series[offset:], slow_series)]

    signal_series = ema_series(line_series, signal_period)
    if not signal_series:
        return None
    return MacdValue(line=line_series[-1], signal=signal_series[-1])


def volume_stats(volumes: Sequence[float], window: int = VOLUME_WINDOW) -> VolumeStats:
    """Latest volume and its ratio to the trailing *window*-bar average.

    The average includes the latest bar; the factor is 0 when the average is 0.
    """
    if not volumes:
        return VolumeStats(last=0.0, avg20=0.0, factor=0.0)
    recent = volumes[-window:]
    avg = sum(recent) / len(recent)
    last = volumes[-1]
    return VolumeStats(last=last, avg20=avg, factor=last / avg if avg else 0.0)


def compute_indicators(series: Sequence[Candle], symbol: str | None = None) -> Indicators:
    """Compute the latest indicator values for a freshest-last candle series.

    Raises InsufficientDataError when the series is shorter than
    ``MIN_CANDLES``. EMA50/EMA200 are left as None on shorter series.
    """
    if len(series) < MIN_CANDLES:
        raise InsufficientDataError(symbol, got=len(series), need=MIN_CANDLES)

    closes = [c.close for c in series]
    volumes = [c.volume for c in series]

    rsi_value = rsi(closes)
    macd_value = macd(closes)
    ema20 = ema(closes, 20)
    if rsi_value is None or macd_value is None or ema20 is None:
        raise InsufficientDataError(symbol, got=len(series), need=MIN_CANDLES)

    return Indicators(
        latest=series[-1],
        rsi=rsi_value,
        macd=macd_value,
        ema20=ema20,
        ema50=ema(closes, 50),
        ema200=ema(closes, 200),
        volume=volume_stats(volumes),
    )
