"""Momentum reversal evaluator — RSI extreme confirmed by MACD and EMA20."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from futures_core.models import Candle, Indicators, Signal
from futures_core.strategy.base import Evaluator
from futures_core.strategy.registry import register

BASE_CONFIDENCE = 0.5


def _rsi_bonus(rsi: float, direction: str) -> float:
    # Distance past the extreme, mirrored for SHORT
    depth = rsi if direction == "LONG" else 100 - rsi
    if depth < 20:
        return 0.20
    if depth < 25:
        return 0.15
    if depth < 30:
        return 0.10
    return 0.0


def _macd_bonus(ind: Indicators, sign: int) -> tuple[float, bool]:
    """Return (bonus, strong) where strong means the line crossed zero too."""
    line, signal = ind.macd.line * sign, ind.macd.signal * sign
    histogram = line - signal
    if histogram > 0 and line > 0:
        return 0.20, True
    if histogram > 0:
        return 0.12, False
    if line > signal:
        return 0.05, False
    return 0.0, False


def _ema_bonus(ind: Indicators, sign: int) -> tuple[float, bool]:
    """Return (bonus, full_stack)."""
    price = ind.latest.close * sign
    ema20 = ind.ema20 * sign
    ema50 = ind.ema50 * sign if ind.ema50 is not None else None
    ema200 = ind.ema200 * sign if ind.ema200 is not None else None

    if price <= ema20:
        return 0.0, False
    if ema50 is not None and ema20 > ema50:
        if ema200 is not None and ema50 > ema200:
            return 0.15, True
        return 0.10, False
    return 0.05, False


def _volume_bonus(factor: float) -> float:
    if factor > 1.5:
        return 0.15
    if factor > 1.2:
        return 0.10
    if factor > 1.0:
        return 0.05
    return 0.0


@register
class MomentumEvaluator(Evaluator):
    """Fade RSI extremes once MACD and price/EMA20 confirm the turn.

    RSI < oversold  + MACD line > signal + price > EMA20 → LONG
    RSI > overbought + MACD line < signal + price < EMA20 → SHORT

    Confidence starts at 0.5 and collects tiered bonuses for RSI depth,
    MACD strength, EMA stack alignment and volume, capped at 1.0.
    """

    name = "momentum"
    priority = 0

    def __init__(self, **params: Any) -> None:
        super().__init__(**params)
        self.oversold = float(self.params.get("oversold", 30))
        self.overbought = float(self.params.get("overbought", 70))

    def evaluate(self, series: Sequence[Candle], indicators: Indicators) -> Signal:
        ind = indicators
        price = ind.latest.close

        long_setup = ind.rsi < self.oversold and ind.macd.line > ind.macd.signal and price > ind.ema20
        short_setup = ind.rsi > self.overbought and ind.macd.line < ind.macd.signal and price < ind.ema20

        if long_setup:
            direction, sign = "LONG", 1
        elif short_setup:
            direction, sign = "SHORT", -1
        else:
            return self.flat()

        macd_bonus, macd_strong = _macd_bonus(ind, sign)
        ema_bonus, full_stack = _ema_bonus(ind, sign)
        confidence = (
            BASE_CONFIDENCE
            + _rsi_bonus(ind.rsi, direction)
            + macd_bonus
            + ema_bonus
            + _volume_bonus(ind.volume.factor)
        )
        confidence = min(1.0, confidence)

        bias = "bull" if direction == "LONG" else "bear"
        if full_stack:
            trend = "uptrend" if direction == "LONG" else "downtrend"
        else:
            trend = "price>EMA20" if direction == "LONG" else "price<EMA20"
        parts = [
            f"RSI {ind.rsi:.1f}",
            f"MACD {'strong' if macd_strong else 'weak'} {bias}",
            trend,
        ]
        if ind.volume.factor > 1.0:
            parts.append(f"vol {ind.volume.factor:.2f}x")

        return Signal(
            direction=direction,
            confidence=confidence,
            reason=", ".join(parts),
            source=self.name,
            metadata={
                "rsi": round(ind.rsi, 2),
                "macd_line": ind.macd.line,
                "macd_signal": ind.macd.signal,
                "ema20": ind.ema20,
                "volume_factor": round(ind.volume.factor, 4),
            },
        )
