"""Range breakout evaluator — close beyond the lookback extreme on heavy volume."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from futures_core.models import Candle, Indicators, Signal
from futures_core.strategy.base import Evaluator
from futures_core.strategy.registry import register

LOOKBACK = 40


def breakout_confidence(volume_factor: float) -> float:
    """0.65 base plus a volume bonus capped at 0.33, overall capped at 0.98."""
    volume_bonus = min(0.33, (volume_factor - 1) / 3.5)
    return max(0.0, min(0.98, 0.65 + volume_bonus))


@register
class BreakoutEvaluator(Evaluator):
    """Enter when price closes outside the recent range with volume confirmation.

    close > max(high over lookback) and volume factor >= threshold → LONG
    close < min(low over lookback)  and volume factor >= threshold → SHORT

    The lookback window is the candles before the latest one.
    """

    name = "breakout"
    priority = 1

    def __init__(self, **params: Any) -> None:
        super().__init__(**params)
        self.lookback = int(self.params.get("lookback", LOOKBACK))
        if self.lookback < 1:
            raise ValueError(f"breakout lookback must be at least 1, got {self.lookback}")
        self.volume_factor = float(self.params.get("breakout_volume_factor", 1.5))

    def evaluate(self, series: Sequence[Candle], indicators: Indicators) -> Signal:
        if len(series) < self.lookback + 1:
            return self.flat()

        window = series[-self.lookback - 1:-1]
        recent_high = max(c.high for c in window)
        recent_low = min(c.low for c in window)
        price = indicators.latest.close
        factor = indicators.volume.factor

        if factor < self.volume_factor:
            return self.flat()

        if price > recent_high:
            direction = "LONG"
            reason = f"Breakout up with volume factor {factor:.2f}"
        elif price < recent_low:
            direction = "SHORT"
            reason = f"Breakdown with volume factor {factor:.2f}"
        else:
            return self.flat()

        return Signal(
            direction=direction,
            confidence=breakout_confidence(factor),
            reason=reason,
            source=self.name,
            metadata={
                "recent_high": recent_high,
                "recent_low": recent_low,
                "volume_factor": round(factor, 4),
            },
        )
