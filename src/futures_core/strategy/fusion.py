"""Signal fusion — run every evaluator on one snapshot and keep the strongest."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

import structlog

from futures_core.models import FusedSignal, Signal
from futures_core.strategy.base import Evaluator
from futures_core.strategy.indicators import compute_indicators
from futures_core.strategy.registry import registered_evaluators

# Ensure all evaluator modules are imported so @register fires
import futures_core.strategy.evaluators  # noqa: F401

if TYPE_CHECKING:
    from futures_core.config.schema import AppConfig
    from futures_core.exchange.base import MarketDataSource

log = structlog.get_logger("signal_fusion")


def fuse_signals(
    symbol: str,
    candidates: Iterable[Signal],
    price: float | None = None,
) -> FusedSignal:
    """Pick the highest-confidence non-FLAT candidate.

    *candidates* must be in evaluator priority order: on equal confidence
    the earlier one wins. All FLAT (or no candidates) yields FLAT/0.
    """
    candidates = tuple(candidates)
    best: Signal | None = None
    for candidate in candidates:
        if candidate.is_flat:
            continue
        if best is None or candidate.confidence > best.confidence:
            best = candidate

    if best is None:
        return FusedSignal(symbol=symbol, price=price, candidates=candidates)

    return FusedSignal(
        symbol=symbol,
        direction=best.direction,
        confidence=best.confidence,
        reason=best.reason,
        source=best.source,
        price=price,
        candidates=candidates,
    )


def build_evaluators(params: Mapping[str, Mapping[str, Any]] | None = None) -> list[Evaluator]:
    """Instantiate every registered evaluator in priority order.

    *params* maps evaluator name to constructor keyword params.
    """
    params = params or {}
    return [cls(**dict(params.get(cls.name, {}))) for cls in registered_evaluators()]


class SignalFusion:
    """Fetches a candle series per symbol and fuses the evaluators' verdicts."""

    def __init__(
        self,
        source: MarketDataSource,
        evaluators: Sequence[Evaluator],
        interval: str = "1m",
        limit: int = 200,
    ) -> None:
        self.source = source
        self.evaluators = sorted(evaluators, key=lambda e: e.priority)
        self.interval = interval
        self.limit = limit

    @classmethod
    def from_config(cls, source: MarketDataSource, config: AppConfig) -> SignalFusion:
        evaluators = build_evaluators({
            "breakout": {
                "breakout_volume_factor": config.strategy.breakout_volume_factor,
                "lookback": config.strategy.breakout_lookback,
            },
        })
        return cls(
            source,
            evaluators,
            interval=config.klines.interval,
            limit=config.klines.limit,
        )

    async def fuse(self, symbol: str) -> FusedSignal:
        """Fetch, compute indicators and fuse.

        Raises InsufficientDataError when the series is too short; transport
        errors from the source propagate unchanged.
        """
        series = await self.source.fetch_series(symbol, self.interval, self.limit)
        indicators = compute_indicators(series, symbol=symbol)
        candidates = [e.evaluate(series, indicators) for e in self.evaluators]
        fused = fuse_signals(symbol, candidates, price=indicators.latest.close)
        log.debug(
            "signal_fused",
            symbol=symbol,
            direction=fused.direction,
            confidence=fused.confidence,
            source=fused.source,
            reason=fused.reason,
        )
        return fused
