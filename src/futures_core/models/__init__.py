"""Pydantic domain models."""

from futures_core.models.market import (
    Candle,
    Indicators,
    MacdValue,
    MarketSummary,
    VolumeStats,
)
from futures_core.models.order import OrderAck, OrderRequest
from futures_core.models.outcome import Action, CycleOutcome
from futures_core.models.position import Position, RiskParameters, Side
from futures_core.models.signal import Direction, FusedSignal, Signal

__all__ = [
    "Action",
    "Candle",
    "CycleOutcome",
    "Direction",
    "FusedSignal",
    "Indicators",
    "MacdValue",
    "MarketSummary",
    "OrderAck",
    "OrderRequest",
    "Position",
    "RiskParameters",
    "Side",
    "Signal",
    "VolumeStats",
]
