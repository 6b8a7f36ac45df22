"""Position and risk models for live futures positions."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

Side = Literal["LONG", "SHORT"]


class Position(BaseModel):
    """A broker-confirmed open position, enriched with ratchet state.

    ``max_roi``, ``highest_price``, ``lowest_price`` and
    ``trailing_stop_price`` survive across cycles for as long as the broker
    keeps reporting the same position.
    """

    symbol: str
    side: Side
    entry_price: float
    margin_used: float
    leverage: float = 1.0
    hold_vol: float
    position_id: str | None = None
    current_price: float | None = None
    unrealized_pnl: float = 0.0
    roi: float = 0.0
    max_roi: float | None = None
    highest_price: float
    lowest_price: float
    trailing_stop_price: float | None = None

    @property
    def notional(self) -> float:
        return self.margin_used * self.leverage if self.margin_used > 0 else 0.0


class RiskParameters(BaseModel):
    """Stop prices for a new entry. Lives only as long as the order payload."""

    model_config = ConfigDict(frozen=True)

    stop_loss_price: float
    take_profit_price: float | None = None
    trailing_stop_price: float | None = None
