"""Order payloads exchanged with the broker gateway."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

OrderSide = Literal["OPEN_LONG", "OPEN_SHORT", "CLOSE_LONG", "CLOSE_SHORT"]
OrderType = Literal["MARKET", "LIMIT"]


class OrderRequest(BaseModel):
    symbol: str
    side: OrderSide
    type: OrderType = "MARKET"
    vol: float
    leverage: int
    price: float | None = None
    position_id: str | None = None
    stop_loss_price: float | None = None
    take_profit_price: float | None = None


class OrderAck(BaseModel):
    """Broker acknowledgement of an accepted order."""

    order_id: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)
