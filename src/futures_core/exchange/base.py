"""Collaborator interfaces consumed by the trading core."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from futures_core.models import Candle, MarketSummary, OrderAck, OrderRequest, Side


class MarketDataSource(ABC):
    @abstractmethod
    async def fetch_series(self, symbol: str, interval: str, limit: int) -> list[Candle]:
        """Return at most *limit* candles, oldest first."""
        ...


class MarketScanner(ABC):
    @abstractmethod
    async def scan(self) -> list[MarketSummary]:
        """Return tradable markets inside the volume band, highest volume first."""
        ...


class BrokerGateway(ABC):
    """Account-side operations. Implementations raise BrokerRejection on refusal."""

    @abstractmethod
    async def get_open_positions(self) -> list[dict[str, Any]]:
        """Raw broker position records; shape is normalized by PositionTracker."""
        ...

    @abstractmethod
    async def get_ticker(self, symbol: str) -> float:
        ...

    @abstractmethod
    async def submit_order(self, order: OrderRequest) -> OrderAck:
        ...

    @abstractmethod
    async def close_position(self, symbol: str, side: Side) -> OrderAck:
        """Market-close the full held volume of *symbol* on *side*."""
        ...

    @abstractmethod
    async def cancel_order(self, symbol: str, order_id: str) -> OrderAck:
        """Cancel a resting order; raises BrokerRejection if the broker refuses."""
        ...
