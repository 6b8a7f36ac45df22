"""TickerFeed — in-memory last prices fed by the MEXC futures WebSocket."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import structlog
import websockets

log = structlog.get_logger("ticker_feed")

RECONNECT_DELAY_S = 5
PING_INTERVAL_S = 15


@dataclass
class PriceEntry:
    """A cached price with metadata."""

    price: float
    updated_at: float  # clock() seconds
    source: str  # "ws", "manual"


class TickerFeed:
    """Price cache kept fresh by the ``sub.tickers`` stream.

    ``get_price`` returns None for unknown or stale symbols so callers can
    fall back to a REST ticker.
    """

    def __init__(
        self,
        ws_url: str = "wss://contract.mexc.com/edge",
        staleness_s: float = 30.0,
        symbols: Iterable[str] | None = None,
        clock: Callable[[], float] = time.monotonic,
        connect: Callable[[str], Any] = websockets.connect,
        reconnect_delay_s: float = RECONNECT_DELAY_S,
    ) -> None:
        self._ws_url = ws_url
        self._staleness_s = staleness_s
        # None tracks every symbol the stream pushes
        self._symbols = set(symbols) if symbols is not None else None
        self._clock = clock
        self._connect = connect
        self._reconnect_delay_s = reconnect_delay_s
        self._prices: dict[str, PriceEntry] = {}
        self._tasks: list[asyncio.Task] = []
        self._running = False

    # ── Public API ────────────────────────────────────────────

    def get_price(self, symbol: str) -> float | None:
        """Latest price for *symbol*, or None if missing or stale."""
        entry = self._prices.get(symbol)
        if entry is None or self._clock() - entry.updated_at > self._staleness_s:
            return None
        return entry.price

    def update_price(self, symbol: str, price: float, source: str = "manual") -> None:
        self._prices[symbol] = PriceEntry(price=price, updated_at=self._clock(), source=source)

    def handle_raw(self, raw: str | bytes) -> int:
        """Decode one frame and apply it; malformed frames are logged and skipped."""
        try:
            msg = json.loads(raw)
        except ValueError:
            log.warning("ticker_frame_invalid", raw=str(raw)[:100])
            return 0
        return self.handle_message(msg)

    def handle_message(self, msg: Any) -> int:
        """Apply a ``push.tickers`` / ``push.ticker`` message; returns prices updated."""
        if not isinstance(msg, dict):
            log.warning("ticker_frame_unexpected", kind=type(msg).__name__)
            return 0
        channel = msg.get("channel")
        if channel == "push.tickers":
            items = msg.get("data") or []
            if not isinstance(items, list):
                return 0
        elif channel == "push.ticker":
            items = [msg.get("data") or {}]
        else:
            return 0

        updated = 0
        for item in items:
            if not isinstance(item, dict):
                continue
            symbol = item.get("symbol")
            if not symbol or (self._symbols is not None and symbol not in self._symbols):
                continue
            try:
                price = float(item["lastPrice"])
            except (KeyError, TypeError, ValueError):
                log.warning("ticker_parse_error", symbol=symbol, raw=item.get("lastPrice"))
                continue
            self.update_price(symbol, price, source="ws")
            updated += 1
        return updated

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        """Start the WebSocket loop in the background."""
        if self._running:
            return
        self._running = True
        self._tasks.append(asyncio.create_task(self._ws_loop()))
        log.info("ticker_feed_started", url=self._ws_url)

    async def stop(self) -> None:
        """Cancel background tasks."""
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()
        log.info("ticker_feed_stopped")

    async def _ping_loop(self, ws: Any) -> None:
        while True:
            await asyncio.sleep(PING_INTERVAL_S)
            await ws.send(json.dumps({"method": "ping"}))

    async def _ws_loop(self) -> None:
        """Subscribe to all tickers; wait before reconnecting after any disconnect."""
        while self._running:
            try:
                log.info("ticker_ws_connecting", url=self._ws_url)
                async with self._connect(self._ws_url) as ws:
                    await ws.send(json.dumps({"method": "sub.tickers", "param": {}}))
                    log.info("ticker_ws_subscribed")
                    pinger = asyncio.create_task(self._ping_loop(ws))
                    try:
                        async for raw in ws:
                            if not self._running:
                                break
                            self.handle_raw(raw)
                    finally:
                        pinger.cancel()
                log.warning("ticker_ws_closed", reconnect_in=self._reconnect_delay_s)

            except asyncio.CancelledError:
                break
            except Exception:
                log.exception("ticker_ws_error", reconnect_in=self._reconnect_delay_s)

            if self._running:
                await asyncio.sleep(self._reconnect_delay_s)
