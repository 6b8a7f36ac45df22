"""Tests for the WebSocket ticker feed cache."""

from __future__ import annotations

import asyncio
import json

from fakes import FakeClock

from futures_core.exchange.price_feed import TickerFeed


class TestTickerFeed:
    def test_push_tickers_updates_prices(self):
        feed = TickerFeed(clock=FakeClock())
        updated = feed.handle_message({
            "channel": "push.tickers",
            "data": [
                {"symbol": "BTC_USDT", "lastPrice": 65000.5},
                {"symbol": "ETH_USDT", "lastPrice": "3456.7"},
            ],
        })
        assert updated == 2
        assert feed.get_price("BTC_USDT") == 65000.5
        assert feed.get_price("ETH_USDT") == 3456.7

    def test_single_ticker_channel(self):
        feed = TickerFeed(clock=FakeClock())
        feed.handle_message({"channel": "push.ticker", "data": {"symbol": "SOL_USDT", "lastPrice": 150}})
        assert feed.get_price("SOL_USDT") == 150.0

    def test_unknown_symbol(self):
        assert TickerFeed(clock=FakeClock()).get_price("BTC_USDT") is None

    def test_stale_price_ignored(self):
        clock = FakeClock()
        feed = TickerFeed(staleness_s=30, clock=clock)
        feed.update_price("BTC_USDT", 65000.0)
        clock.advance(30)
        assert feed.get_price("BTC_USDT") == 65000.0
        clock.advance(1)
        assert feed.get_price("BTC_USDT") is None

    def test_symbol_filter(self):
        feed = TickerFeed(symbols=["BTC_USDT"], clock=FakeClock())
        feed.handle_message({
            "channel": "push.tickers",
            "data": [{"symbol": "BTC_USDT", "lastPrice": 1}, {"symbol": "ETH_USDT", "lastPrice": 2}],
        })
        assert feed.get_price("ETH_USDT") is None

    def test_bad_messages_ignored(self):
        feed = TickerFeed(clock=FakeClock())
        assert feed.handle_message({"channel": "pong", "data": 1700000000000}) == 0
        assert feed.handle_message({
            "channel": "push.tickers",
            "data": [{"symbol": "BTC_USDT", "lastPrice": "n/a"}, {"lastPrice": 1}, "junk"],
        }) == 0
        assert feed.get_price("BTC_USDT") is None

    def test_non_object_frames_ignored(self):
        feed = TickerFeed(clock=FakeClock())
        assert feed.handle_raw("not json") == 0
        assert feed.handle_raw("[1, 2]") == 0
        assert feed.handle_message({"channel": "push.tickers", "data": 5}) == 0
        assert feed.handle_raw(json.dumps({
            "channel": "push.ticker", "data": {"symbol": "BTC_USDT", "lastPrice": 7},
        })) == 1
        assert feed.get_price("BTC_USDT") == 7.0


# ── WebSocket loop ────────────────────────────────────────────


class _FakeSocket:
    def __init__(self, frames):
        self.frames = frames
        self.sent = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def send(self, data):
        self.sent.append(json.loads(data))

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for frame in self.frames:
            yield frame


class TestTickerFeedLoop:
    FRAMES = [
        "not json",
        "[1, 2]",
        json.dumps({"channel": "push.tickers", "data": [{"symbol": "BTC_USDT", "lastPrice": 65000}]}),
    ]

    def _run(self, feed_kwargs, stop_after):
        connects = []
        sockets = []

        async def main():
            loop = asyncio.get_running_loop()

            def connect(url):
                connects.append(loop.time())
                if len(connects) >= stop_after:
                    feed._running = False
                socket = _FakeSocket(self.FRAMES)
                sockets.append(socket)
                return socket

            feed = TickerFeed(clock=FakeClock(), connect=connect, **feed_kwargs)
            feed._running = True
            await asyncio.wait_for(feed._ws_loop(), timeout=5)
            return feed

        return asyncio.run(main()), connects, sockets

    def test_bad_frames_do_not_drop_connection(self):
        feed, connects, sockets = self._run({"reconnect_delay_s": 0}, stop_after=2)
        assert feed.get_price("BTC_USDT") == 65000.0
        assert sockets[0].sent == [{"method": "sub.tickers", "param": {}}]
        assert len(connects) == 2

    def test_waits_before_reconnecting_after_clean_close(self):
        _, connects, _ = self._run({"reconnect_delay_s": 0.05}, stop_after=2)
        assert len(connects) == 2
        assert connects[1] - connects[0] >= 0.04

    def test_connect_error_backs_off(self):
        attempts = []

        async def main():
            loop = asyncio.get_running_loop()

            def connect(url):
                attempts.append(loop.time())
                if len(attempts) >= 2:
                    feed._running = False
                raise OSError("connection refused")

            feed = TickerFeed(clock=FakeClock(), connect=connect, reconnect_delay_s=0.05)
            feed._running = True
            await asyncio.wait_for(feed._ws_loop(), timeout=5)

        asyncio.run(main())
        assert len(attempts) == 2
        assert attempts[1] - attempts[0] >= 0.04
