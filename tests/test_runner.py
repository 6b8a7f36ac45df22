"""Tests for the trading cycle runner."""

from __future__ import annotations

import asyncio

import pytest

from fakes import (
    FakeGateway,
    FakeScanner,
    FakeSource,
    RecordingNotifier,
    breakdown_series,
    breakout_series,
    choppy_series,
    make_series,
    position_record,
)

from futures_core.config.schema import AppConfig
from futures_core.errors import TransientNetworkError
from futures_core.exchange import TickerFeed
from futures_core.orchestrator.runner import TradingBot
from futures_core.strategy.fusion import SignalFusion, build_evaluators
from futures_core.trading import PositionLifecycleManager, PositionState, PositionTracker


def _bot(series, gateway=None, config=None, errors=None, symbols=(), price_feed=None):
    config = config or AppConfig()
    gateway = gateway or FakeGateway()
    notifier = RecordingNotifier()
    tracker = PositionTracker(trailing_stop_pct=config.risk.trailing_stop_pct)
    return TradingBot(
        config=config,
        fusion=SignalFusion(FakeSource(series, errors=errors), build_evaluators()),
        scanner=FakeScanner(list(symbols)),
        gateway=gateway,
        tracker=tracker,
        lifecycle=PositionLifecycleManager(gateway, tracker, notifier, config.risk),
        notifier=notifier,
        price_feed=price_feed,
    )


def _actions(outcomes):
    return {o.symbol: o.action for o in outcomes}


class TestRunCycle:
    def test_breakout_opens_position(self):
        gateway = FakeGateway()
        bot = _bot({"AAA_USDT": breakout_series()}, gateway=gateway)

        outcomes = asyncio.run(bot.run_cycle(["AAA_USDT"]))

        assert len(outcomes) == 1
        outcome = outcomes[0]
        assert outcome.action == "OPEN"
        assert outcome.signal.source == "breakout"
        assert outcome.signal.confidence == pytest.approx(0.98)
        assert outcome.risk.stop_loss_price == 101.97
        assert gateway.orders[0].side == "OPEN_LONG"
        assert bot.notifier.names == ["signal", "order_placed"]

    def test_breakdown_opens_short(self):
        gateway = FakeGateway()
        bot = _bot({"AAA_USDT": breakdown_series()}, gateway=gateway)
        outcomes = asyncio.run(bot.run_cycle(["AAA_USDT"]))
        assert outcomes[0].action == "OPEN"
        assert gateway.orders[0].side == "OPEN_SHORT"

    def test_flat_market_skipped(self):
        bot = _bot({"AAA_USDT": choppy_series()})
        outcomes = asyncio.run(bot.run_cycle(["AAA_USDT"]))
        assert _actions(outcomes) == {"AAA_USDT": "SKIP"}

    def test_never_exceeds_max_open_positions(self):
        symbols = ["A_USDT", "B_USDT", "C_USDT", "D_USDT"]
        gateway = FakeGateway()
        config = AppConfig.model_validate({"risk": {"max_open_positions": 2}})
        bot = _bot({s: breakout_series() for s in symbols}, gateway=gateway, config=config)

        outcomes = asyncio.run(bot.run_cycle(symbols))

        assert [o.action for o in outcomes] == ["OPEN", "OPEN", "SKIP", "SKIP"]
        assert [o.symbol for o in gateway.orders] == ["A_USDT", "B_USDT"]
        assert outcomes[2].reason == "Max positions reached (2/2)"

    def test_held_positions_count_toward_limit(self):
        gateway = FakeGateway(positions=[position_record("H_USDT")], tickers={"H_USDT": 100.0})
        config = AppConfig.model_validate({"risk": {"max_open_positions": 1}})
        bot = _bot({"A_USDT": breakout_series(), "H_USDT": choppy_series()},
                   gateway=gateway, config=config)

        outcomes = asyncio.run(bot.run_cycle(["A_USDT"]))

        assert _actions(outcomes) == {"H_USDT": "HOLD", "A_USDT": "SKIP"}
        assert gateway.orders == []

    def test_one_position_per_symbol_across_cycles(self):
        gateway = FakeGateway(tickers={"AAA_USDT": 103.0}, fill_orders=True)
        bot = _bot({"AAA_USDT": breakout_series()}, gateway=gateway)

        first = asyncio.run(bot.run_cycle(["AAA_USDT"]))
        second = asyncio.run(bot.run_cycle(["AAA_USDT"]))

        assert [o.action for o in first] == ["OPEN"]
        assert [o.action for o in second] == ["HOLD"]
        assert len(gateway.orders) == 1
        assert bot.lifecycle.state("AAA_USDT") is PositionState.OPEN

    def test_unfilled_order_reverts_and_reenters(self):
        gateway = FakeGateway()
        bot = _bot({"AAA_USDT": breakout_series()}, gateway=gateway)

        asyncio.run(bot.run_cycle(["AAA_USDT"]))
        second = asyncio.run(bot.run_cycle(["AAA_USDT"]))

        assert [o.action for o in second] == ["OPEN"]
        assert len(gateway.orders) == 2

    def test_reverse_signal_closes_held_position(self):
        gateway = FakeGateway(positions=[position_record("AAA_USDT", position_type=2)],
                              tickers={"AAA_USDT": 103.0})
        bot = _bot({"AAA_USDT": breakout_series()}, gateway=gateway)

        outcomes = asyncio.run(bot.run_cycle(["AAA_USDT"]))

        assert len(outcomes) == 1
        assert outcomes[0].action == "CLOSE"
        assert outcomes[0].reason == "Reverse signal"
        assert gateway.closed == [("AAA_USDT", "SHORT")]
        assert gateway.orders == []

    def test_held_symbol_outside_universe_is_managed(self):
        gateway = FakeGateway(positions=[position_record("H_USDT")], tickers={"H_USDT": 101.0})
        bot = _bot({"H_USDT": choppy_series()}, gateway=gateway)

        outcomes = asyncio.run(bot.run_cycle([]))

        assert _actions(outcomes) == {"H_USDT": "HOLD"}
        assert bot.tracker.get("H_USDT").current_price == 101.0

    def test_signal_failure_on_held_symbol_still_runs_exits(self):
        # Trailing stop breached while the candle fetch fails
        gateway = FakeGateway(positions=[position_record("H_USDT")], tickers={"H_USDT": 110.0})
        bot = _bot({}, gateway=gateway, errors={"H_USDT": TransientNetworkError("timeout")})
        asyncio.run(bot.run_cycle([]))
        gateway.tickers["H_USDT"] = 100.0

        outcomes = asyncio.run(bot.run_cycle([]))

        assert outcomes[0].action == "CLOSE"
        assert outcomes[0].reason == "Trailing stop"

    def test_per_symbol_failures_do_not_abort_cycle(self):
        gateway = FakeGateway()
        bot = _bot(
            {"OK_USDT": breakout_series(), "SHORT_USDT": make_series([100.0] * 10)},
            gateway=gateway,
            errors={"ERR_USDT": TransientNetworkError("timeout")},
        )

        outcomes = asyncio.run(bot.run_cycle(["ERR_USDT", "SHORT_USDT", "OK_USDT"]))

        assert [o.symbol for o in outcomes] == ["ERR_USDT", "SHORT_USDT", "OK_USDT"]
        assert _actions(outcomes) == {"ERR_USDT": "ERROR", "SHORT_USDT": "SKIP", "OK_USDT": "OPEN"}

    def test_batches_cover_every_symbol(self):
        symbols = [f"S{i}_USDT" for i in range(7)]
        config = AppConfig.model_validate({"scheduler": {"batch_size": 3}})
        bot = _bot({s: choppy_series() for s in symbols}, config=config)

        outcomes = asyncio.run(bot.run_cycle(symbols))

        assert [o.symbol for o in outcomes] == symbols
        assert len(bot.fusion.source.requests) == 7

    def test_duplicate_symbols_get_one_outcome(self):
        bot = _bot({"AAA_USDT": choppy_series()})
        outcomes = asyncio.run(bot.run_cycle(["AAA_USDT", "AAA_USDT"]))
        assert len(outcomes) == 1

    def test_price_feed_preferred_over_rest(self):
        feed = TickerFeed()
        feed.update_price("H_USDT", 105.0)
        gateway = FakeGateway(positions=[position_record("H_USDT")], tickers={"H_USDT": 101.0})
        bot = _bot({"H_USDT": choppy_series()}, gateway=gateway, price_feed=feed)

        asyncio.run(bot.run_cycle([]))

        assert bot.tracker.get("H_USDT").current_price == 105.0

    def test_falls_back_to_candle_close(self):
        gateway = FakeGateway(positions=[position_record("H_USDT")])
        bot = _bot({"H_USDT": choppy_series()}, gateway=gateway)

        asyncio.run(bot.run_cycle([]))

        assert bot.tracker.get("H_USDT").current_price == 101.0

    def test_broker_failure_propagates(self):
        class _DownGateway(FakeGateway):
            async def get_open_positions(self):
                raise TransientNetworkError("positions unavailable")

        bot = _bot({}, gateway=_DownGateway())
        with pytest.raises(TransientNetworkError):
            asyncio.run(bot.run_cycle(["AAA_USDT"]))


class TestScanAndRun:
    def test_uses_scanned_universe(self):
        gateway = FakeGateway()
        bot = _bot({"AAA_USDT": breakout_series()}, gateway=gateway, symbols=["AAA_USDT"])

        outcomes = asyncio.run(bot.scan_and_run())

        assert _actions(outcomes) == {"AAA_USDT": "OPEN"}
        assert bot.cycle == 1

    def test_report_cycle_error_notifies(self):
        bot = _bot({})
        asyncio.run(bot.report_cycle_error(RuntimeError("scan failed")))
        assert bot.notifier.events == [("error", {"context": "Trading cycle", "error": "scan failed"})]
