"""Bot runner — one trading cycle per scheduler tick."""

from __future__ import annotations

import asyncio
import signal
from collections import Counter
from collections.abc import Sequence

import structlog

from futures_core.config.loader import ensure_auth, load_config
from futures_core.config.schema import AppConfig
from futures_core.errors import InsufficientDataError
from futures_core.exchange import (
    BrokerGateway,
    MarketScanner,
    MexcFuturesClient,
    MexcMarketScanner,
    TickerFeed,
)
from futures_core.logging.setup import bind_cycle, setup_logging
from futures_core.models import CycleOutcome, FusedSignal
from futures_core.notify import NotificationSink, build_notifier, safe_notify
from futures_core.notify.base import BOT_STATUS, ERROR
from futures_core.orchestrator.scheduler import PeriodicTask
from futures_core.strategy.fusion import SignalFusion
from futures_core.trading import PositionLifecycleManager, PositionTracker
from futures_core.trading.tracker import held_symbol

log = structlog.get_logger("orchestrator")


class TradingBot:
    """Wires fusion, tracking and the lifecycle manager into one cycle."""

    def __init__(
        self,
        config: AppConfig,
        fusion: SignalFusion,
        scanner: MarketScanner,
        gateway: BrokerGateway,
        tracker: PositionTracker,
        lifecycle: PositionLifecycleManager,
        notifier: NotificationSink,
        price_feed: TickerFeed | None = None,
    ) -> None:
        self.config = config
        self.fusion = fusion
        self.scanner = scanner
        self.gateway = gateway
        self.tracker = tracker
        self.lifecycle = lifecycle
        self.notifier = notifier
        self.price_feed = price_feed
        self.cycle = 0

    # ── Signals ───────────────────────────────────────────────

    async def _signal_for(self, symbol: str) -> FusedSignal | CycleOutcome:
        try:
            return await self.fusion.fuse(symbol)
        except InsufficientDataError as exc:
            log.info("insufficient_data", symbol=symbol, got=exc.got, need=exc.need)
            return CycleOutcome(symbol=symbol, action="SKIP", reason=str(exc))
        except Exception as exc:
            log.exception("signal_error", symbol=symbol)
            return CycleOutcome(symbol=symbol, action="ERROR", reason=f"Signal failed: {exc}")

    async def compute_signals(
        self, symbols: Sequence[str],
    ) -> tuple[dict[str, FusedSignal], dict[str, CycleOutcome]]:
        """Fused signals per symbol, computed ``batch_size`` at a time.

        Per-symbol failures come back as SKIP/ERROR outcomes and never
        abort the batch.
        """
        signals: dict[str, FusedSignal] = {}
        failures: dict[str, CycleOutcome] = {}
        batch_size = self.config.scheduler.batch_size
        for start in range(0, len(symbols), batch_size):
            batch = symbols[start:start + batch_size]
            results = await asyncio.gather(*(self._signal_for(s) for s in batch))
            for symbol, result in zip(batch, results):
                if isinstance(result, CycleOutcome):
                    failures[symbol] = result
                else:
                    signals[symbol] = result
        return signals, failures

    # ── Prices ────────────────────────────────────────────────

    async def _current_price(self, symbol: str, signal: FusedSignal | None) -> float | None:
        """Ticker feed, then REST ticker, then the latest candle close."""
        if self.price_feed is not None:
            price = self.price_feed.get_price(symbol)
            if price is not None:
                return price
        try:
            return await self.gateway.get_ticker(symbol)
        except Exception as exc:
            log.warning("ticker_unavailable", symbol=symbol, error=str(exc))
        return signal.price if signal is not None else None

    # ── Cycle ─────────────────────────────────────────────────

    async def run_cycle(self, symbols: Sequence[str]) -> list[CycleOutcome]:
        """One pass: exits for held symbols first, then entries in *symbols* order.

        Every symbol in *symbols* plus every held symbol gets exactly one
        outcome. Broker snapshot failures propagate to the caller.
        """
        self.cycle += 1
        bind_cycle(self.cycle)

        raw_positions = await self.gateway.get_open_positions()
        held = [s for s in (held_symbol(r) for r in raw_positions) if s is not None]
        entry_symbols = list(dict.fromkeys(symbols))
        universe = list(dict.fromkeys([*entry_symbols, *held]))

        signals, failures = await self.compute_signals(universe)

        prices = {s: await self._current_price(s, signals.get(s)) for s in dict.fromkeys(held)}
        positions = self.tracker.normalize(raw_positions, prices)
        self.lifecycle.begin_cycle(positions)

        outcomes: list[CycleOutcome] = []
        for symbol, position in positions.items():
            fused = signals.get(symbol)
            if fused is None:
                reason = failures[symbol].reason if symbol in failures else "No signal"
                fused = FusedSignal.flat(symbol, price=position.current_price, reason=reason)
            outcomes.append(await self.lifecycle.manage_position(position, fused))

        for symbol in entry_symbols:
            if symbol in positions:
                continue
            if symbol in failures:
                outcomes.append(failures[symbol])
                continue
            outcomes.append(await self.lifecycle.try_enter(symbol, signals[symbol]))

        counts = Counter(o.action for o in outcomes)
        log.info(
            "cycle_completed",
            symbols=len(universe),
            positions=len(positions),
            **{action.lower(): n for action, n in sorted(counts.items())},
        )
        return outcomes

    async def scan_and_run(self) -> list[CycleOutcome]:
        """Scan the market universe and run one cycle over it."""
        markets = await self.scanner.scan()
        symbols = [m.symbol for m in markets]
        log.info("universe_selected", count=len(symbols), top=symbols[:5])
        return await self.run_cycle(symbols)

    async def report_cycle_error(self, exc: Exception) -> None:
        await safe_notify(self.notifier, ERROR, {"context": "Trading cycle", "error": str(exc)})

    async def close(self) -> None:
        if self.price_feed is not None:
            await self.price_feed.stop()
        for resource in (self.gateway, self.notifier):
            closer = getattr(resource, "close", None)
            if closer is not None:
                await closer()


def build_bot(config: AppConfig, max_symbols: int | None = None) -> TradingBot:
    """Assemble a TradingBot backed by MEXC from *config*."""
    client = MexcFuturesClient.from_config(config.exchange)
    scanner = MexcMarketScanner(
        client,
        config.strategy,
        max_symbols=max_symbols or config.scheduler.max_symbols,
    )
    notifier = build_notifier(config.telegram)

    tracker = PositionTracker(trailing_stop_pct=config.risk.trailing_stop_pct)
    lifecycle = PositionLifecycleManager(client, tracker, notifier, config.risk)
    price_feed = None
    if config.price_feed.enabled:
        price_feed = TickerFeed(config.exchange.ws_url, staleness_s=config.price_feed.staleness_s)

    return TradingBot(
        config=config,
        fusion=SignalFusion.from_config(client, config),
        scanner=scanner,
        gateway=client,
        tracker=tracker,
        lifecycle=lifecycle,
        notifier=notifier,
        price_feed=price_feed,
    )


def _install_signal_handlers(task: PeriodicTask) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.stop)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            log.debug("signal_handler_unsupported", signal=sig.name)


async def run_loop(config: AppConfig, once: bool = False, max_symbols: int | None = None) -> None:
    """Main bot loop — scan, evaluate, trade, sleep, until stopped."""
    bot = build_bot(config, max_symbols=max_symbols)
    task = PeriodicTask(
        bot.scan_and_run,
        delay_s=config.scheduler.cycle_delay_s,
        name="trading_cycle",
        max_cycles=1 if once else None,
        on_error=bot.report_cycle_error,
    )
    _install_signal_handlers(task)

    log.info(
        "bot_started",
        leverage=config.risk.leverage,
        position_size=config.risk.position_size,
        max_open_positions=config.risk.max_open_positions,
        interval=config.klines.interval,
    )
    await safe_notify(bot.notifier, BOT_STATUS, {
        "status": "started",
        "message": (
            f"Leverage {config.risk.leverage}x, size {config.risk.position_size}, "
            f"max positions {config.risk.max_open_positions}"
        ),
    })
    try:
        if bot.price_feed is not None:
            await bot.price_feed.start()
        await task.run()
    finally:
        await safe_notify(bot.notifier, BOT_STATUS, {
            "status": "stopped",
            "message": f"Stopped after {task.cycles} cycle(s)",
        })
        await bot.close()
        log.info("bot_stopped", cycles=task.cycles)


def main(config_path: str | None = None, once: bool = False, max_symbols: int | None = None) -> None:
    """Entry point — load config, set up logging, run the async loop."""
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format=config.logging.format)
    log.info("config_loaded", path=config_path, **config.exchange.model_dump())
    ensure_auth(config)
    asyncio.run(run_loop(config, once=once, max_symbols=max_symbols))
