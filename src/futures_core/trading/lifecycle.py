"""PositionLifecycleManager — entry decisions and the exit priority chain."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import structlog

from futures_core.config.schema import RiskConfig
from futures_core.exchange.base import BrokerGateway
from futures_core.models import CycleOutcome, FusedSignal, OrderRequest, Position
from futures_core.notify.base import (
    ERROR,
    ORDER_PLACED,
    POSITION_CLOSED,
    SIGNAL,
    NotificationSink,
    safe_notify,
)
from futures_core.trading.risk import compute_stops
from futures_core.trading.tracker import PositionTracker

log = structlog.get_logger("lifecycle")

REASON_REVERSE = "Reverse signal"
REASON_TRAILING = "Trailing stop"
REASON_TAKE_PROFIT = "Take profit (ROI trailing)"


class PositionState(str, Enum):
    NONE = "NONE"
    PENDING_OPEN = "PENDING_OPEN"
    OPEN = "OPEN"
    PENDING_CLOSE = "PENDING_CLOSE"


@dataclass
class ExitVerdict:
    """Result of the exit chain — close or hold, with the winning reason."""

    close: bool
    reason: str = ""


# ── Pure exit predicates ──────────────────────────────────────


def should_close_on_reverse_signal(current_side: str, new_direction: str, enabled: bool) -> bool:
    """True when enabled and the new signal points the other way (never on FLAT)."""
    if not enabled or new_direction == "FLAT":
        return False
    return (current_side, new_direction) in (("LONG", "SHORT"), ("SHORT", "LONG"))


def is_trailing_stop_hit(side: str, price: float | None, trailing_stop_price: float | None) -> bool:
    """LONG: price <= stop. SHORT: price >= stop. False until a stop exists."""
    if price is None or trailing_stop_price is None:
        return False
    if side == "LONG":
        return price <= trailing_stop_price
    return price >= trailing_stop_price


def is_take_profit_hit(
    roi: float,
    max_roi: float | None,
    min_profit_roi_for_trail: float,
    trail_drop_from_max_roi: float,
) -> bool:
    """ROI is high enough and has given back enough from its peak."""
    if max_roi is None:
        return False
    return roi >= min_profit_roi_for_trail and (max_roi - roi) >= trail_drop_from_max_roi


def evaluate_exit(position: Position, signal: FusedSignal, config: RiskConfig) -> ExitVerdict:
    """Exit priority chain, first match wins:

    1. reverse signal (when enabled)
    2. trailing-stop breach
    3. peak-drawdown take-profit
    """
    if should_close_on_reverse_signal(position.side, signal.direction, config.close_on_reverse_signal):
        return ExitVerdict(close=True, reason=REASON_REVERSE)

    price = position.current_price if position.current_price is not None else signal.price
    if config.trailing_stop_pct and is_trailing_stop_hit(position.side, price, position.trailing_stop_price):
        return ExitVerdict(close=True, reason=REASON_TRAILING)

    if is_take_profit_hit(
        position.roi,
        position.max_roi,
        config.min_profit_roi_for_trail,
        config.trail_drop_from_max_roi,
    ):
        return ExitVerdict(close=True, reason=REASON_TAKE_PROFIT)

    return ExitVerdict(close=False)


# ── Manager ───────────────────────────────────────────────────


class PositionLifecycleManager:
    """Drives NONE → PENDING_OPEN → OPEN → PENDING_CLOSE → NONE per symbol.

    Not safe for concurrent use: the cycle runner calls it one symbol at a
    time against the snapshot installed by begin_cycle().
    """

    def __init__(
        self,
        gateway: BrokerGateway,
        tracker: PositionTracker,
        notifier: NotificationSink,
        config: RiskConfig,
    ) -> None:
        self.gateway = gateway
        self.tracker = tracker
        self.notifier = notifier
        self.config = config
        self._states: dict[str, PositionState] = {}
        self._opened: set[str] = set()
        self._closed: set[str] = set()

    def state(self, symbol: str) -> PositionState:
        return self._states.get(symbol, PositionState.NONE)

    def _set_state(self, symbol: str, state: PositionState) -> None:
        previous = self.state(symbol)
        if state is PositionState.NONE:
            self._states.pop(symbol, None)
        else:
            self._states[symbol] = state
        if previous is not state:
            log.debug("state_changed", symbol=symbol, previous=previous.value, state=state.value)

    @property
    def open_count(self) -> int:
        """Tracked positions plus orders accepted earlier in this cycle."""
        return len(self.tracker) + len(self._opened)

    def begin_cycle(self, positions: Mapping[str, Position]) -> None:
        """Reconcile states with a fresh broker snapshot and reset cycle counters."""
        self._opened.clear()
        self._closed.clear()
        for symbol in positions:
            if self.state(symbol) is PositionState.PENDING_OPEN:
                log.info("position_confirmed", symbol=symbol)
            self._set_state(symbol, PositionState.OPEN)
        for symbol, state in list(self._states.items()):
            if symbol in positions:
                continue
            if state is PositionState.PENDING_OPEN:
                log.warning("pending_open_unconfirmed", symbol=symbol)
            self._set_state(symbol, PositionState.NONE)

    # ── Exit ──────────────────────────────────────────────────

    async def manage_position(self, position: Position, signal: FusedSignal) -> CycleOutcome:
        """Run the exit chain for one open position and close it if triggered."""
        verdict = evaluate_exit(position, signal, self.config)
        if not verdict.close:
            log.debug(
                "position_held",
                symbol=position.symbol,
                side=position.side,
                roi=round(position.roi, 2),
                max_roi=position.max_roi,
                trailing_stop=position.trailing_stop_price,
            )
            return CycleOutcome(symbol=position.symbol, action="HOLD", reason="No exit condition", signal=signal)
        return await self._close(position, signal, verdict.reason)

    async def _close(self, position: Position, signal: FusedSignal, reason: str) -> CycleOutcome:
        symbol = position.symbol
        self._set_state(symbol, PositionState.PENDING_CLOSE)
        try:
            ack = await self.gateway.close_position(symbol, position.side)
        except Exception as exc:
            self._set_state(symbol, PositionState.OPEN)
            log.exception("position_close_failed", symbol=symbol, side=position.side, reason=reason)
            await safe_notify(self.notifier, ERROR, {
                "context": f"Close failed for {symbol}",
                "error": str(exc),
            })
            return CycleOutcome(symbol=symbol, action="ERROR", reason=f"Close failed: {exc}", signal=signal)

        self.tracker.drop(symbol)
        self._closed.add(symbol)
        self._set_state(symbol, PositionState.NONE)

        exit_price = position.current_price if position.current_price is not None else signal.price
        log.info(
            "position_closed",
            symbol=symbol,
            side=position.side,
            reason=reason,
            entry_price=position.entry_price,
            exit_price=exit_price,
            pnl=round(position.unrealized_pnl, 4),
            roi=round(position.roi, 2),
            max_roi=position.max_roi,
            order_id=ack.order_id,
        )
        await safe_notify(self.notifier, POSITION_CLOSED, {
            "symbol": symbol,
            "side": position.side,
            "entry_price": position.entry_price,
            "exit_price": exit_price,
            "pnl": position.unrealized_pnl,
            "roi": position.roi,
            "reason": reason,
        })
        return CycleOutcome(symbol=symbol, action="CLOSE", reason=reason, signal=signal, order_id=ack.order_id)

    # ── Entry ─────────────────────────────────────────────────

    def _entry_block_reason(self, symbol: str, signal: FusedSignal) -> str | None:
        if signal.is_flat:
            return signal.reason or "No signal"
        existing = self.tracker.get(symbol)
        if existing is not None:
            return f"Position already exists: {existing.side}"
        if self.state(symbol) is not PositionState.NONE:
            return f"Position state {self.state(symbol).value}"
        if symbol in self._closed:
            return "Position closed this cycle"
        if self.open_count >= self.config.max_open_positions:
            return f"Max positions reached ({self.open_count}/{self.config.max_open_positions})"
        if signal.price is None or signal.price <= 0:
            return "No price"
        return None

    async def try_enter(self, symbol: str, signal: FusedSignal) -> CycleOutcome:
        """Open a position for *symbol* when the signal and limits allow it."""
        blocked = self._entry_block_reason(symbol, signal)
        if blocked is not None:
            return CycleOutcome(symbol=symbol, action="SKIP", reason=blocked, signal=signal)

        price = signal.price
        risk = compute_stops(price, signal.direction, self.config)
        side = "OPEN_LONG" if signal.direction == "LONG" else "OPEN_SHORT"
        order = OrderRequest(
            symbol=symbol,
            side=side,
            type="MARKET",
            vol=self.config.position_size,
            leverage=self.config.leverage,
        )
        if self.config.attach_stops_to_order and risk is not None:
            order = order.model_copy(update={
                "stop_loss_price": risk.stop_loss_price,
                "take_profit_price": risk.take_profit_price,
            })

        await safe_notify(self.notifier, SIGNAL, {
            "symbol": symbol,
            "direction": signal.direction,
            "confidence": signal.confidence,
            "reason": signal.reason,
            "price": price,
        })

        self._set_state(symbol, PositionState.PENDING_OPEN)
        try:
            ack = await self.gateway.submit_order(order)
        except Exception as exc:
            self._set_state(symbol, PositionState.NONE)
            log.exception("order_failed", symbol=symbol, side=side)
            await safe_notify(self.notifier, ERROR, {
                "context": f"Order submission failed for {symbol}",
                "error": str(exc),
            })
            return CycleOutcome(
                symbol=symbol, action="ERROR", reason=f"Order failed: {exc}", signal=signal, risk=risk,
            )

        self._opened.add(symbol)
        log.info(
            "position_opened",
            symbol=symbol,
            side=side,
            price=price,
            confidence=signal.confidence,
            source=signal.source,
            stop_loss=risk.stop_loss_price if risk else None,
            trailing_stop=risk.trailing_stop_price if risk else None,
            order_id=ack.order_id,
        )
        await safe_notify(self.notifier, ORDER_PLACED, {
            "symbol": symbol,
            "side": side,
            "type": order.type,
            "price": price,
            "vol": order.vol,
            "leverage": order.leverage,
            "order_id": ack.order_id,
        })
        return CycleOutcome(
            symbol=symbol,
            action="OPEN",
            reason=signal.reason,
            signal=signal,
            risk=risk,
            order_id=ack.order_id,
        )
