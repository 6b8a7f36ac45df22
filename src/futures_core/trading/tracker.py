"""PositionTracker — broker records to typed positions, PnL/ROI, ratchets."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from futures_core.errors import DecodeError
from futures_core.models import Position, Side
from futures_core.trading.risk import round_price

log = structlog.get_logger("position_tracker")

# Broker field aliases, first positive value wins
ENTRY_PRICE_FIELDS = ("holdAvgPrice", "openAvgPrice", "openPriceAvg", "avgPrice", "openPrice")
MARGIN_FIELDS = ("im", "oim")
SYMBOL_FIELDS = ("symbol", "contractCode")

_POSITION_TYPES: dict[int, Side] = {1: "LONG", 2: "SHORT"}


def calculate_trailing_stop(
    current_price: float,
    side: str,
    highest_price: float,
    lowest_price: float,
    trailing_stop_pct: float,
) -> float | None:
    """New trailing stop if *current_price* set a new extreme, else None.

    LONG:  price > highest → price * (1 - pct)
    SHORT: price < lowest  → price * (1 + pct)

    None means "keep the existing stop"; a stop is never loosened.
    """
    if not trailing_stop_pct:
        return None
    if side == "LONG" and current_price > highest_price:
        return round_price(current_price * (1 - trailing_stop_pct))
    if side == "SHORT" and current_price < lowest_price:
        return round_price(current_price * (1 + trailing_stop_pct))
    return None


def update_max_roi(max_roi: float | None, roi: float) -> float:
    """Peak ROI ratchet: never decreases once set."""
    return roi if max_roi is None or roi > max_roi else max_roi


def _first_number(record: Mapping[str, Any], fields: Iterable[str], default: float = 0.0) -> float:
    for field in fields:
        raw = record.get(field)
        if raw in (None, ""):
            continue
        try:
            value = float(raw)
        except (TypeError, ValueError):
            continue
        if value > 0:
            return value
    return default


def _number(record: Mapping[str, Any], field: str, default: float = 0.0) -> float:
    raw = record.get(field)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except (TypeError, ValueError):
        return default


def held_symbol(record: Mapping[str, Any]) -> str | None:
    """Symbol of a record with positive held volume, else None."""
    if not isinstance(record, Mapping):
        return None
    symbol = next((record[f] for f in SYMBOL_FIELDS if record.get(f)), None)
    if not symbol or _number(record, "holdVol") <= 0:
        return None
    return str(symbol)


def parse_position_record(record: Mapping[str, Any]) -> Position | None:
    """Build a Position from one raw broker record.

    Returns None for records without a symbol or with no held volume.
    An absent or unknown ``positionType`` is treated as LONG.
    """
    if not isinstance(record, Mapping):
        raise DecodeError(f"position record is not an object: {type(record).__name__}")

    symbol = held_symbol(record)
    if symbol is None:
        return None
    hold_vol = _number(record, "holdVol")

    try:
        position_type = int(record.get("positionType") or 0)
    except (TypeError, ValueError):
        position_type = 0
    side = _POSITION_TYPES.get(position_type)
    if side is None:
        log.warning("position_type_unrecognized", symbol=symbol, position_type=record.get("positionType"))
        side = "LONG"

    entry_price = _first_number(record, ENTRY_PRICE_FIELDS)
    raw_id = record.get("positionId") or record.get("id")

    return Position(
        symbol=str(symbol),
        side=side,
        entry_price=entry_price,
        margin_used=_first_number(record, MARGIN_FIELDS),
        leverage=_first_number(record, ("leverage",), default=1.0),
        hold_vol=hold_vol,
        position_id=str(raw_id) if raw_id else None,
        highest_price=entry_price,
        lowest_price=entry_price,
    )


def apply_price(position: Position, price: float | None, profit_ratio: float = 0.0, trailing_stop_pct: float = 0.0) -> None:
    """Refresh PnL, ROI, extrema, trailing stop and peak ROI in place.

    The trailing stop is evaluated against the extrema seen so far and the
    extrema are ratcheted afterwards, so the stop always sits off the best
    price observed. Without a usable price, PnL falls back to the broker's
    profit ratio applied to margin.
    """
    if price is not None and price > 0 and position.entry_price > 0:
        position.current_price = price

        new_stop = calculate_trailing_stop(
            price,
            position.side,
            position.highest_price,
            position.lowest_price,
            trailing_stop_pct,
        )
        if new_stop is not None:
            position.trailing_stop_price = new_stop

        if position.side == "LONG":
            position.highest_price = max(position.highest_price, price)
            change_pct = (price - position.entry_price) / position.entry_price
        else:
            position.lowest_price = min(position.lowest_price, price)
            change_pct = (position.entry_price - price) / position.entry_price

        position.unrealized_pnl = change_pct * position.notional
        position.roi = position.unrealized_pnl / position.margin_used * 100 if position.margin_used > 0 else 0.0
    else:
        position.unrealized_pnl = position.margin_used * profit_ratio
        position.roi = profit_ratio * 100 if position.margin_used > 0 else 0.0

    position.max_roi = update_max_roi(position.max_roi, position.roi)


class PositionTracker:
    """Holds the tracked position per symbol across cycles.

    normalize() replaces the tracked set with what the broker reports now,
    carrying ratchet state (peak ROI, extrema, trailing stop) over for
    positions that are still the same position.
    """

    def __init__(self, trailing_stop_pct: float = 0.0) -> None:
        self.trailing_stop_pct = trailing_stop_pct
        self._positions: dict[str, Position] = {}

    @property
    def positions(self) -> dict[str, Position]:
        return dict(self._positions)

    def get(self, symbol: str) -> Position | None:
        return self._positions.get(symbol)

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._positions

    def drop(self, symbol: str) -> Position | None:
        """Forget a position, e.g. after a confirmed close."""
        return self._positions.pop(symbol, None)

    def normalize(
        self,
        raw_records: Iterable[Mapping[str, Any]],
        prices: Mapping[str, float | None],
    ) -> dict[str, Position]:
        """Rebuild the tracked set from raw broker records and current prices."""
        fresh: dict[str, Position] = {}
        for record in raw_records:
            position = parse_position_record(record)
            if position is None:
                continue
            if position.symbol in fresh:
                log.warning("duplicate_position_record", symbol=position.symbol, side=position.side)
                continue

            previous = self._positions.get(position.symbol)
            if previous is not None and self._same_position(previous, position):
                position.max_roi = previous.max_roi
                position.highest_price = max(position.highest_price, previous.highest_price)
                position.lowest_price = min(position.lowest_price, previous.lowest_price)
                position.trailing_stop_price = previous.trailing_stop_price
            elif previous is None:
                log.info("position_tracked", symbol=position.symbol, side=position.side,
                         entry_price=position.entry_price, hold_vol=position.hold_vol)

            apply_price(
                position,
                prices.get(position.symbol),
                profit_ratio=_number(record, "profitRatio"),
                trailing_stop_pct=self.trailing_stop_pct,
            )
            fresh[position.symbol] = position

        for symbol in self._positions.keys() - fresh.keys():
            log.info("position_untracked", symbol=symbol)

        self._positions = fresh
        return dict(fresh)

    @staticmethod
    def _same_position(previous: Position, current: Position) -> bool:
        if previous.side != current.side:
            return False
        if previous.position_id and current.position_id:
            return previous.position_id == current.position_id
        return True
