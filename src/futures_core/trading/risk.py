"""Stop-loss, take-profit and trailing-stop prices — pure functions."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from futures_core.config.schema import RiskConfig
from futures_core.models import Direction, RiskParameters

_SIX_PLACES = Decimal("0.000001")


def round_price(value: Decimal | float) -> float:
    """Round to 6 decimal places, half-up, and return a float."""
    return float(Decimal(str(value)).quantize(_SIX_PLACES, rounding=ROUND_HALF_UP))


def _offset(entry_price: float, pct: float, sign: int) -> float:
    """entry * (1 + sign * pct), rounded to 6 places."""
    return round_price(Decimal(str(entry_price)) * (1 + sign * Decimal(str(pct))))


def calculate_stop_price(direction: str, entry_price: float, stop_loss_pct: float) -> float:
    """Stop-loss trigger price.

    LONG:  entry * (1 - pct)
    SHORT: entry * (1 + pct)
    """
    return _offset(entry_price, stop_loss_pct, -1 if direction == "LONG" else 1)


def calculate_take_profit_price(direction: str, entry_price: float, take_profit_pct: float) -> float:
    """Take-profit trigger price.

    LONG:  entry * (1 + pct)
    SHORT: entry * (1 - pct)
    """
    return _offset(entry_price, take_profit_pct, 1 if direction == "LONG" else -1)


def calculate_initial_trailing_stop(direction: str, entry_price: float, trailing_stop_pct: float) -> float | None:
    """Trailing stop at entry; None when trailing is disabled (pct 0)."""
    if not trailing_stop_pct:
        return None
    return _offset(entry_price, trailing_stop_pct, -1 if direction == "LONG" else 1)


def compute_stops(entry_price: float, side: Direction, config: RiskConfig) -> RiskParameters | None:
    """Risk parameters for a new entry at *entry_price*.

    Returns None for FLAT, which never opens a position. The take-profit
    price is only set when ``take_profit_pct`` is configured.
    """
    if side not in ("LONG", "SHORT"):
        return None

    take_profit = None
    if config.take_profit_pct is not None:
        take_profit = calculate_take_profit_price(side, entry_price, config.take_profit_pct)

    return RiskParameters(
        stop_loss_price=calculate_stop_price(side, entry_price, config.stop_loss_pct),
        take_profit_price=take_profit,
        trailing_stop_price=calculate_initial_trailing_stop(side, entry_price, config.trailing_stop_pct),
    )
