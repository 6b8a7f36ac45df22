"""Position lifecycle: risk parameters, tracking and exit/entry decisions."""

from futures_core.trading.lifecycle import (
    PositionLifecycleManager,
    PositionState,
    evaluate_exit,
    is_take_profit_hit,
    is_trailing_stop_hit,
    should_close_on_reverse_signal,
)
from futures_core.trading.risk import (
    calculate_stop_price,
    calculate_take_profit_price,
    compute_stops,
)
from futures_core.trading.tracker import (
    PositionTracker,
    calculate_trailing_stop,
    update_max_roi,
)

__all__ = [
    "PositionLifecycleManager",
    "PositionState",
    "PositionTracker",
    "calculate_stop_price",
    "calculate_take_profit_price",
    "calculate_trailing_stop",
    "compute_stops",
    "evaluate_exit",
    "is_take_profit_hit",
    "is_trailing_stop_hit",
    "should_close_on_reverse_signal",
    "update_max_roi",
]
