"""Bot orchestrator — scheduler, trading cycle and command-line entry points."""

from futures_core.orchestrator.runner import TradingBot, build_bot, run_loop
from futures_core.orchestrator.scheduler import PeriodicTask

__all__ = ["PeriodicTask", "TradingBot", "build_bot", "run_loop"]
