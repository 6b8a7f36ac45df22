"""Import all evaluator modules to trigger @register decorators."""

from futures_core.strategy.evaluators import breakout  # noqa: F401
from futures_core.strategy.evaluators import momentum  # noqa: F401
