"""Signal evaluators and fusion."""

from futures_core.strategy.base import Evaluator
from futures_core.strategy.registry import EVALUATOR_REGISTRY, register

__all__ = ["EVALUATOR_REGISTRY", "Evaluator", "register"]
