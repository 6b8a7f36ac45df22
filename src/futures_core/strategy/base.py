"""Evaluator abstract base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

from futures_core.models import Candle, Indicators, Signal


class Evaluator(ABC):
    """Base class for all signal evaluators.

    Subclasses set ``name`` and ``priority`` and implement evaluate().
    Lower ``priority`` wins confidence ties during fusion.
    Instantiate with keyword params from config to override defaults.
    """

    name: str
    priority: int

    def __init__(self, **params: Any) -> None:
        self.params = params

    @abstractmethod
    def evaluate(self, series: Sequence[Candle], indicators: Indicators) -> Signal:
        """Evaluate one indicator snapshot.

        Always returns a Signal; FLAT with confidence 0 means no setup.
        """
        ...

    def flat(self, reason: str = "") -> Signal:
        return Signal(direction="FLAT", confidence=0.0, reason=reason, source=self.name)
