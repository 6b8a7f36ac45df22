"""Evaluator registry — decorated classes are auto-registered."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from futures_core.strategy.base import Evaluator

EVALUATOR_REGISTRY: dict[str, type[Evaluator]] = {}


def register(cls: type[Evaluator]) -> type[Evaluator]:
    """Class decorator that adds an evaluator to the global registry."""
    if not hasattr(cls, "name") or not cls.name:
        raise ValueError(f"Evaluator class {cls.__name__} must define a 'name' attribute")
    if not isinstance(getattr(cls, "priority", None), int):
        raise ValueError(f"Evaluator class {cls.__name__} must define an integer 'priority'")
    if cls.name in EVALUATOR_REGISTRY:
        raise ValueError(f"Duplicate evaluator name: {cls.name!r}")
    EVALUATOR_REGISTRY[cls.name] = cls
    return cls


def registered_evaluators() -> list[type[Evaluator]]:
    """All registered evaluator classes, in fusion priority order."""
    return sorted(EVALUATOR_REGISTRY.values(), key=lambda cls: cls.priority)
