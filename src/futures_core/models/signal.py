"""Signal models — emitted by evaluators and fused per symbol."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Direction = Literal["LONG", "SHORT", "FLAT"]


class Signal(BaseModel):
    """One evaluator's verdict for the current indicator snapshot."""

    model_config = ConfigDict(frozen=True)

    direction: Direction = "FLAT"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reason: str = ""
    source: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_flat(self) -> bool:
        return self.direction == "FLAT"


class FusedSignal(BaseModel):
    """The single signal chosen for a symbol this cycle."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    direction: Direction = "FLAT"
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reason: str = ""
    source: str = ""
    price: float | None = None
    candidates: tuple[Signal, ...] = ()

    @property
    def is_flat(self) -> bool:
        return self.direction == "FLAT"

    @classmethod
    def flat(cls, symbol: str, price: float | None = None, reason: str = "") -> FusedSignal:
        return cls(symbol=symbol, price=price, reason=reason)
