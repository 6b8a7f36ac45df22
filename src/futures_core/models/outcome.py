"""Per-symbol result of one evaluation cycle."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from futures_core.models.position import RiskParameters
from futures_core.models.signal import FusedSignal

Action = Literal["SKIP", "OPEN", "CLOSE", "HOLD", "ERROR"]


class CycleOutcome(BaseModel):
    symbol: str
    action: Action
    reason: str = ""
    signal: FusedSignal | None = None
    risk: RiskParameters | None = None
    order_id: str | None = None
