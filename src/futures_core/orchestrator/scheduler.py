"""PeriodicTask — run an async job, wait, repeat until stopped."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

log = structlog.get_logger("scheduler")


class PeriodicTask:
    """Runs *func* back to back with *delay_s* between the end of one run and
    the start of the next.

    A run that raises is logged as ``cycle_error`` (and passed to *on_error*)
    and the next run is still scheduled. ``stop()`` interrupts the delay.
    """

    def __init__(
        self,
        func: Callable[[], Awaitable[object]],
        delay_s: float,
        name: str = "cycle",
        max_cycles: int | None = None,
        on_error: Callable[[Exception], Awaitable[None]] | None = None,
    ) -> None:
        self.func = func
        self.delay_s = delay_s
        self.name = name
        self.max_cycles = max_cycles
        self.on_error = on_error
        self.cycles = 0
        self._stop = asyncio.Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        log.info("periodic_task_started", task=self.name, delay_s=self.delay_s)
        while not self._stop.is_set():
            self.cycles += 1
            try:
                await self.func()
            except Exception as exc:
                log.exception("cycle_error", task=self.name, cycle=self.cycles)
                if self.on_error is not None:
                    await self.on_error(exc)

            if self.max_cycles is not None and self.cycles >= self.max_cycles:
                break
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.delay_s)
            except asyncio.TimeoutError:
                pass
        log.info("periodic_task_stopped", task=self.name, cycles=self.cycles)
