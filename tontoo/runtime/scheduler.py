"""Repeating timers that invoke runtime functions."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING, Optional

from tontoo.errors import DirectiveRuntimeError

if TYPE_CHECKING:  # pragma: no cover
    from tontoo.runtime.context import RuntimeContext

logger = logging.getLogger("tontoo.runtime.scheduler")


class ScheduledTask:
    """Calls ``function_name`` every ``interval`` seconds until cancelled.

    The name is looked up on each tick, so the function may be defined
    after the schedule is registered.
    """

    def __init__(self, ctx: "RuntimeContext", interval: float, function_name: str) -> None:
        self.ctx = ctx
        self.interval = interval
        self.function_name = function_name
        self.active = True
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    def tick(self) -> None:
        self.ticks += 1
        try:
            self.ctx.call_function(self.function_name)
        except DirectiveRuntimeError as exc:
            logger.error("Error: %s", exc.format())

    async def run(self) -> None:
        self._task = asyncio.current_task()
        while self.active:
            await asyncio.sleep(self.interval)
            if self.active:
                self.tick()

    def cancel(self) -> None:
        self.active = False
        if self._task is not None and not self._task.done():
            self._task.cancel()


def schedule(ctx: "RuntimeContext", interval: str, function_name: str) -> ScheduledTask:
    raw = ctx.substitute(interval)
    try:
        seconds = float(raw)
    except (TypeError, ValueError) as exc:
        raise DirectiveRuntimeError(f'Invalid schedule interval "{raw}" for "{function_name}"') from exc
    if not math.isfinite(seconds) or seconds <= 0:
        raise DirectiveRuntimeError(f'Schedule interval for "{function_name}" must be a positive number')
    task = ScheduledTask(ctx, seconds, function_name)
    ctx.schedules.append(task)
    ctx.spawn(task.run)
    logger.info("Scheduled function '%s' every %s seconds", function_name, seconds)
    return task


__all__ = ["ScheduledTask", "schedule"]
