"""Tests for repeating scheduled functions."""

import asyncio
import logging

import pytest

from tontoo.errors import DirectiveRuntimeError
from tontoo.runtime import scheduler


@pytest.mark.asyncio
async def test_schedule_calls_function_repeatedly(ctx, workspace) -> None:
    ctx.run_source(":start: tick\naddFile: ticked.txt\n:end:\n", "Main.tont")
    task = scheduler.schedule(ctx, "0.01", "tick")
    await asyncio.sleep(0.1)
    assert task.ticks >= 2
    assert (workspace / "ticked.txt").exists()
    await ctx.aclose()
    assert task.active is False


@pytest.mark.asyncio
async def test_function_may_be_defined_after_registration(ctx, caplog) -> None:
    with caplog.at_level(logging.ERROR, logger="tontoo"):
        ctx.run_source('schedule: 0.01 "later"\n', "Main.tont")
        await asyncio.sleep(0.05)
    assert 'Function "later" was not found' in caplog.text

    ctx.run_source(':start: later\nconsole.log: "now defined"\n:end:\n', "Other.tont")
    caplog.clear()
    with caplog.at_level(logging.INFO, logger="tontoo"):
        await asyncio.sleep(0.05)
    assert "now defined" in caplog.text
    await ctx.aclose()


def test_schedule_interval_is_substituted(ctx) -> None:
    ctx.variables["EVERY"] = "30"
    task = scheduler.schedule(ctx, "$EVERY", "job")
    assert task.interval == 30.0
    assert ctx.keeps_alive is True


@pytest.mark.parametrize("interval", ["soon", "0", "-1", "nan", "inf"])
def test_invalid_interval_is_rejected(ctx, interval) -> None:
    with pytest.raises(DirectiveRuntimeError):
        scheduler.schedule(ctx, interval, "job")
    assert ctx.schedules == []


def test_tick_logs_missing_function(ctx, caplog) -> None:
    task = scheduler.ScheduledTask(ctx, 1.0, "ghost")
    with caplog.at_level(logging.ERROR, logger="tontoo"):
        task.tick()
    assert task.ticks == 1
    assert "ghost" in caplog.text
