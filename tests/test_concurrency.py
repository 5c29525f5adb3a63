"""Unit tests for gather_or_cancel."""

from __future__ import annotations

import asyncio

import pytest

from src.app.extraction.concurrency import gather_or_cancel


async def _value(value, delay: float = 0):
    await asyncio.sleep(delay)
    return value


async def test_results_in_argument_order():
    results = await gather_or_cancel(_value("slow", 0.01), _value("fast"))

    assert results == ["slow", "fast"]


async def test_failure_cancels_and_awaits_sibling():
    started = asyncio.Event()
    cancelled = asyncio.Event()

    async def blocked():
        started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.set()
            raise

    async def failing():
        await started.wait()
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        await gather_or_cancel(blocked(), failing())

    assert cancelled.is_set()
