"""Polling helpers for event-driven async tests."""

from __future__ import annotations

import asyncio
from typing import Callable


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005) -> None:
    """Poll ``predicate`` until it holds.

    Raises:
        AssertionError: if it still does not hold after ``timeout`` seconds.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            raise AssertionError("condition not reached within %.1fs" % timeout)
        await asyncio.sleep(interval)
