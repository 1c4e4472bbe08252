"""Low-priority scheduling for deferred network work."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

T = TypeVar("T")

#: Signature of a deferral hook: run *work* once higher-priority work is done.
Defer = Callable[[Callable[[], Awaitable[T]]], Awaitable[T]]


async def run_after_interactions(work: Callable[[], Awaitable[T]]) -> T:
    """Yield to the event loop once, then run *work*.

    Callbacks already scheduled (listener notifications for a snapshot that
    was just displayed, UI event handlers) run before *work* starts.
    """
    await asyncio.sleep(0)
    return await work()


async def run_immediately(work: Callable[[], Awaitable[T]]) -> T:
    return await work()
