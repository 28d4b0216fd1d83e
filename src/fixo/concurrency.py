"""
Async concurrency helpers.

File tools walk and read repositories with blocking filesystem calls; those
run on a shared worker pool so the event loop (and the job timeout racing
against it) keeps ticking.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import Any, TypeVar

T = TypeVar("T")

_EXECUTOR = ThreadPoolExecutor(
    max_workers=min(32, (os.cpu_count() or 1) + 4),
    thread_name_prefix="fixo-io",
)


async def run_sync(func: Callable[..., T], /, *args: Any, **kwargs: Any) -> T:
    """Run a blocking callable on the shared pool and await its result."""
    # Poll instead of wrap_future: cross-thread wakeups are unreliable under some test loops.
    future = _EXECUTOR.submit(partial(func, *args, **kwargs))
    try:
        while not future.done():
            await asyncio.sleep(0.001)
        return future.result()
    except asyncio.CancelledError:
        future.cancel()
        raise


__all__ = ["run_sync"]
