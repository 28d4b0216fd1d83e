"""Cancellation tokens for cooperative task interruption.

The sandbox executor races two tasks and uses a token to tell the losing
branch to stand down. The token wraps an asyncio.Event so branches can either
poll `is_cancelled` or await `wait()`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


class CancelledError(Exception):
    """Raised when an operation observes a cancelled token."""


@dataclass
class CancellationToken:
    """Mutable token for cooperative cancellation.

    Usage:
        token = CancellationToken()

        # In the long-running branch:
        token.raise_if_cancelled()

        # From the winner:
        token.cancel()
    """

    reason: str | None = None
    _event: asyncio.Event = field(default_factory=asyncio.Event, init=False, repr=False)
    _callbacks: list[Callable[[], Any]] = field(default_factory=list, init=False, repr=False)

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation (idempotent). Callbacks run on the first call only."""
        if self._event.is_set():
            return
        self.reason = reason or self.reason
        self._event.set()
        for cb in self._callbacks:
            self._run_callback(cb)

    async def wait(self) -> None:
        """Block until cancel() is called."""
        await self._event.wait()

    def on_cancel(self, callback: Callable[[], Any]) -> None:
        """Register a callback. Invoked immediately if already cancelled."""
        self._callbacks.append(callback)
        if self._event.is_set():
            self._run_callback(callback)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError(self.reason or "Operation was cancelled")

    @staticmethod
    def _run_callback(callback: Callable[[], Any]) -> None:
        try:
            callback()
        except Exception:
            logger.warning("Cancellation callback failed", exc_info=True)


__all__ = ["CancellationToken", "CancelledError"]
