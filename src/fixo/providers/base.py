"""
Provider protocol for the language-model collaborator.

The agent depends only on this protocol; transports live in sibling modules.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from .types import CompletionResult, Message

if TYPE_CHECKING:
    from ..tools.base import Tool


@runtime_checkable
class Provider(Protocol):
    """
    A single async completion call.

    Implementations must not raise for API-level failures; they return a
    CompletionResult with `status`/`error` set so the agent can stop softly.
    """

    @property
    def model_name(self) -> str: ...

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        tools: Sequence[Tool] | None = None,
        tool_choice: str | None = None,
        **kwargs: Any,
    ) -> CompletionResult: ...


__all__ = ["Provider"]
