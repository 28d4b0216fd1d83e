"""
OpenAI provider implementation.

A thin chat-completions transport: messages and tool schemas in, text,
tool calls and usage out. API failures are folded into CompletionResult.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import openai
from openai import AsyncOpenAI

from ..config import OpenAIConfig
from ..errors import MissingAPIKeyError
from .types import CompletionResult, Message, ToolCall, Usage

if TYPE_CHECKING:
    from ..tools.base import Tool

logger = logging.getLogger(__name__)


class OpenAIProvider:
    """
    Chat completions over the official `openai` SDK.

    Example:
        ```python
        provider = OpenAIProvider(OpenAIConfig(default_model="gpt-4.1"))
        result = await provider.complete([Message.user("Hello")])
        print(result.content)
        ```
    """

    def __init__(
        self,
        config: OpenAIConfig | None = None,
        *,
        model: str | None = None,
        client: AsyncOpenAI | None = None,
        price_per_million: tuple[float, float] | None = None,
    ) -> None:
        self.config = config or OpenAIConfig()
        self._model_name = model or self.config.default_model
        # (input, output) USD per million tokens; cost stays 0 when unset
        self.price_per_million = price_per_million

        if client is not None:
            self.client = client
        else:
            if not self.config.api_key:
                raise MissingAPIKeyError(env_var="OPENAI_API_KEY")
            self.client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                organization=self.config.organization,
                timeout=self.config.timeout,
                max_retries=self.config.max_retries,
            )

    @property
    def model_name(self) -> str:
        return self._model_name

    @staticmethod
    def _tools_to_api_format(tools: Sequence[Tool] | None) -> list[dict[str, Any]] | None:
        if not tools:
            return None
        return [tool.to_openai_format() for tool in tools]

    def _usage_from_response(self, usage: Any) -> Usage:
        if usage is None:
            return Usage()
        parsed = Usage(
            input_tokens=usage.prompt_tokens or 0,
            output_tokens=usage.completion_tokens or 0,
            total_tokens=usage.total_tokens or 0,
        )
        if self.price_per_million:
            input_price, output_price = self.price_per_million
            parsed.total_cost = (
                parsed.input_tokens * input_price + parsed.output_tokens * output_price
            ) / 1_000_000
        return parsed

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        tools: Sequence[Tool] | None = None,
        tool_choice: str | None = None,
        **kwargs: Any,
    ) -> CompletionResult:
        params: dict[str, Any] = {
            "model": self._model_name,
            "messages": [m.to_dict() for m in messages],
            **kwargs,
        }

        if tools:
            params["tools"] = self._tools_to_api_format(tools)
            if tool_choice:
                if tool_choice in ("auto", "none", "required"):
                    params["tool_choice"] = tool_choice
                else:
                    params["tool_choice"] = {"type": "function", "function": {"name": tool_choice}}

        try:
            response = await self.client.chat.completions.create(**params)
        except openai.APIConnectionError as e:
            return CompletionResult(status=500, error=str(e.__cause__ or e))
        except openai.RateLimitError as e:
            return CompletionResult(status=429, error=f"Rate limit exceeded: {e}")
        except openai.APIStatusError as e:
            return CompletionResult(status=e.status_code, error=str(e))

        choice = response.choices[0]
        msg = choice.message

        tool_calls = None
        if getattr(msg, "tool_calls", None):
            tool_calls = [
                ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments)
                for tc in msg.tool_calls
            ]

        return CompletionResult(
            content=msg.content,
            tool_calls=tool_calls,
            usage=self._usage_from_response(response.usage),
            model=self._model_name,
            finish_reason=choice.finish_reason,
            status=200,
            raw_response=response,
        )


__all__ = ["OpenAIProvider"]
