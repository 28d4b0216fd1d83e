"""
Language-model collaborator boundary: message types, the Provider protocol,
and the OpenAI transport.
"""

from .base import Provider
from .openai import OpenAIProvider
from .types import CompletionResult, Message, Role, ToolCall, Usage

__all__ = [
    "Provider",
    "OpenAIProvider",
    "CompletionResult",
    "Message",
    "Role",
    "ToolCall",
    "Usage",
]
