"""
Base types for configuration.
"""

from __future__ import annotations

from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LogFormat = Literal["text", "json"]
ToolChoice = Literal["auto", "none", "required"]
PlanType = Literal["free", "paid"]


__all__ = ["LogLevel", "LogFormat", "ToolChoice", "PlanType"]
