"""
Repository file tools: read, inspect, list, tree and write.

Every tool resolves paths through `resolve_within`, so a request that walks
out of the repository root comes back as an error payload.
"""

from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any

from ..concurrency import run_sync
from ..providers.types import Message
from .base import Tool, ToolExecutionContext, require_context
from .helpers import (
    REASON_FOR_CALL,
    error_to_tool_result,
    format_file_entry,
    get_ignore_dirs,
    get_ignore_files,
    is_symlink_entry,
    resolve_within,
)

READ_FILE_HISTORY_LIMIT = 10
OMITTED_RESULT = {"omitted": "Result was filtered out due to excessive history."}


# =============================================================================
# read_file
# =============================================================================


def _read_file(base_path: Path, params: dict[str, Any]) -> dict[str, Any]:
    file_path = resolve_within(base_path, params["path"])
    content = file_path.read_text(encoding="utf-8")
    lines = content.split("\n")

    start_line = params.get("start_line")
    end_line = params.get("end_line")
    if start_line or end_line:
        start = max(0, start_line - 1) if start_line else 0
        end = min(len(lines), end_line) if end_line else len(lines)
        return {
            "content": "\n".join(lines[start:end]),
            "start_line": start + 1,
            "end_line": end,
            "total_lines": len(lines),
        }

    return {"content": content, "total_lines": len(lines)}


async def read_file(params: dict[str, Any], context: ToolExecutionContext | None) -> dict[str, Any]:
    ctx = require_context(context)
    try:
        return await run_sync(_read_file, ctx.base_path, params)
    except (OSError, UnicodeDecodeError) as e:
        return error_to_tool_result(e)


def compact_read_file(message: Message, calls_after: int) -> Message:
    """Replace old read_file bodies once enough newer reads exist."""
    if calls_after > READ_FILE_HISTORY_LIMIT:
        return dataclasses.replace(message, content=json.dumps(OMITTED_RESULT))
    return message


def _readable_read_params(params: dict[str, Any]) -> str:
    path = params.get("path", "")
    if params.get("start_line") or params.get("end_line"):
        return f"{path}:{params.get('start_line', 1)}-{params.get('end_line', 'end')}"
    return path


def _readable_read_result(result: Any) -> str:
    if isinstance(result, dict) and "error" in result:
        return f"error: {result['error']}"
    if isinstance(result, dict):
        return f"{result.get('total_lines', 0)} lines"
    return str(result)


read_file_tool = Tool(
    name="read_file",
    description="Read the contents of a file. Requires a reason for calling.",
    parameters={
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "Path to the file, relative to the repository root"},
            "start_line": {
                "type": "integer",
                "minimum": 1,
                "description": "Line number to start reading from (1-indexed, inclusive)",
            },
            "end_line": {
                "type": "integer",
                "minimum": 1,
                "description": "Line number to end reading at (1-indexed, inclusive)",
            },
            "reason_for_call": REASON_FOR_CALL,
        },
        "required": ["path", "reason_for_call"],
    },
    handler=read_file,
    readable_params=_readable_read_params,
    readable_result=_readable_read_result,
    compact=compact_read_file,
)


# =============================================================================
# file_exists
# =============================================================================


def _file_exists(base_path: Path, params: dict[str, Any]) -> dict[str, Any]:
    file_path = resolve_within(base_path, params["path"])
    return {
        "exists": file_path.exists(),
        "is_directory": file_path.is_dir(),
        "is_file": file_path.is_file(),
    }


async def file_exists(params: dict[str, Any], context: ToolExecutionContext | None) -> dict[str, Any]:
    ctx = require_context(context)
    try:
        return await run_sync(_file_exists, ctx.base_path, params)
    except OSError as e:
        return error_to_tool_result(e)


file_exists_tool = Tool(
    name="file_exists",
    description="Check if a file exists. Requires a reason for calling.",
    parameters={
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "Path to the file, relative to the repository root"},
            "reason_for_call": REASON_FOR_CALL,
        },
        "required": ["path", "reason_for_call"],
    },
    handler=file_exists,
    readable_params=lambda params: params.get("path", ""),
)


# =============================================================================
# list_directory
# =============================================================================


def _list_directory(base_path: Path, params: dict[str, Any]) -> dict[str, Any]:
    dir_path = resolve_within(base_path, params["path"])
    ignore_dirs = get_ignore_dirs(base_path)
    ignore_files = get_ignore_files(base_path)

    entries = [e for e in sorted(dir_path.iterdir(), key=lambda p: p.name) if not is_symlink_entry(e)]
    files = [format_file_entry(e) for e in entries if e.is_file() and e.name not in ignore_files]
    directories = [e.name for e in entries if e.is_dir() and e.name not in ignore_dirs]

    return {"path": params["path"], "files": files, "directories": directories}


async def list_directory(params: dict[str, Any], context: ToolExecutionContext | None) -> dict[str, Any]:
    ctx = require_context(context)
    try:
        return await run_sync(_list_directory, ctx.base_path, params)
    except OSError as e:
        return error_to_tool_result(e)


list_directory_tool = Tool(
    name="list_directory",
    description=(
        "List the contents of a directory. Files are returned as [name, lineCount] tuples. "
        "Requires a reason for calling."
    ),
    parameters={
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "Path to the directory, relative to the repository root"},
            "reason_for_call": REASON_FOR_CALL,
        },
        "required": ["path", "reason_for_call"],
    },
    handler=list_directory,
    readable_params=lambda params: params.get("path", ""),
)


# =============================================================================
# show_file_tree
# =============================================================================


def _build_tree(current: Path, ignore_dirs: set[str], ignore_files: set[str]) -> list[Any]:
    tree: list[Any] = []
    for entry in sorted(current.iterdir(), key=lambda p: p.name):
        if is_symlink_entry(entry):
            continue
        if entry.is_dir():
            if entry.name not in ignore_dirs:
                tree.append([entry.name, _build_tree(entry, ignore_dirs, ignore_files)])
        elif entry.name not in ignore_files:
            tree.append(format_file_entry(entry))
    return tree


def _show_file_tree(base_path: Path, params: dict[str, Any]) -> dict[str, Any]:
    dir_path = resolve_within(base_path, params.get("path") or ".")
    tree = _build_tree(dir_path, get_ignore_dirs(base_path), get_ignore_files(base_path))
    return {"path": params.get("path", ""), "tree": tree}


async def show_file_tree(params: dict[str, Any], context: ToolExecutionContext | None) -> dict[str, Any]:
    ctx = require_context(context)
    try:
        return await run_sync(_show_file_tree, ctx.base_path, params)
    except OSError as e:
        return error_to_tool_result(e)


show_file_tree_tool = Tool(
    name="show_file_tree",
    description=(
        "Show the file tree of a directory. Output is a compact JSON structure. Directories are "
        'represented as ["directoryName", [children...]], and files as ["fileName", lineCount]. '
        "Requires a reason for calling."
    ),
    parameters={
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "Path to the directory, relative to the repository root"},
            "reason_for_call": REASON_FOR_CALL,
        },
        "required": ["path"],
    },
    handler=show_file_tree,
    readable_params=lambda params: params.get("path") or ".",
    readable_result=lambda result: "tree" if isinstance(result, dict) and "tree" in result else str(result),
)


# =============================================================================
# write_file
# =============================================================================


def _write_file(base_path: Path, params: dict[str, Any]) -> dict[str, Any]:
    file_path = resolve_within(base_path, params["path"])
    if params.get("create_directories", True):
        file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(params["content"], encoding="utf-8")
    return {"success": True, "path": params["path"]}


async def write_file(params: dict[str, Any], context: ToolExecutionContext | None) -> dict[str, Any]:
    ctx = require_context(context)
    try:
        return await run_sync(_write_file, ctx.base_path, params)
    except OSError as e:
        return error_to_tool_result(e)


write_file_tool = Tool(
    name="write_file",
    description="Write content to a file, replacing it if it exists. Requires a reason for calling.",
    parameters={
        "type": "object",
        "properties": {
            "path": {"type": "string", "description": "Path to the file, relative to the repository root"},
            "content": {"type": "string", "description": "Full content to write to the file"},
            "create_directories": {
                "type": "boolean",
                "default": True,
                "description": "Create parent directories if they do not exist",
            },
            "reason_for_call": REASON_FOR_CALL,
        },
        "required": ["path", "content", "reason_for_call"],
    },
    handler=write_file,
    readable_params=lambda params: f"{params.get('path', '')} ({len(params.get('content', ''))} chars)",
)


__all__ = [
    "READ_FILE_HISTORY_LIMIT",
    "OMITTED_RESULT",
    "compact_read_file",
    "read_file_tool",
    "file_exists_tool",
    "list_directory_tool",
    "show_file_tree_tool",
    "write_file_tool",
]
