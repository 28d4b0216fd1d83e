"""
Code search tools: grep_code and find_files.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from pathlib import Path
from typing import Any

from ..concurrency import run_sync
from .base import Tool, ToolExecutionContext, require_context
from .helpers import (
    REASON_FOR_CALL,
    error_to_tool_result,
    format_file_entry,
    get_ignore_dirs,
    get_ignore_files,
    iter_repository_files,
    normalize_extensions,
    resolve_within,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 20
MAX_RESULTS_LIMIT = 100


# =============================================================================
# grep_code
# =============================================================================


def _candidate_files(
    base_path: Path,
    paths: list[str] | None,
    extensions: list[str] | None,
    ignore_dirs: set[str],
    ignore_files: set[str],
):
    entries = [resolve_within(base_path, p) for p in paths] if paths else [base_path]
    for entry in entries:
        if entry.is_dir():
            yield from iter_repository_files(entry, ignore_dirs, ignore_files, extensions)
        elif entry.is_file():
            if extensions and entry.suffix not in extensions:
                continue
            if entry.name in ignore_files:
                continue
            yield entry
        else:
            logger.debug("Skipping missing search path %s", entry)


def _grep_code(base_path: Path, params: dict[str, Any]) -> dict[str, Any]:
    max_results = params.get("max_results", DEFAULT_MAX_RESULTS)
    flags = 0 if params.get("case_sensitive", False) else re.IGNORECASE
    try:
        regex = re.compile(params["pattern"], flags)
    except re.error as e:
        return {"error": f"Invalid regular expression: {e}"}

    extensions = normalize_extensions(params.get("extensions"))
    files = _candidate_files(
        base_path,
        params.get("paths"),
        extensions,
        get_ignore_dirs(base_path),
        get_ignore_files(base_path),
    )

    results: list[dict[str, Any]] = []
    for file_path in files:
        if len(results) >= max_results:
            break
        try:
            lines = file_path.read_text(encoding="utf-8").split("\n")
        except (OSError, UnicodeDecodeError):
            continue

        entry = None
        for number, line in enumerate(lines, start=1):
            if len(results) >= max_results:
                break
            if regex.search(line):
                if entry is None:
                    entry = format_file_entry(file_path, relative_to=base_path)
                results.append({"file": entry, "line_number": number, "content": line})

    return {"results": results}


async def grep_code(params: dict[str, Any], context: ToolExecutionContext | None) -> dict[str, Any]:
    ctx = require_context(context)
    try:
        return await run_sync(_grep_code, ctx.base_path, params)
    except OSError as e:
        return error_to_tool_result(e)


grep_code_tool = Tool(
    name="grep_code",
    description=(
        "Search for a regular expression across repository files. Each match is returned with "
        "the file as a [path, lineCount] tuple, the 1-indexed line number and the line content. "
        "Requires a reason for calling."
    ),
    parameters={
        "type": "object",
        "properties": {
            "pattern": {
                "type": "string",
                "minLength": 1,
                "description": "Regular expression pattern to search for",
            },
            "paths": {
                "type": "array",
                "items": {"type": "string"},
                "description": (
                    "Directories or files to search, relative to the repository root. "
                    "Directories are searched recursively."
                ),
            },
            "extensions": {
                "type": "array",
                "items": {"type": "string"},
                "description": "File extensions to include, e.g. ['.ts', '.js']",
            },
            "max_results": {
                "type": "integer",
                "minimum": 1,
                "maximum": MAX_RESULTS_LIMIT,
                "default": DEFAULT_MAX_RESULTS,
                "description": "Maximum number of matches to return",
            },
            "case_sensitive": {
                "type": "boolean",
                "default": False,
                "description": "Whether to use case-sensitive matching",
            },
            "reason_for_call": REASON_FOR_CALL,
        },
        "required": ["pattern", "reason_for_call"],
    },
    handler=grep_code,
    readable_params=lambda params: params.get("pattern", ""),
    readable_result=lambda result: (
        f"{len(result['results'])} matches" if isinstance(result, dict) and "results" in result else str(result)
    ),
)


# =============================================================================
# find_files
# =============================================================================


def compile_name_pattern(pattern: str) -> re.Pattern[str]:
    """Compile `pattern` as a case-insensitive regex, falling back to glob syntax."""
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        return re.compile(fnmatch.translate(pattern), re.IGNORECASE)


def _find_files(base_path: Path, params: dict[str, Any]) -> dict[str, Any]:
    root = resolve_within(base_path, params.get("directory") or ".")
    max_results = params.get("max_results", DEFAULT_MAX_RESULTS)
    name_pattern = compile_name_pattern(params["pattern"])

    files = iter_repository_files(
        root,
        get_ignore_dirs(base_path),
        get_ignore_files(base_path),
        normalize_extensions(params.get("extensions")),
    )

    matches: list[list[Any]] = []
    for file_path in files:
        if len(matches) >= max_results:
            break
        if name_pattern.search(file_path.name):
            matches.append(format_file_entry(file_path, relative_to=base_path))

    return {"files": matches}


async def find_files(params: dict[str, Any], context: ToolExecutionContext | None) -> dict[str, Any]:
    ctx = require_context(context)
    try:
        return await run_sync(_find_files, ctx.base_path, params)
    except OSError as e:
        return error_to_tool_result(e)


find_files_tool = Tool(
    name="find_files",
    description=(
        "Find files by name. The pattern may be a regular expression or a glob such as '*.test.ts'. "
        "Returns a list of [filePath, lineCount] tuples. Requires a reason for calling."
    ),
    parameters={
        "type": "object",
        "properties": {
            "pattern": {
                "type": "string",
                "minLength": 1,
                "description": "Regex or glob matched against file names",
            },
            "directory": {
                "type": "string",
                "default": ".",
                "description": "Directory to search in, relative to the repository root",
            },
            "extensions": {
                "type": "array",
                "items": {"type": "string"},
                "description": "File extensions to include",
            },
            "max_results": {
                "type": "integer",
                "minimum": 1,
                "maximum": MAX_RESULTS_LIMIT,
                "default": DEFAULT_MAX_RESULTS,
            },
            "reason_for_call": REASON_FOR_CALL,
        },
        "required": ["pattern", "reason_for_call"],
    },
    handler=find_files,
    readable_params=lambda params: params.get("pattern", ""),
)


__all__ = ["grep_code_tool", "find_files_tool", "compile_name_pattern"]
