"""
Filesystem helpers shared by the repository tools.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_DIRS = (".git", "node_modules", "dist", "build", "coverage")
DEFAULT_IGNORE_FILES = (
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
    "bun.lock",
)

REASON_FOR_CALL = {
    "type": "string",
    "description": (
        "Reason for calling this tool, explaining its purpose in the current context "
        "and how it contributes to the overall plan."
    ),
}


def count_lines(path: Path) -> int:
    """Line count as the model sees it; unreadable files report 0."""
    try:
        return len(path.read_text(encoding="utf-8").split("\n"))
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read file %s for line count: %s", path, e)
        return 0


def format_file_entry(path: Path, relative_to: Path | None = None) -> list[Any]:
    """`[name, line_count]`, with the name relative to `relative_to` when given."""
    name = path.relative_to(relative_to).as_posix() if relative_to else path.name
    return [name, count_lines(path)]


def read_gitignore(base_path: Path) -> list[str]:
    """Plain .gitignore entries; comments, wildcards and negations are skipped."""
    try:
        content = (base_path / ".gitignore").read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []

    entries = []
    for line in content.split("\n"):
        line = line.strip()
        if not line or line.startswith("#") or "*" in line or line.startswith("!"):
            continue
        entries.append(line[:-1] if line.endswith("/") else line)
    return entries


def _merge(*groups: Any) -> set[str]:
    merged: set[str] = set()
    for group in groups:
        merged.update(group)
    return merged


def get_ignore_dirs(base_path: Path, additional: list[str] | None = None) -> set[str]:
    return _merge(DEFAULT_IGNORE_DIRS, read_gitignore(base_path), additional or ())


def get_ignore_files(base_path: Path, additional: list[str] | None = None) -> set[str]:
    return _merge(DEFAULT_IGNORE_FILES, read_gitignore(base_path), additional or ())


class PathOutsideBaseError(PermissionError):
    def __init__(self) -> None:
        super().__init__("Access denied: Path is outside of base directory")


def resolve_within(base_path: Path, relative: str) -> Path:
    """
    Resolve `relative` against the repository root.

    Raises:
        PathOutsideBaseError: If the resolved path escapes the root
    """
    resolved = (base_path / relative).resolve()
    if resolved != base_path and not resolved.is_relative_to(base_path):
        raise PathOutsideBaseError()
    return resolved


def error_to_tool_result(error: Exception) -> dict[str, str]:
    """Map an expected filesystem failure to the `{"error": ...}` payload."""
    if isinstance(error, FileNotFoundError):
        return {"error": f"File not found: {error.filename or error}"}
    if isinstance(error, PathOutsideBaseError):
        return {"error": str(error)}
    return {"error": str(error) or type(error).__name__}


def normalize_extensions(extensions: list[str] | None) -> list[str] | None:
    if not extensions:
        return None
    return [ext if ext.startswith(".") else f".{ext}" for ext in extensions]


def is_symlink_entry(entry: Path) -> bool:
    """Repository walks never follow links."""
    if entry.is_symlink():
        logger.debug("Skipping symlink %s", entry)
        return True
    return False


def iter_repository_files(
    root: Path,
    ignore_dirs: set[str],
    ignore_files: set[str],
    extensions: list[str] | None = None,
):
    """Yield files under `root` depth-first in name order, honoring ignore lists."""
    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as e:
        logger.debug("Skipping unreadable directory %s: %s", root, e)
        return
    for entry in entries:
        if is_symlink_entry(entry):
            continue
        if entry.is_dir():
            if entry.name not in ignore_dirs:
                yield from iter_repository_files(entry, ignore_dirs, ignore_files, extensions)
        elif entry.is_file():
            if entry.name in ignore_files:
                continue
            if extensions and entry.suffix not in extensions:
                continue
            yield entry


__all__ = [
    "DEFAULT_IGNORE_DIRS",
    "DEFAULT_IGNORE_FILES",
    "REASON_FOR_CALL",
    "count_lines",
    "format_file_entry",
    "read_gitignore",
    "get_ignore_dirs",
    "get_ignore_files",
    "PathOutsideBaseError",
    "resolve_within",
    "error_to_tool_result",
    "normalize_extensions",
    "is_symlink_entry",
    "iter_repository_files",
]
