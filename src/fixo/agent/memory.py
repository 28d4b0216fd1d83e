"""
In-process memory store for agent insights.

Entries are indexed by type and by scalar metadata values; both indices are
kept in step with the store on every add/remove.
"""

from __future__ import annotations

import dataclasses
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import Any

MetadataValue = str | int | float | bool

_ID_ALPHABET = string.ascii_lowercase + string.digits


def _now_ms() -> int:
    return int(time.time() * 1000)


def _index_key(value: MetadataValue) -> tuple[bool, MetadataValue]:
    # True == 1 in Python, keep booleans apart from numbers
    return (isinstance(value, bool), value)


def _is_indexable(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


@dataclass
class MemoryEntry:
    """A single remembered item."""

    id: str
    type: str
    content: Any = None
    metadata: dict[str, MetadataValue] = field(default_factory=dict)
    importance: float = 0.5
    created_at: int = field(default_factory=_now_ms)

    def __post_init__(self):
        if not 0 <= self.importance <= 1:
            raise ValueError(f"importance must be between 0 and 1, got {self.importance}")
        self.metadata = {k: v for k, v in (self.metadata or {}).items() if _is_indexable(v)}


class MemoryStore:
    """
    Synchronous in-memory store with type and metadata indices.

    Example:
        ```python
        store = MemoryStore()
        mem_id = store.add("code_insight.bug", "Off-by-one in pager", metadata={"file": "pager.ts"})
        store.find_by_metadata("file", "pager.ts")
        ```
    """

    def __init__(self) -> None:
        self._memories: dict[str, MemoryEntry] = {}
        self._type_index: dict[str, set[str]] = {}
        self._metadata_index: dict[str, dict[tuple[bool, MetadataValue], set[str]]] = {}

    def add(
        self,
        type: str,
        content: Any = None,
        *,
        metadata: dict[str, Any] | None = None,
        importance: float = 0.5,
        id: str | None = None,
        created_at: int | None = None,
    ) -> str:
        """
        Store a memory and return its id.

        Raises:
            ValueError: If importance is outside [0, 1]
        """
        entry = MemoryEntry(
            id=id or self._generate_id(),
            type=type,
            content=content,
            metadata=dict(metadata or {}),
            importance=importance,
            created_at=created_at or _now_ms(),
        )
        if entry.id in self._memories:
            self.remove(entry.id)

        self._memories[entry.id] = entry
        self._type_index.setdefault(entry.type, set()).add(entry.id)
        for key, value in entry.metadata.items():
            self._metadata_index.setdefault(key, {}).setdefault(_index_key(value), set()).add(entry.id)

        return entry.id

    def get(self, id: str) -> MemoryEntry | None:
        return self._memories.get(id)

    def remove(self, id: str) -> bool:
        entry = self._memories.pop(id, None)
        if entry is None:
            return False

        ids = self._type_index.get(entry.type)
        if ids is not None:
            ids.discard(id)
            if not ids:
                del self._type_index[entry.type]

        for key, value in entry.metadata.items():
            value_index = self._metadata_index.get(key)
            if value_index is None:
                continue
            ids = value_index.get(_index_key(value))
            if ids is not None:
                ids.discard(id)
                if not ids:
                    del value_index[_index_key(value)]
            if not value_index:
                del self._metadata_index[key]

        return True

    def update(self, id: str, **changes: Any) -> bool:
        """
        Replace fields of an entry, keeping its id.

        The entry is removed and re-added so both indices reflect the change.
        Returns False if no entry has this id.
        """
        entry = self._memories.get(id)
        if entry is None:
            return False

        changes.pop("id", None)
        updated = dataclasses.replace(entry, **changes)
        self.remove(id)
        self.add(
            updated.type,
            updated.content,
            metadata=updated.metadata,
            importance=updated.importance,
            id=id,
            created_at=updated.created_at,
        )
        return True

    def find_by_type(self, type: str) -> list[MemoryEntry]:
        return [self._memories[i] for i in self._type_index.get(type, ()) if i in self._memories]

    def find_by_metadata(self, key: str, value: MetadataValue) -> list[MemoryEntry]:
        ids = self._metadata_index.get(key, {}).get(_index_key(value), ())
        return [self._memories[i] for i in ids if i in self._memories]

    def get_all_by_importance(self) -> list[MemoryEntry]:
        """All entries, most important first."""
        return sorted(self._memories.values(), key=lambda m: m.importance, reverse=True)

    def count(self) -> int:
        return len(self._memories)

    def clear(self) -> None:
        self._memories.clear()
        self._type_index.clear()
        self._metadata_index.clear()

    def __len__(self) -> int:
        return len(self._memories)

    @staticmethod
    def _generate_id() -> str:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
        return f"mem_{_now_ms()}_{suffix}"


__all__ = ["MemoryEntry", "MemoryStore", "MetadataValue"]
