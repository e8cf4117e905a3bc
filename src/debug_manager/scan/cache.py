"""Per-engine file cache keyed by path and a cheap size/mtime fingerprint."""

from __future__ import annotations

from dataclasses import dataclass, field

from debug_manager.scan.models import DebugStatement


@dataclass(slots=True, frozen=True)
class FileCacheEntry:
    """Last successful scan of one file."""

    path: str
    mtime_ns: int
    size: int
    fingerprint: str
    statements: tuple[DebugStatement, ...]


def compute_fingerprint(size: int, mtime_ns: int) -> str:
    """Non-cryptographic change marker for a file."""
    return f"{size}-{mtime_ns}"


@dataclass(slots=True)
class FileCache:
    """Mutable cache owned by exactly one scan engine."""

    _entries: dict[str, FileCacheEntry] = field(default_factory=dict)

    def lookup(self, path: str, fingerprint: str) -> tuple[DebugStatement, ...] | None:
        """Return cached statements when the fingerprint still matches."""
        entry = self._entries.get(path)
        if entry is None or entry.fingerprint != fingerprint:
            return None
        return entry.statements

    def store(
        self,
        path: str,
        size: int,
        mtime_ns: int,
        statements: tuple[DebugStatement, ...],
    ) -> FileCacheEntry:
        """Create or overwrite the entry for ``path``."""
        entry = FileCacheEntry(
            path=path,
            mtime_ns=mtime_ns,
            size=size,
            fingerprint=compute_fingerprint(size, mtime_ns),
            statements=statements,
        )
        self._entries[path] = entry
        return entry

    def get(self, path: str) -> FileCacheEntry | None:
        return self._entries.get(path)

    def paths(self) -> tuple[str, ...]:
        """Cached paths in deterministic order."""
        return tuple(sorted(self._entries))

    def discard(self, path: str) -> None:
        self._entries.pop(path, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
