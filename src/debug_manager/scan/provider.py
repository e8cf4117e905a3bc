"""Directory and file-content access used by the scan engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(slots=True, frozen=True)
class FileStat:
    """Size and modification time of one file."""

    size: int
    mtime_ns: int


@dataclass(slots=True, frozen=True)
class DirEntry:
    """One directory listing entry."""

    name: str
    path: str
    is_dir: bool
    is_file: bool


class FileProvider(Protocol):
    """Async file-system surface; an implementation may suspend on any call."""

    async def list_dir(self, path: str) -> list[DirEntry]:
        """List entries of a directory sorted by name."""

    async def stat(self, path: str) -> FileStat:
        """Return size and mtime of a file."""

    async def read_text(self, path: str) -> str:
        """Read a file as UTF-8 text."""


class LocalFileProvider:
    """Provider backed by the local file system.

    Each call completes on the event-loop thread before it returns, so no
    worker threads exist. A batch's reads are therefore issued one after the
    other; they only interleave with providers whose calls really suspend.
    """

    async def list_dir(self, path: str) -> list[DirEntry]:
        with os.scandir(path) as entries:
            ordered = sorted(entries, key=lambda item: item.name)
            return [
                DirEntry(
                    name=entry.name,
                    path=entry.path,
                    is_dir=entry.is_dir(follow_symlinks=False),
                    is_file=entry.is_file(follow_symlinks=False),
                )
                for entry in ordered
            ]

    async def stat(self, path: str) -> FileStat:
        result = os.stat(path)
        return FileStat(size=result.st_size, mtime_ns=result.st_mtime_ns)

    async def read_text(self, path: str) -> str:
        return Path(path).read_text(encoding="utf-8", errors="replace")
