"""User-managed exclude patterns persisted beside the bookmarks."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

from debug_manager.scan.discovery import relative_to_root

EXCLUDES_FILE_NAME = "excludes.json"
EXCLUDE_KINDS = ("dir", "file")


def exclude_pattern_for(path: Path, roots: tuple[Path, ...], *, is_dir: bool) -> str:
    """Root-relative glob for a folder (``<dir>/**``) or a single file."""
    for root in roots:
        relative = relative_to_root(str(path), str(root))
        if relative is None or relative == ".":
            continue
        return f"{relative}/**" if is_dir else relative
    raise ValueError(f"Cannot exclude {path}: it is not below a scan root.")


class ExcludeStore:
    """Ordered list of exclude globs, saved as JSON with an atomic replace."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._patterns: list[str] = []
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def patterns(self) -> tuple[str, ...]:
        return tuple(self._patterns)

    def update(self, patterns: Iterable[str], *, add: bool) -> bool:
        """Add or remove patterns; returns True when the stored list changed."""
        before = list(self._patterns)
        if add:
            for pattern in patterns:
                if pattern not in self._patterns:
                    self._patterns.append(pattern)
        else:
            removed = set(patterns)
            self._patterns = [item for item in self._patterns if item not in removed]
        if self._patterns == before:
            return False
        self._save()
        return True

    def _load(self) -> None:
        if not self._path.exists():
            return
        with self._path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
            raise ValueError(f"{self._path} must contain a JSON list of glob patterns.")
        self._patterns = list(payload)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(self._patterns, handle, indent=2)
            handle.write("\n")
        tmp.replace(self._path)
