"""Persistent bookmark set of statement ids."""

from __future__ import annotations

import json
from pathlib import Path

BOOKMARKS_FILE_NAME = "bookmarks.json"


class BookmarkStore:
    """Statement ids protected from clearing, persisted as a sorted JSON list."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._ids: set[str] = set()
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def ids(self) -> frozenset[str]:
        return frozenset(self._ids)

    def __contains__(self, statement_id: object) -> bool:
        return statement_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def toggle(self, statement_id: str) -> bool:
        """Flip the bookmark; returns True when the id is now bookmarked."""
        if statement_id in self._ids:
            self._ids.remove(statement_id)
            bookmarked = False
        else:
            self._ids.add(statement_id)
            bookmarked = True
        self._save()
        return bookmarked

    def _load(self) -> None:
        if not self._path.exists():
            return
        with self._path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
            raise ValueError(f"{self._path} must contain a JSON list of statement ids.")
        self._ids = set(payload)

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as handle:
            json.dump(sorted(self._ids), handle, indent=2)
            handle.write("\n")
        tmp.replace(self._path)
