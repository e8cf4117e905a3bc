"""Removal of detected debug statements from source files."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from debug_manager.scan.models import DebugStatement

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ClearReport:
    """Outcome of one clearing pass."""

    cleared: int
    skipped_bookmarked: int
    stale: int
    files_changed: tuple[str, ...]
    failed_files: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, object]:
        return {
            "cleared": self.cleared,
            "skipped_bookmarked": self.skipped_bookmarked,
            "stale": self.stale,
            "files_changed": list(self.files_changed),
            "failed_files": list(self.failed_files),
        }


def remove_statements_from_lines(
    lines: list[str], statements: Iterable[DebugStatement]
) -> tuple[list[str], int, int]:
    """Cut each statement's exact content span out of ``lines``.

    Statements are applied bottom-up and right-to-left so earlier cuts never
    move later targets. A line left blank by a cut is dropped. Returns the new
    lines with the cleared and stale counts.
    """
    updated = list(lines)
    cleared = 0
    stale = 0
    ordered = sorted(statements, key=lambda item: (item.line_number, item.column), reverse=True)
    for statement in ordered:
        index = statement.line_number - 1
        if index < 0 or index >= len(updated):
            stale += 1
            continue
        line = updated[index]
        if not line.startswith(statement.content, statement.column):
            stale += 1
            continue
        remainder = line[: statement.column] + line[statement.column + len(statement.content) :]
        if remainder.strip():
            updated[index] = remainder
        else:
            del updated[index]
        cleared += 1
    return updated, cleared, stale


def clear_statements(
    statements: Iterable[DebugStatement], bookmarks: frozenset[str] | set[str] = frozenset()
) -> ClearReport:
    """Remove every non-bookmarked statement from its file on disk.

    Files that cannot be read or rewritten are listed in ``failed_files`` and
    keep their original content; their statements do not count as cleared.
    """
    by_file: dict[str, list[DebugStatement]] = defaultdict(list)
    skipped = 0
    for statement in statements:
        if statement.id in bookmarks:
            skipped += 1
            continue
        by_file[statement.file_path].append(statement)

    cleared = 0
    stale = 0
    changed: list[str] = []
    failed: list[str] = []
    for file_path in sorted(by_file):
        path = Path(file_path)
        try:
            with path.open("r", encoding="utf-8", newline="") as handle:
                original = handle.read()
        except (OSError, UnicodeDecodeError) as error:
            logger.warning("cannot clear statements in %s: %s", file_path, error)
            failed.append(file_path)
            continue
        lines, file_cleared, file_stale = remove_statements_from_lines(
            original.split("\n"), by_file[file_path]
        )
        stale += file_stale
        if file_cleared == 0:
            continue
        try:
            _write_atomically(path, "\n".join(lines))
        except OSError as error:
            logger.warning("cannot write %s after clearing: %s", file_path, error)
            failed.append(file_path)
            continue
        cleared += file_cleared
        changed.append(file_path)
        logger.debug("cleared %d statements from %s", file_cleared, file_path)

    return ClearReport(
        cleared=cleared,
        skipped_bookmarked=skipped,
        stale=stale,
        files_changed=tuple(changed),
        failed_files=tuple(failed),
    )


def _write_atomically(path: Path, text: str) -> None:
    # The source file is only ever swapped whole; a failed write leaves it as it was.
    tmp = path.with_name(path.name + ".tmp")
    try:
        with tmp.open("w", encoding="utf-8", newline="") as handle:
            handle.write(text)
        tmp.replace(path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
