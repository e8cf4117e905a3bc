"""Request audit trail for the debug bridge, one sanitized JSON object per line."""

from __future__ import annotations

import json
import logging
from collections import deque
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

logger = logging.getLogger(__name__)

AUDIT_FILE_NAME = "audit.jsonl"

# Argument values recorded verbatim when they have exactly the expected type.
_VERBATIM_KEYS: dict[str, type] = {
    "path": str,
    "id": str,
    "kind": str,
    "format": str,
    "language": str,
    "mode": str,
    "since": str,
    "tool": str,
    "limit": int,
    "tab_size": int,
    "all": bool,
    "add": bool,
    "insert_spaces": bool,
    "fail_on_warn": bool,
}
# Statement type and export field names; never source text.
_NAME_LIST_KEYS = frozenset({"disabled_types", "fields"})


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """One handled request: outcome, timing and argument metadata."""

    timestamp: str
    request_id: str
    tool: str
    ok: bool
    blocked: bool
    error_code: str | None
    metadata: dict[str, object]
    duration_ms: int = 0


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_arguments(arguments: dict[str, object]) -> dict[str, object]:
    """Reduce tool arguments to metadata that never contains source text.

    Documents are recorded by length and line count, selections by the lines
    they span, and id or path lists by their count.
    """
    sanitized: dict[str, object] = {}
    for key in sorted(arguments):
        value = arguments[key]
        expected = _VERBATIM_KEYS.get(key)
        if expected is not None and type(value) is expected:
            sanitized[key] = value
        elif key in _NAME_LIST_KEYS and _is_string_list(value):
            sanitized[key] = sorted(value)
        elif key == "selection" and isinstance(value, dict):
            sanitized["selection_lines"] = _selection_lines(value)
        elif isinstance(value, str):
            sanitized[f"{key}_length"] = len(value)
            sanitized[f"{key}_lines"] = value.count("\n") + 1
        elif isinstance(value, list):
            sanitized[f"{key}_count"] = len(value)
        elif isinstance(value, dict):
            sanitized[f"{key}_keys"] = sorted(str(item) for item in value)
        elif isinstance(value, (int, float, bool)) or value is None:
            sanitized[key] = value
        else:
            sanitized[f"{key}_type"] = type(value).__name__
    return sanitized


def _is_string_list(value: object) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def _selection_lines(selection: dict[str, object]) -> list[int | None]:
    start = selection.get("start")
    end = selection.get("end", start)
    return [_line_of(start), _line_of(end)]


def _line_of(position: object) -> int | None:
    if not isinstance(position, dict):
        return None
    line = position.get("line")
    return line if type(line) is int else None


class JsonlAuditLogger:
    """Appends audit events to a JSONL file and reads back the most recent ones."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: AuditEvent) -> None:
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")
        logger.debug(
            "audit %s %s ok=%s in %dms", event.request_id, event.tool, event.ok, event.duration_ms
        )

    def read(
        self, since: str | None = None, limit: int = 50, tool: str | None = None
    ) -> list[dict[str, object]]:
        """Return up to ``limit`` most recent events, oldest first.

        ``since`` keeps events stamped at or after it; ``tool`` keeps one tool's events.
        """
        if limit < 1 or not self._path.exists():
            return []
        recent: deque[dict[str, object]] = deque(maxlen=limit)
        with self._path.open("r", encoding="utf-8") as handle:
            for record in _records(handle):
                if since is not None and not _stamped_since(record, since):
                    continue
                if tool is not None and record.get("tool") != tool:
                    continue
                recent.append(record)
        return list(recent)


def _records(handle: TextIO) -> Iterator[dict[str, object]]:
    for number, line in enumerate(handle, start=1):
        stripped = line.strip()
        if not stripped:
            continue
        try:
            record = json.loads(stripped)
        except json.JSONDecodeError:
            # a torn trailing write from an interrupted process
            logger.debug("skipping unreadable audit line %d", number)
            continue
        if isinstance(record, dict):
            yield record


def _stamped_since(record: dict[str, object], since: str) -> bool:
    timestamp = record.get("timestamp")
    return isinstance(timestamp, str) and timestamp >= since
