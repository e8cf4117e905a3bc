from __future__ import annotations

import json
from pathlib import Path

from debug_manager.logging import AuditEvent, JsonlAuditLogger, sanitize_arguments


def _event(timestamp: str, request_id: str, tool: str = "debug.status") -> AuditEvent:
    return AuditEvent(
        timestamp=timestamp,
        request_id=request_id,
        tool=tool,
        ok=True,
        blocked=False,
        error_code=None,
        metadata={},
    )


def test_sanitize_arguments_hides_document_text_and_selection() -> None:
    text = "<?php\n$password = 'hunter2';\n"
    sanitized = sanitize_arguments(
        {
            "text": text,
            "selection": {"start": {"line": 1, "character": 0}, "end": {"line": 1, "character": 9}},
            "paths": ["a.php", "b.php"],
            "disabled_types": ["echo", "dd"],
            "language": "php",
            "tab_size": 4,
            "insert_spaces": True,
            "path": "app",
        }
    )

    assert sanitized == {
        "disabled_types": ["dd", "echo"],
        "insert_spaces": True,
        "language": "php",
        "path": "app",
        "paths_count": 2,
        "selection_lines": [1, 1],
        "tab_size": 4,
        "text_length": len(text),
        "text_lines": 3,
    }
    assert "hunter2" not in json.dumps(sanitized)


def test_sanitize_arguments_measures_mistyped_values() -> None:
    sanitized = sanitize_arguments(
        {"limit": True, "id": ["x"], "selection": {"start": "top"}, "ids": {"a": 1}}
    )

    assert sanitized == {
        "id_count": 1,
        "ids_keys": ["a"],
        "limit": True,
        "selection_lines": [None, None],
    }


def test_logger_appends_jsonl_and_reads_recent_entries(tmp_path: Path) -> None:
    logger = JsonlAuditLogger(tmp_path / "nested" / "audit.jsonl")
    logger.append(_event("2026-01-01T00:00:00.000Z", "req-1"))
    logger.append(_event("2026-01-02T00:00:00.000Z", "req-2", tool="debug.clear"))
    logger.append(_event("2026-01-03T00:00:00.000Z", "req-3"))

    lines = logger.path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert json.loads(lines[0])["request_id"] == "req-1"
    assert json.loads(lines[0])["duration_ms"] == 0

    assert [item["request_id"] for item in logger.read(limit=2)] == ["req-2", "req-3"]
    assert [item["request_id"] for item in logger.read(since="2026-01-02")] == [
        "req-2",
        "req-3",
    ]
    assert [item["request_id"] for item in logger.read(tool="debug.status")] == ["req-1", "req-3"]
    assert logger.read(limit=0) == []


def test_reader_skips_torn_and_non_object_lines(tmp_path: Path) -> None:
    logger = JsonlAuditLogger(tmp_path / "audit.jsonl")
    logger.append(_event("2026-01-01T00:00:00.000Z", "req-1"))
    with logger.path.open("a", encoding="utf-8") as handle:
        handle.write("[1, 2]\n")
        handle.write('{"timestamp": "2026-01-0')

    assert [item["request_id"] for item in logger.read()] == ["req-1"]


def test_missing_log_reads_empty(tmp_path: Path) -> None:
    assert JsonlAuditLogger(tmp_path / "audit.jsonl").read() == []
