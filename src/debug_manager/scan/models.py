"""Typed records produced by scans."""

from __future__ import annotations

from dataclasses import dataclass

from debug_manager.lexical import Severity, StatementType


@dataclass(slots=True, frozen=True)
class DebugStatement:
    """One detected debug statement."""

    id: str
    file_path: str
    relative_path: str
    line_number: int
    column: int
    content: str
    context: str
    type: StatementType
    severity: Severity

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-safe representation."""
        return {
            "id": self.id,
            "file_path": self.file_path,
            "relative_path": self.relative_path,
            "line_number": self.line_number,
            "column": self.column,
            "content": self.content,
            "context": self.context,
            "type": self.type.value,
            "severity": self.severity.value,
        }


@dataclass(slots=True, frozen=True)
class ScanError:
    """A per-file or per-directory failure recorded during a scan."""

    file_path: str
    error: str
    code: str
    timestamp: str


@dataclass(slots=True, frozen=True)
class ScanResult:
    """Aggregate, deterministically ordered result of a scan."""

    statements: tuple[DebugStatement, ...]
    scanned_files: int
    total_statements: int
    errors: tuple[ScanError, ...]
    scan_time: float

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-safe representation."""
        return {
            "statements": [statement.to_dict() for statement in self.statements],
            "scanned_files": self.scanned_files,
            "total_statements": self.total_statements,
            "errors": [
                {
                    "file_path": item.file_path,
                    "error": item.error,
                    "code": item.code,
                    "timestamp": item.timestamp,
                }
                for item in self.errors
            ],
            "scan_time_ms": int(self.scan_time * 1000),
        }


EMPTY_RESULT = ScanResult(
    statements=(),
    scanned_files=0,
    total_statements=0,
    errors=(),
    scan_time=0.0,
)


def build_statement_id(file_path: str, line_number: int, column: int) -> str:
    """Deterministic statement id, stable across re-scans of unchanged files."""
    return f"{file_path}:{line_number}:{column}"


def statement_sort_key(statement: DebugStatement) -> tuple[str, int, int]:
    """Order by path, then line, then column."""
    return (statement.file_path, statement.line_number, statement.column)
