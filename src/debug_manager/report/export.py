"""Export of scan results as JSON, CSV, a Markdown tree or the same tree as plain text."""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from debug_manager.scan.discovery import relative_to_root
from debug_manager.scan.models import DebugStatement

EXPORT_FORMATS = ("json", "csv", "md", "txt")
EXPORT_FIELDS = ("file", "line", "type", "text", "severity")
DEFAULT_EXPORT_FIELDS = ("file", "line", "type", "text")
DEFAULT_ROOT_NAME = "Workspace"

_BRANCH = "├── "
_LAST_BRANCH = "└── "
_PIPE = "│   "
_SPACE = "    "


def normalize_fields(fields: list[str] | tuple[str, ...] | None) -> tuple[str, ...]:
    """Keep known fields in the order given; unknown names are dropped."""
    if fields is None:
        return DEFAULT_EXPORT_FIELDS
    return tuple(name for name in fields if name in EXPORT_FIELDS)


def export_row(statement: DebugStatement) -> dict[str, object]:
    return {
        "file": statement.relative_path or statement.file_path,
        "line": statement.line_number,
        "type": statement.type.value,
        "text": statement.content,
        "severity": statement.severity.value,
    }


def render_export(
    statements: list[DebugStatement] | tuple[DebugStatement, ...],
    export_format: str,
    fields: list[str] | tuple[str, ...] | None = None,
    roots: tuple[Path, ...] = (),
) -> str:
    """Render statements in one of ``EXPORT_FORMATS``."""
    selected = normalize_fields(fields)
    if export_format == "json":
        return render_json(statements, selected)
    if export_format == "csv":
        return render_csv(statements, selected)
    if export_format == "md":
        return render_markdown_tree(statements, selected, roots)
    if export_format == "txt":
        return render_text_tree(statements, selected, roots)
    raise ValueError(f"Unsupported export format: {export_format!r}.")


def render_json(
    statements: list[DebugStatement] | tuple[DebugStatement, ...], fields: tuple[str, ...]
) -> str:
    rows = []
    for statement in statements:
        row = export_row(statement)
        rows.append({name: row[name] for name in fields})
    return json.dumps(rows, indent=2, ensure_ascii=False)


def render_csv(
    statements: list[DebugStatement] | tuple[DebugStatement, ...], fields: tuple[str, ...]
) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(fields)
    for statement in statements:
        row = export_row(statement)
        writer.writerow([row[name] for name in fields])
    return buffer.getvalue().rstrip("\n")


@dataclass(slots=True)
class _Folder:
    name: str
    folders: dict[str, _Folder] = field(default_factory=dict)
    files: dict[str, list[DebugStatement]] = field(default_factory=dict)


def render_markdown_tree(
    statements: list[DebugStatement] | tuple[DebugStatement, ...],
    fields: tuple[str, ...],
    roots: tuple[Path, ...] = (),
) -> str:
    """The text tree inside a ``text`` code fence."""
    tree = render_text_tree(statements, fields, roots)
    return "\n".join(["```text", tree, "```"] if tree else ["```text", "```"])


def render_text_tree(
    statements: list[DebugStatement] | tuple[DebugStatement, ...],
    fields: tuple[str, ...],
    roots: tuple[Path, ...] = (),
) -> str:
    """Plain text tree: root, folders, files, then one leaf per statement."""
    tops: dict[str, _Folder] = {}
    for statement in statements:
        root_name, relative = _locate(statement, roots)
        node = tops.setdefault(root_name, _Folder(name=root_name))
        parts = [part for part in PurePosixPath(relative).parts if part not in ("", "/")]
        file_name = parts.pop() if parts else relative
        for part in parts:
            node = node.folders.setdefault(part, _Folder(name=part))
        node.files.setdefault(file_name, []).append(statement)

    lines: list[str] = []
    names = sorted(tops)
    for index, name in enumerate(names):
        lines.extend(_render_folder(tops[name], "", index == len(names) - 1, fields))
    return "\n".join(lines)


def _locate(statement: DebugStatement, roots: tuple[Path, ...]) -> tuple[str, str]:
    for root in roots:
        relative = relative_to_root(statement.file_path, str(root))
        if relative is not None:
            return root.name or str(root), relative
    return DEFAULT_ROOT_NAME, statement.relative_path or statement.file_path


def _connector(last: bool) -> str:
    return _LAST_BRANCH if last else _BRANCH


def _render_folder(
    folder: _Folder, prefix: str, last: bool, fields: tuple[str, ...]
) -> list[str]:
    output = [prefix + _connector(last) + folder.name]
    child_prefix = prefix + (_SPACE if last else _PIPE)
    children: list[tuple[str, _Folder | list[DebugStatement]]] = [
        (name, folder.folders[name]) for name in sorted(folder.folders)
    ]
    children.extend((name, folder.files[name]) for name in sorted(folder.files))
    for index, (name, child) in enumerate(children):
        child_last = index == len(children) - 1
        if isinstance(child, _Folder):
            output.extend(_render_folder(child, child_prefix, child_last, fields))
            continue
        output.append(child_prefix + _connector(child_last) + name)
        leaf_prefix = child_prefix + (_SPACE if child_last else _PIPE)
        output.extend(_render_leaves(child, leaf_prefix, fields))
    return output


def _render_leaves(
    statements: list[DebugStatement], prefix: str, fields: tuple[str, ...]
) -> list[str]:
    ordered = sorted(statements, key=lambda item: (item.line_number, item.column))
    output: list[str] = []
    for index, statement in enumerate(ordered):
        connector = _connector(index == len(ordered) - 1)
        parts: list[str] = []
        if "line" in fields:
            parts.append(f"Line {statement.line_number}")
        if "type" in fields:
            parts.append(statement.type.value)
        if "severity" in fields:
            parts.append(statement.severity.value)
        if "text" in fields:
            parts.append(statement.content)
        output.append(prefix + connector + ": ".join(parts))
    return output
