"""Built-in debug.* tools exposed over the stdio bridge."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

from debug_manager.config import SUPPORTED_LANGUAGES, ManagerConfig, with_extra_excludes
from debug_manager.editing import (
    IndentOptions,
    Selection,
    TextDocument,
    apply_insertion,
    build_dump_statement,
    prepare_expression,
    render_insertion,
    resolve_insertion,
)
from debug_manager.lexical import StatementType
from debug_manager.report import (
    EXCLUDE_KINDS,
    EXPORT_FORMATS,
    BookmarkStore,
    ExcludeStore,
    clear_statements,
    exclude_pattern_for,
    render_export,
)
from debug_manager.scan import DebugStatement, ScanEngine, ScanResult
from debug_manager.tools.registry import ToolDispatchError, ToolHandler, ToolRegistry
from debug_manager.workspace import resolve_workspace_path

MAX_AUDIT_ENTRIES = 200


def register_builtin_tools(
    registry: ToolRegistry,
    engine: ScanEngine,
    bookmarks: BookmarkStore,
    excludes: ExcludeStore,
    read_audit_entries: Callable[[str | None, int, str | None], list[dict[str, object]]],
    config: ManagerConfig,
) -> None:
    """Register the debug.* tool set in a fixed order.

    ``config`` is the configuration before user-managed excludes are merged in;
    the engine carries the merged one.
    """
    registry.register("debug.status", _status_handler(engine, bookmarks, config))
    registry.register("debug.scan_workspace", _scan_workspace_handler(engine))
    registry.register("debug.scan_files", _scan_files_handler(engine, config))
    registry.register("debug.insert_dump", _insert_dump_handler(config))
    registry.register("debug.clear", _clear_handler(engine, bookmarks, config))
    registry.register("debug.bookmark", _bookmark_handler(bookmarks))
    registry.register("debug.bookmarks", _bookmarks_handler(bookmarks))
    registry.register("debug.exclude", _exclude_handler(engine, excludes, config))
    registry.register("debug.export", _export_handler(engine, config))
    registry.register("debug.audit_log", _audit_log_handler(read_audit_entries))


def filter_result(result: ScanResult, disabled_types: frozenset[str]) -> ScanResult:
    """Hide statements whose type the caller disabled."""
    if not disabled_types:
        return result
    kept = tuple(item for item in result.statements if item.type.value not in disabled_types)
    return replace(result, statements=kept, total_statements=len(kept))


def current_statements(engine: ScanEngine) -> tuple[DebugStatement, ...]:
    """Statements of the last scan, scanning the workspace first when there is none."""
    result = engine.last_result
    if result is None:
        result = asyncio.run(engine.scan_workspace())
    return result.statements


def _status_handler(
    engine: ScanEngine, bookmarks: BookmarkStore, config: ManagerConfig
) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        last = engine.last_result
        return {
            "workspace_root": str(config.workspace_root),
            "cached_file_count": len(engine.cache),
            "bookmark_count": len(bookmarks),
            "scanning": engine.is_scanning,
            "last_scan": None
            if last is None
            else {
                "scanned_files": last.scanned_files,
                "total_statements": last.total_statements,
                "error_count": len(last.errors),
                "scan_time_ms": int(last.scan_time * 1000),
            },
            "effective_config": engine.config.to_public_dict(),
        }

    return handler


def _scan_workspace_handler(engine: ScanEngine) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        disabled = _disabled_types(arguments)
        result = asyncio.run(engine.scan_workspace())
        return filter_result(result, disabled).to_dict()

    return handler


def _scan_files_handler(engine: ScanEngine, config: ManagerConfig) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        paths_value = arguments.get("paths")
        if not isinstance(paths_value, list) or not all(
            isinstance(item, str) for item in paths_value
        ):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="debug.scan_files paths must be a list of strings.",
            )
        disabled = _disabled_types(arguments)
        resolved = [str(resolve_workspace_path(config.scan.roots, item)) for item in paths_value]
        result = asyncio.run(engine.scan_files(resolved))
        return filter_result(result, disabled).to_dict()

    return handler


def _insert_dump_handler(config: ManagerConfig) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        text = arguments.get("text")
        if not isinstance(text, str):
            raise ToolDispatchError(
                code="INVALID_PARAMS", message="debug.insert_dump text must be a string."
            )
        try:
            selection = Selection.from_dict(arguments.get("selection"))
        except ValueError as error:
            raise ToolDispatchError(code="INVALID_PARAMS", message=str(error)) from error

        language = arguments.get("language", config.editor.language)
        if not isinstance(language, str) or language not in SUPPORTED_LANGUAGES:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message=(
                    "debug.insert_dump language must be one of: "
                    f"{', '.join(SUPPORTED_LANGUAGES)}."
                ),
            )
        tab_size = arguments.get("tab_size", config.editor.tab_size)
        insert_spaces = arguments.get("insert_spaces", config.editor.insert_spaces)
        if isinstance(tab_size, bool) or not isinstance(tab_size, int) or tab_size < 1:
            raise ToolDispatchError(
                code="INVALID_PARAMS", message="debug.insert_dump tab_size must be >= 1."
            )
        if not isinstance(insert_spaces, bool):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="debug.insert_dump insert_spaces must be a boolean.",
            )

        document = TextDocument.from_text(text)
        try:
            expression = prepare_expression(document, selection)
        except ValueError as error:
            raise ToolDispatchError(code="INVALID_PARAMS", message=str(error)) from error
        statement = build_dump_statement(language, expression)
        plan = resolve_insertion(
            document, selection, IndentOptions(tab_size=tab_size, insert_spaces=insert_spaces)
        )
        return {
            "expression": expression,
            "statement": statement,
            "plan": plan.to_dict(),
            "inserted_text": render_insertion(plan, statement),
            "text": apply_insertion(document, plan, statement).text,
        }

    return handler


def _clear_handler(
    engine: ScanEngine, bookmarks: BookmarkStore, config: ManagerConfig
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        ids_value = arguments.get("ids")
        path_value = arguments.get("path")
        all_value = arguments.get("all", False)
        if ids_value is None and path_value is None and all_value is not True:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="debug.clear needs one of ids, path or all=true.",
            )

        statements = current_statements(engine)
        if ids_value is not None:
            if not isinstance(ids_value, list) or not all(
                isinstance(item, str) for item in ids_value
            ):
                raise ToolDispatchError(
                    code="INVALID_PARAMS", message="debug.clear ids must be a list of strings."
                )
            wanted = set(ids_value)
            statements = tuple(item for item in statements if item.id in wanted)
        if path_value is not None:
            if not isinstance(path_value, str):
                raise ToolDispatchError(
                    code="INVALID_PARAMS", message="debug.clear path must be a string."
                )
            target = resolve_workspace_path(config.scan.roots, path_value)
            statements = tuple(
                item for item in statements if Path(item.file_path).is_relative_to(target)
            )

        report = clear_statements(statements, bookmarks.ids())
        if report.files_changed:
            asyncio.run(engine.scan_workspace())
        return report.to_dict()

    return handler


def _bookmark_handler(bookmarks: BookmarkStore) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        statement_id = arguments.get("id")
        if not isinstance(statement_id, str) or not statement_id:
            raise ToolDispatchError(
                code="INVALID_PARAMS", message="debug.bookmark id must be a non-empty string."
            )
        return {"id": statement_id, "bookmarked": bookmarks.toggle(statement_id)}

    return handler


def _bookmarks_handler(bookmarks: BookmarkStore) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return {"ids": sorted(bookmarks.ids())}

    return handler


def _exclude_handler(
    engine: ScanEngine, excludes: ExcludeStore, config: ManagerConfig
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        path_value = arguments.get("path")
        kind = arguments.get("kind", "dir")
        add = arguments.get("add", True)
        if not isinstance(path_value, str):
            raise ToolDispatchError(
                code="INVALID_PARAMS", message="debug.exclude path must be a string."
            )
        if kind not in EXCLUDE_KINDS:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message=f"debug.exclude kind must be one of: {', '.join(EXCLUDE_KINDS)}.",
            )
        if not isinstance(add, bool):
            raise ToolDispatchError(
                code="INVALID_PARAMS", message="debug.exclude add must be a boolean."
            )

        target = resolve_workspace_path(config.scan.roots, path_value)
        try:
            pattern = exclude_pattern_for(target, config.scan.roots, is_dir=kind == "dir")
        except ValueError as error:
            raise ToolDispatchError(code="INVALID_PARAMS", message=str(error)) from error
        changed = excludes.update([pattern], add=add)
        engine.reload_config(with_extra_excludes(config, excludes.patterns()))
        result = asyncio.run(engine.scan_workspace())
        return {
            "pattern": pattern,
            "excluded": add,
            "changed": changed,
            "patterns": list(excludes.patterns()),
            "total_statements": result.total_statements,
        }

    return handler


def _export_handler(engine: ScanEngine, config: ManagerConfig) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        export_format = arguments.get("format", "md")
        if not isinstance(export_format, str) or export_format not in EXPORT_FORMATS:
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message=f"debug.export format must be one of: {', '.join(EXPORT_FORMATS)}.",
            )
        fields_value = arguments.get("fields")
        fields: list[str] | None = None
        if fields_value is not None:
            if not isinstance(fields_value, list) or not all(
                isinstance(item, str) for item in fields_value
            ):
                raise ToolDispatchError(
                    code="INVALID_PARAMS", message="debug.export fields must be a list of strings."
                )
            fields = fields_value
        content = render_export(
            current_statements(engine), export_format, fields, roots=config.scan.roots
        )
        return {"format": export_format, "content": content}

    return handler


def _audit_log_handler(
    read_audit_entries: Callable[[str | None, int, str | None], list[dict[str, object]]],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        since_value = arguments.get("since")
        limit_value = arguments.get("limit", 50)
        tool_value = arguments.get("tool")
        since = since_value if isinstance(since_value, str) else None
        tool = tool_value if isinstance(tool_value, str) else None
        limit = limit_value if isinstance(limit_value, int) else 50
        limit = min(max(limit, 1), MAX_AUDIT_ENTRIES)
        return {"entries": read_audit_entries(since, limit, tool)}

    return handler


def _disabled_types(arguments: dict[str, object]) -> frozenset[str]:
    value = arguments.get("disabled_types", [])
    known = {item.value for item in StatementType}
    if not isinstance(value, list) or not all(
        isinstance(item, str) and item in known for item in value
    ):
        raise ToolDispatchError(
            code="INVALID_PARAMS",
            message="disabled_types must be a list of known statement types.",
        )
    return frozenset(value)
