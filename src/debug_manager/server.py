"""STDIO bridge server and command-line entrypoint."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from debug_manager.config import (
    GUARD_MODES,
    CliOverrides,
    ManagerConfig,
    load_effective_config,
    with_extra_excludes,
)
from debug_manager.errors import DebugManagerError, GitCommandError, PathBlockedError
from debug_manager.guard import check_staged
from debug_manager.logging import (
    AUDIT_FILE_NAME,
    AuditEvent,
    JsonlAuditLogger,
    sanitize_arguments,
    utc_timestamp,
)
from debug_manager.report import (
    BOOKMARKS_FILE_NAME,
    EXCLUDES_FILE_NAME,
    EXPORT_FORMATS,
    BookmarkStore,
    ExcludeStore,
    render_export,
)
from debug_manager.scan import DebouncedRescan, PollingWatcher, ScanEngine, ScanResult
from debug_manager.tools import ToolDispatchError, ToolRegistry, register_builtin_tools

logger = logging.getLogger(__name__)

LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass(slots=True, frozen=True)
class Request:
    """Normalized incoming request."""

    request_id: str
    method: str
    params: dict[str, object]


class StdioServer:
    """JSON-lines request router for editor integrations."""

    def __init__(self, config: ManagerConfig) -> None:
        self._config = config
        self._limits = config.limits
        self._excludes = ExcludeStore(config.data_dir / EXCLUDES_FILE_NAME)
        self._engine = ScanEngine(with_extra_excludes(config, self._excludes.patterns()))
        self._bookmarks = BookmarkStore(config.data_dir / BOOKMARKS_FILE_NAME)
        self._audit_logger = JsonlAuditLogger(path=config.data_dir / AUDIT_FILE_NAME)
        self._registry = ToolRegistry()
        register_builtin_tools(
            self._registry,
            engine=self._engine,
            bookmarks=self._bookmarks,
            excludes=self._excludes,
            read_audit_entries=self._audit_logger.read,
            config=config,
        )
        self._fallback_request_counter = 0

    @property
    def engine(self) -> ScanEngine:
        return self._engine

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Process JSON-line requests and write one JSON-line response each."""
        for raw_line in in_stream:
            line = raw_line.strip()
            if not line:
                continue
            response = self.handle_json_line(line)
            out_stream.write(f"{json.dumps(response, sort_keys=True)}\n")
            out_stream.flush()

    def handle_json_line(self, raw_line: str) -> dict[str, object]:
        try:
            payload = json.loads(raw_line)
        except json.JSONDecodeError:
            request_id = self.next_request_id()
            response = self.error_response(
                request_id=request_id,
                code="INVALID_JSON",
                message="Request must be valid JSON.",
            )
            self.log_request(
                request_id=request_id,
                tool_name="invalid_json",
                arguments={"raw_line_length": len(raw_line)},
                response=response,
            )
            return response
        return self.handle_payload(payload)

    def handle_payload(self, payload: object) -> dict[str, object]:
        """Validate and dispatch a parsed payload."""
        parsed = self.parse_request(payload)
        if isinstance(parsed, dict):
            request_id_value = parsed.get("request_id")
            request_id = (
                request_id_value if isinstance(request_id_value, str) else self.next_request_id()
            )
            self.log_request(
                request_id=request_id,
                tool_name="invalid_request",
                arguments={},
                response=parsed,
            )
            return parsed

        request = parsed
        if request.method == "tools/call":
            tool_name_value = request.params.get("name")
            arguments_value = request.params.get("arguments", {})
            if not isinstance(tool_name_value, str) or not tool_name_value:
                return self.error_response(
                    request_id=request.request_id,
                    code="INVALID_PARAMS",
                    message="tools/call params.name must be a non-empty string.",
                )
            if not isinstance(arguments_value, dict):
                return self.error_response(
                    request_id=request.request_id,
                    code="INVALID_PARAMS",
                    message="tools/call params.arguments must be an object.",
                )
            tool_name = tool_name_value
            arguments = arguments_value
        else:
            tool_name = request.method
            arguments = request.params

        started = time.perf_counter()
        response = self._dispatch(request.request_id, tool_name, arguments)
        self.log_request(
            request_id=request.request_id,
            tool_name=tool_name,
            arguments=arguments,
            response=response,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        return response

    def _dispatch(
        self, request_id: str, tool_name: str, arguments: dict[str, object]
    ) -> dict[str, object]:
        try:
            result = self._registry.dispatch(name=tool_name, arguments=arguments)
        except PathBlockedError as error:
            return self.blocked_response(request_id=request_id, reason=error.message, hint=error.hint)
        except DebugManagerError as error:
            return self.error_response(
                request_id=request_id, code=error.code, message=error.message, hint=error.hint
            )
        except ToolDispatchError as error:
            return self.error_response(request_id=request_id, code=error.code, message=error.message)
        except Exception:
            logger.exception("unhandled error in %s", tool_name)
            return self.error_response(
                request_id=request_id,
                code="INTERNAL_ERROR",
                message="Unhandled server error while executing tool.",
            )

        response = self.success_response(request_id=request_id, result=result)
        return self.enforce_response_size_limit(request_id=request_id, response=response)

    def parse_request(self, payload: object) -> Request | dict[str, object]:
        """Validate request payload and return normalized Request."""
        if not isinstance(payload, dict):
            return self.error_response(
                request_id=self.next_request_id(),
                code="INVALID_REQUEST",
                message="Request must be an object.",
            )

        request_id = self.extract_request_id(payload.get("id"))
        method = payload.get("method")
        params = payload.get("params", {})

        if not isinstance(method, str) or not method:
            return self.error_response(
                request_id=request_id,
                code="INVALID_REQUEST",
                message="Request method must be a non-empty string.",
            )
        if not isinstance(params, dict):
            return self.error_response(
                request_id=request_id,
                code="INVALID_PARAMS",
                message="Request params must be an object.",
            )
        return Request(request_id=request_id, method=method, params=params)

    def extract_request_id(self, request_id: object) -> str:
        if isinstance(request_id, str) and request_id:
            return request_id
        if isinstance(request_id, int) and not isinstance(request_id, bool):
            return str(request_id)
        return self.next_request_id()

    def next_request_id(self) -> str:
        """Fallback ids for requests that carry none."""
        self._fallback_request_counter += 1
        return f"req-{self._fallback_request_counter:06d}"

    @staticmethod
    def success_response(
        request_id: str,
        result: dict[str, object],
        warnings: list[str] | None = None,
    ) -> dict[str, object]:
        return {
            "request_id": request_id,
            "ok": True,
            "result": result,
            "warnings": warnings or [],
            "blocked": False,
        }

    @staticmethod
    def error_response(
        request_id: str, code: str, message: str, hint: str = ""
    ) -> dict[str, object]:
        """Build explicit error envelope."""
        error: dict[str, object] = {"code": code, "message": message}
        if hint:
            error["hint"] = hint
        return {
            "request_id": request_id,
            "ok": False,
            "result": {},
            "warnings": [],
            "blocked": False,
            "error": error,
        }

    @staticmethod
    def blocked_response(request_id: str, reason: str, hint: str) -> dict[str, object]:
        return {
            "request_id": request_id,
            "ok": False,
            "result": {"reason": reason, "hint": hint},
            "warnings": [],
            "blocked": True,
            "error": {"code": "PATH_BLOCKED", "message": reason},
        }

    def enforce_response_size_limit(
        self,
        request_id: str,
        response: dict[str, object],
    ) -> dict[str, object]:
        """Block responses that exceed max_total_bytes_per_response."""
        response_bytes = len(json.dumps(response, sort_keys=True).encode("utf-8"))
        if response_bytes <= self._limits.max_total_bytes_per_response:
            return response
        blocked = self.blocked_response(
            request_id=request_id,
            reason="Response exceeds max_total_bytes_per_response limit.",
            hint="Scan fewer files, disable statement types, or raise the limit.",
        )
        blocked["error"] = {
            "code": "RESPONSE_TOO_LARGE",
            "message": "Response exceeds max_total_bytes_per_response limit.",
        }
        return blocked

    def log_request(
        self,
        request_id: str,
        tool_name: str,
        arguments: dict[str, object],
        response: dict[str, object],
        duration_ms: int = 0,
    ) -> None:
        """Log one sanitized request event."""
        error_payload = response.get("error")
        error_code: str | None = None
        if isinstance(error_payload, dict):
            code_value = error_payload.get("code")
            if isinstance(code_value, str):
                error_code = code_value
        event = AuditEvent(
            timestamp=utc_timestamp(),
            request_id=request_id,
            tool=tool_name,
            ok=bool(response.get("ok", False)),
            blocked=bool(response.get("blocked", False)),
            error_code=error_code,
            metadata=sanitize_arguments(arguments),
            duration_ms=duration_ms,
        )
        self._audit_logger.append(event)


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the argument parser; shared options precede the subcommand."""
    parser = argparse.ArgumentParser(prog="debug-manager")
    parser.add_argument("--root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--max-file-bytes", type=int, required=False, default=None)
    parser.add_argument("--batch-size", type=int, required=False, default=None)
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="warning")
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("serve", help="Serve JSON-line requests on stdin/stdout.")

    scan = commands.add_parser("scan", help="Scan the workspace or the given files.")
    scan.add_argument("paths", nargs="*")
    scan.add_argument("--format", choices=("json", *EXPORT_FORMATS), default="json")
    scan.add_argument("--fields", default=None, help="Comma-separated export fields.")

    staged = commands.add_parser("check-staged", help="Scan files staged in git.")
    staged.add_argument("--mode", choices=GUARD_MODES, default=None)
    staged.add_argument("--fail-on-warn", action="store_true")

    commands.add_parser("watch", help="Re-scan whenever workspace files change.")
    return parser


def create_server(
    workspace_root: str,
    data_dir: str | None = None,
    cli_overrides: CliOverrides | None = None,
) -> StdioServer:
    """Create a configured STDIO server instance."""
    overrides = cli_overrides or CliOverrides()
    if data_dir is not None and overrides.data_dir is None:
        overrides = CliOverrides(
            data_dir=Path(data_dir).resolve(),
            max_file_bytes=overrides.max_file_bytes,
            batch_size=overrides.batch_size,
            guard_mode=overrides.guard_mode,
            language=overrides.language,
        )
    config = load_effective_config(Path(workspace_root).resolve(), overrides=overrides)
    return StdioServer(config=config)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the debug-manager command."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    overrides = CliOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        max_file_bytes=args.max_file_bytes,
        batch_size=args.batch_size,
    )
    try:
        config = load_effective_config(Path(args.root).resolve(), overrides=overrides)
    except ValueError as error:
        print(f"debug-manager: {error}", file=sys.stderr)
        return 2

    command = args.command or "serve"
    if command != "serve":
        try:
            excludes = ExcludeStore(config.data_dir / EXCLUDES_FILE_NAME)
        except ValueError as error:
            print(f"debug-manager: {error}", file=sys.stderr)
            return 2
        config = with_extra_excludes(config, excludes.patterns())
    if command == "scan":
        return _run_scan(config, args.paths, args.format, args.fields, sys.stdout)
    if command == "check-staged":
        return _run_check_staged(config, args.mode, args.fail_on_warn, sys.stdout)
    if command == "watch":
        return _run_watch(config, sys.stdout)
    server = StdioServer(config=config)
    server.serve(in_stream=sys.stdin, out_stream=sys.stdout)
    return 0


def _run_scan(
    config: ManagerConfig,
    paths: list[str],
    output_format: str,
    fields: str | None,
    out_stream: TextIO,
) -> int:
    engine = ScanEngine(config)
    if paths:
        result = asyncio.run(engine.scan_files([str(Path(item).resolve()) for item in paths]))
    else:
        result = asyncio.run(engine.scan_workspace())
    if output_format == "json":
        out_stream.write(json.dumps(result.to_dict(), indent=2, sort_keys=True))
    else:
        selected = [item.strip() for item in fields.split(",")] if fields else None
        out_stream.write(
            render_export(result.statements, output_format, selected, roots=config.scan.roots)
        )
    out_stream.write("\n")
    return 0


def _run_check_staged(
    config: ManagerConfig, mode: str | None, fail_on_warn: bool, out_stream: TextIO
) -> int:
    engine = ScanEngine(config)
    try:
        outcome = asyncio.run(
            check_staged(engine, config.workspace_root, mode=mode, fail_on_warn=fail_on_warn)
        )
    except GitCommandError as error:
        print(f"debug-manager: {error.message}", file=sys.stderr)
        return 2
    out_stream.write(json.dumps(outcome.to_dict(), indent=2, sort_keys=True))
    out_stream.write("\n")
    return 1 if outcome.blocked else 0


def _run_watch(config: ManagerConfig, out_stream: TextIO) -> int:
    engine = ScanEngine(config)

    def report(result: ScanResult) -> None:
        out_stream.write(
            json.dumps(
                {
                    "timestamp": utc_timestamp(),
                    "scanned_files": result.scanned_files,
                    "total_statements": result.total_statements,
                    "errors": len(result.errors),
                },
                sort_keys=True,
            )
        )
        out_stream.write("\n")
        out_stream.flush()

    async def watch() -> None:
        rescan = DebouncedRescan(engine, config.watch.debounce_seconds, on_complete=report)
        watcher = PollingWatcher(engine, rescan, config.watch.poll_interval_seconds)
        report(await engine.scan_workspace())
        await watcher.run()

    try:
        asyncio.run(watch())
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
