"""Per-file and batched debug-statement scanning."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from pathlib import Path

from debug_manager.config import ManagerConfig
from debug_manager.errors import (
    DebugManagerError,
    DirectoryEnumerationError,
    FileTooLargeError,
    ScanReadError,
)
from debug_manager.lexical import (
    HALT_TOKEN_RE,
    INITIAL_STATE,
    LineState,
    MergedSegment,
    SanitizedLine,
    find_statement_end,
    merge_segments,
    mentions_debug_token,
    sanitize_line,
    segment_line,
    severity_for_content,
    token_for_type,
)
from debug_manager.logging.audit import utc_timestamp
from debug_manager.scan.cache import FileCache, compute_fingerprint
from debug_manager.scan.discovery import (
    ExcludeRule,
    collect_files,
    compile_exclude_rules,
    has_allowed_extension,
    is_excluded,
    relative_to_root,
)
from debug_manager.scan.models import (
    EMPTY_RESULT,
    DebugStatement,
    ScanError,
    ScanResult,
    build_statement_id,
    statement_sort_key,
)
from debug_manager.scan.provider import FileProvider, LocalFileProvider

logger = logging.getLogger(__name__)

YIELD_EVERY_FILES = 200
YIELD_DELAY_SECONDS = 0.01


def scan_line(
    raw_line: str,
    state: LineState,
    *,
    file_path: str,
    relative_path: str,
    line_number: int,
) -> tuple[list[DebugStatement], LineState]:
    """Scan one raw line given the state carried from the previous line.

    Returns the statements found on the line and the state for the next one.
    """
    line = raw_line.rstrip("\r")
    sanitized = sanitize_line(line, state)
    if not mentions_debug_token(sanitized.text):
        return [], sanitized.exit_state

    statements: list[DebugStatement] = []
    for merged in merge_segments(segment_line(sanitized.text)):
        span = _locate_in_raw_line(line, sanitized, merged)
        if span is None:
            continue
        start, end = span
        content = line[start:end].strip()
        if not content:
            continue
        statements.append(
            DebugStatement(
                id=build_statement_id(file_path, line_number, start),
                file_path=file_path,
                relative_path=relative_path,
                line_number=line_number,
                column=start,
                content=content,
                context=line,
                type=merged.statement_type,
                severity=severity_for_content(content),
            )
        )
    return statements, sanitized.exit_state


def scan_text(text: str, *, file_path: str, relative_path: str) -> tuple[DebugStatement, ...]:
    """Scan a whole document, threading block-comment state line to line."""
    state = INITIAL_STATE
    found: list[DebugStatement] = []
    for index, raw_line in enumerate(text.split("\n")):
        statements, state = scan_line(
            raw_line,
            state,
            file_path=file_path,
            relative_path=relative_path,
            line_number=index + 1,
        )
        found.extend(statements)
    return tuple(found)


def _locate_in_raw_line(
    line: str, sanitized: SanitizedLine, merged: MergedSegment
) -> tuple[int, int] | None:
    token = token_for_type(merged.statement_type)
    anchor = sanitized.raw_offset(merged.segment.leading_offset)
    start = _find_token(line, token, anchor)
    if start is None:
        return None
    end = find_statement_end(line, start)
    if merged.halt is None:
        return start, end

    halt_anchor = max(end, sanitized.raw_offset(merged.halt.leading_offset))
    halt_match = HALT_TOKEN_RE.search(line, halt_anchor) or HALT_TOKEN_RE.search(line, end)
    if halt_match is None:
        return start, end
    return start, find_statement_end(line, halt_match.start())


def _find_token(line: str, token: str, anchor: int) -> int | None:
    pattern = re.compile(re.escape(token), re.IGNORECASE)
    match = pattern.search(line, anchor) or pattern.search(line)
    if match is None:
        return None
    return match.start()


class ScanEngine:
    """Scans workspace files for debug statements.

    One instance owns its file cache, its compiled exclude rules and the
    scan-in-progress flag; only one logical scan runs at a time.
    """

    def __init__(self, config: ManagerConfig, provider: FileProvider | None = None) -> None:
        self._provider: FileProvider = provider or LocalFileProvider()
        self._cache = FileCache()
        self._scanning = False
        self._last_result: ScanResult | None = None
        self._config = config
        self._roots: tuple[str, ...] = ()
        self._rules: tuple[ExcludeRule, ...] = ()
        self.reload_config(config)

    @property
    def config(self) -> ManagerConfig:
        return self._config

    @property
    def cache(self) -> FileCache:
        return self._cache

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    @property
    def last_result(self) -> ScanResult | None:
        return self._last_result

    def reload_config(self, config: ManagerConfig) -> None:
        """Adopt a new config and recompile exclude rules from it."""
        self._config = config
        self._roots = tuple(str(root) for root in config.scan.roots)
        self._rules = compile_exclude_rules(config.scan.exclude_globs)

    def is_eligible(self, path: str) -> bool:
        """Extension allowed and no exclude rule matches."""
        if not has_allowed_extension(path, self._config.scan.include_extensions):
            return False
        return not is_excluded(path, self._rules, self._roots)

    def relative_path(self, path: str) -> str:
        """Path relative to the first root containing it, else the path itself."""
        for root in self._roots:
            relative = relative_to_root(path, root)
            if relative is not None:
                return relative
        return Path(path).as_posix()

    async def scan_file(self, path: str) -> tuple[DebugStatement, ...]:
        """Scan one file, reusing the cached statements when it is unchanged."""
        file_path = str(Path(path).resolve())
        try:
            stat = await self._provider.stat(file_path)
        except OSError as error:
            self._cache.discard(file_path)
            raise ScanReadError(file_path, str(error)) from error

        limit = self._config.limits.max_file_bytes
        if stat.size > limit:
            logger.debug("size gate skipped %s (%d > %d bytes)", file_path, stat.size, limit)
            self._cache.discard(file_path)
            raise FileTooLargeError(file_path, stat.size, limit)

        cached = self._cache.lookup(file_path, compute_fingerprint(stat.size, stat.mtime_ns))
        if cached is not None:
            logger.debug("cache hit for %s", file_path)
            return cached

        try:
            text = await self._provider.read_text(file_path)
        except OSError as error:
            self._cache.discard(file_path)
            raise ScanReadError(file_path, str(error)) from error

        statements = scan_text(
            text, file_path=file_path, relative_path=self.relative_path(file_path)
        )
        self._cache.store(file_path, stat.size, stat.mtime_ns, statements)
        return statements

    async def scan_files(self, paths: list[str] | tuple[str, ...]) -> ScanResult:
        """Scan the eligible subset of ``paths`` in bounded batches."""
        if self._scanning:
            logger.debug("scan already in progress; returning empty result")
            return EMPTY_RESULT
        self._scanning = True
        started = time.perf_counter()
        try:
            resolved = {str(Path(path).resolve()) for path in paths}
            eligible = sorted(path for path in resolved if self.is_eligible(path))
            result = await self._scan_paths(eligible, started, ())
        finally:
            self._scanning = False
        self._last_result = result
        return result

    async def scan_workspace(self) -> ScanResult:
        """Enumerate every eligible file under the configured roots and scan it."""
        if self._scanning:
            logger.debug("scan already in progress; returning empty result")
            return EMPTY_RESULT
        self._scanning = True
        started = time.perf_counter()
        try:
            collected = await collect_files(
                self._roots,
                self._provider,
                rules=self._rules,
                skip_dir_names=self._config.scan.skip_dir_names,
                include_extensions=self._config.scan.include_extensions,
            )
            directory_errors = tuple(
                _directory_error(error) for error in collected.errors
            )
            result = await self._scan_paths(list(collected.paths), started, directory_errors)
        finally:
            self._scanning = False
        self._last_result = result
        return result

    async def _scan_paths(
        self,
        paths: list[str],
        started: float,
        prior_errors: tuple[ScanError, ...],
    ) -> ScanResult:
        statements: list[DebugStatement] = []
        errors: list[ScanError] = list(prior_errors)
        batch_size = self._config.limits.batch_size
        since_yield = 0
        for index in range(0, len(paths), batch_size):
            batch = paths[index : index + batch_size]
            outcomes = await asyncio.gather(
                *(self.scan_file(path) for path in batch), return_exceptions=True
            )
            for path, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, DebugManagerError):
                    logger.warning("scan error in %s: %s", path, outcome.message)
                    errors.append(
                        ScanError(
                            file_path=path,
                            error=outcome.message,
                            code=outcome.code,
                            timestamp=utc_timestamp(),
                        )
                    )
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    statements.extend(outcome)
            since_yield += len(batch)
            if since_yield >= YIELD_EVERY_FILES:
                since_yield = 0
                await asyncio.sleep(YIELD_DELAY_SECONDS)

        ordered = tuple(sorted(statements, key=statement_sort_key))
        return ScanResult(
            statements=ordered,
            scanned_files=len(paths),
            total_statements=len(ordered),
            errors=tuple(sorted(errors, key=lambda item: item.file_path)),
            scan_time=time.perf_counter() - started,
        )


def _directory_error(error: DirectoryEnumerationError) -> ScanError:
    return ScanError(
        file_path=error.path,
        error=error.message,
        code=error.code,
        timestamp=utc_timestamp(),
    )
