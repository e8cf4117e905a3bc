"""Scanning package."""

from .cache import FileCache, FileCacheEntry, compute_fingerprint
from .discovery import (
    CollectedFiles,
    ExcludeRule,
    collect_files,
    compile_exclude_rule,
    compile_exclude_rules,
    should_skip_directory,
)
from .engine import ScanEngine, scan_line, scan_text
from .models import EMPTY_RESULT, DebugStatement, ScanError, ScanResult, build_statement_id
from .provider import DirEntry, FileProvider, FileStat, LocalFileProvider
from .watcher import DebouncedRescan, PollingWatcher

__all__ = [
    "CollectedFiles",
    "DebouncedRescan",
    "DebugStatement",
    "DirEntry",
    "EMPTY_RESULT",
    "ExcludeRule",
    "FileCache",
    "FileCacheEntry",
    "FileProvider",
    "FileStat",
    "LocalFileProvider",
    "PollingWatcher",
    "ScanEngine",
    "ScanError",
    "ScanResult",
    "build_statement_id",
    "collect_files",
    "compile_exclude_rule",
    "compile_exclude_rules",
    "compute_fingerprint",
    "scan_line",
    "scan_text",
    "should_skip_directory",
]
