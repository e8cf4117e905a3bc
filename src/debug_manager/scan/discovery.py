"""Workspace file enumeration with exclude rules and directory pruning."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from debug_manager.errors import DirectoryEnumerationError
from debug_manager.scan.provider import FileProvider

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ExcludeRule:
    """Glob-style path pattern compiled once into a matcher."""

    pattern: str
    regex: re.Pattern[str]

    def matches(self, candidate: str) -> bool:
        return self.regex.match(candidate) is not None


@dataclass(slots=True, frozen=True)
class CollectedFiles:
    """Eligible files found under the roots plus unreadable subtrees."""

    paths: tuple[str, ...]
    errors: tuple[DirectoryEnumerationError, ...]


def compile_exclude_rule(pattern: str) -> ExcludeRule:
    """Translate ``**``, ``*`` and ``?`` globs into an anchored, case-insensitive regex."""
    normalized = normalize_path(pattern)
    parts: list[str] = []
    index = 0
    while index < len(normalized):
        if normalized.startswith("**", index):
            parts.append(".*")
            index += 2
            continue
        char = normalized[index]
        if char == "*":
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        else:
            parts.append(re.escape(char))
        index += 1
    return ExcludeRule(
        pattern=pattern,
        regex=re.compile("^" + "".join(parts) + "$", re.IGNORECASE),
    )


def compile_exclude_rules(patterns: tuple[str, ...]) -> tuple[ExcludeRule, ...]:
    """Compile every non-empty pattern, preserving order."""
    return tuple(compile_exclude_rule(pattern) for pattern in patterns if pattern.strip())


def normalize_path(path: str) -> str:
    return path.replace("\\", "/")


def is_excluded(
    path: str,
    rules: tuple[ExcludeRule, ...],
    roots: tuple[str, ...],
    *,
    is_dir: bool = False,
) -> bool:
    """Match the absolute path and every root-relative form against the rules.

    Directories are matched with a trailing slash so ``**/name/**`` prunes them.
    """
    if not rules:
        return False
    suffix = "/" if is_dir else ""
    candidates = [normalize_path(path).rstrip("/") + suffix]
    for root in roots:
        relative = relative_to_root(path, root)
        if relative is not None:
            candidates.append(relative + suffix)
            candidates.append(f"/{relative}{suffix}")
    return any(rule.matches(candidate) for rule in rules for candidate in candidates)


def relative_to_root(path: str, root: str) -> str | None:
    """POSIX relative path of ``path`` under ``root``, or None when outside."""
    try:
        relative = Path(path).resolve().relative_to(Path(root).resolve())
    except ValueError:
        return None
    return PurePosixPath(*relative.parts).as_posix()


def has_allowed_extension(path: str, include_extensions: tuple[str, ...]) -> bool:
    """Case-insensitive extension check."""
    suffix = Path(path).suffix.lower()
    return suffix in {extension.lower() for extension in include_extensions}


def should_skip_directory(name: str, skip_dir_names: tuple[str, ...]) -> bool:
    """Conventionally irrelevant folders (vendor, caches, VCS) are never entered."""
    return name.lower() in {item.lower() for item in skip_dir_names}


async def collect_files(
    roots: tuple[str, ...],
    provider: FileProvider,
    *,
    rules: tuple[ExcludeRule, ...],
    skip_dir_names: tuple[str, ...],
    include_extensions: tuple[str, ...],
) -> CollectedFiles:
    """Walk every root with an explicit work stack and return eligible files."""
    found: list[str] = []
    errors: list[DirectoryEnumerationError] = []
    stack: list[str] = list(reversed(roots))
    while stack:
        current = stack.pop()
        try:
            entries = await provider.list_dir(current)
        except OSError as error:
            logger.debug("skipping unreadable directory %s: %s", current, error)
            errors.append(DirectoryEnumerationError(path=current, reason=str(error)))
            continue
        for entry in reversed(entries):
            if entry.is_dir:
                if should_skip_directory(entry.name, skip_dir_names):
                    continue
                if is_excluded(entry.path, rules, roots, is_dir=True):
                    continue
                stack.append(entry.path)
                continue
            if not entry.is_file:
                continue
            if not has_allowed_extension(entry.name, include_extensions):
                continue
            if is_excluded(entry.path, rules, roots):
                continue
            found.append(entry.path)
    return CollectedFiles(paths=tuple(sorted(found)), errors=tuple(errors))
