"""Staging guard: scan newly staged files before they are committed."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from debug_manager.errors import GitCommandError
from debug_manager.scan.engine import ScanEngine

logger = logging.getLogger(__name__)

GitRunner = Callable[[Path, list[str]], str]


@dataclass(slots=True, frozen=True)
class GuardOutcome:
    """Decision taken for one set of staged files."""

    mode: str
    blocked: bool
    total: int
    per_file: tuple[tuple[str, int], ...]
    unstaged: tuple[str, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "mode": self.mode,
            "blocked": self.blocked,
            "total": self.total,
            "per_file": [{"path": path, "count": count} for path, count in self.per_file],
            "unstaged": list(self.unstaged),
        }


def run_git(repo_root: Path, args: list[str]) -> str:
    completed = subprocess.run(
        ["git", *args],
        cwd=repo_root,
        check=False,
        capture_output=True,
        text=True,
    )
    if completed.returncode != 0:
        raise GitCommandError(completed.stderr.strip() or f"git {' '.join(args)} failed")
    return completed.stdout.strip()


def list_staged_files(repo_root: Path, git: GitRunner = run_git) -> list[str]:
    """Absolute paths of added, copied, modified or renamed files in the index."""
    output = git(repo_root, ["diff", "--cached", "--name-only", "--diff-filter=ACMR"])
    return [
        str((repo_root / line.strip()).resolve()) for line in output.splitlines() if line.strip()
    ]


def unstage_files(repo_root: Path, paths: list[str], git: GitRunner = run_git) -> None:
    if not paths:
        return
    git(repo_root, ["reset", "-q", "HEAD", "--", *paths])


async def check_staged(
    engine: ScanEngine,
    repo_root: Path,
    *,
    mode: str | None = None,
    fail_on_warn: bool = False,
    git: GitRunner = run_git,
) -> GuardOutcome:
    """Scan staged files and apply the guard mode.

    ``strict`` blocks and unstages the offending files, ``warn`` blocks only
    when ``fail_on_warn`` is set, ``lenient`` only logs per-file counts.
    """
    active_mode = mode or engine.config.guard.mode
    if not engine.config.guard.enabled:
        return GuardOutcome(mode=active_mode, blocked=False, total=0, per_file=(), unstaged=())

    staged = list_staged_files(repo_root, git)
    if not staged:
        return GuardOutcome(mode=active_mode, blocked=False, total=0, per_file=(), unstaged=())

    result = await engine.scan_files(staged)
    counts: dict[str, int] = {path: 0 for path in staged}
    for statement in result.statements:
        counts[statement.file_path] = counts.get(statement.file_path, 0) + 1
    per_file = tuple(sorted(counts.items()))
    for path, count in per_file:
        logger.info("staged %s: %d debug statements", path, count)

    if result.total_statements == 0:
        return GuardOutcome(
            mode=active_mode, blocked=False, total=0, per_file=per_file, unstaged=()
        )

    blocked = active_mode == "strict" or (active_mode == "warn" and fail_on_warn)
    unstaged: tuple[str, ...] = ()
    if active_mode == "strict":
        offending = [path for path, count in per_file if count > 0]
        unstage_files(repo_root, offending, git)
        unstaged = tuple(offending)
        logger.warning("unstaged %d files containing debug statements", len(offending))
    elif active_mode == "warn":
        logger.warning("%d debug statements in staged files", result.total_statements)
    return GuardOutcome(
        mode=active_mode,
        blocked=blocked,
        total=result.total_statements,
        per_file=per_file,
        unstaged=unstaged,
    )
