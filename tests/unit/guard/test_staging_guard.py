from __future__ import annotations

import asyncio
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from debug_manager.config import load_effective_config
from debug_manager.errors import GitCommandError
from debug_manager.guard import check_staged, list_staged_files, run_git
from debug_manager.scan import ScanEngine


class FakeGit:
    def __init__(self, staged: list[str]) -> None:
        self.staged = staged
        self.calls: list[list[str]] = []

    def __call__(self, repo_root: Path, args: list[str]) -> str:
        self.calls.append(args)
        if args[0] == "diff":
            return "\n".join(self.staged)
        return ""


def _workspace(tmp_path: Path) -> ScanEngine:
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "dirty.php").write_text("<?php\nvar_dump($a);\ndd($b);\n", encoding="utf-8")
    (tmp_path / "app" / "clean.php").write_text("<?php\n$a = 1;\n", encoding="utf-8")
    return ScanEngine(load_effective_config(tmp_path))


def test_strict_mode_blocks_and_unstages_offending_files(tmp_path: Path) -> None:
    engine = _workspace(tmp_path)
    git = FakeGit(["app/dirty.php", "app/clean.php"])

    outcome = asyncio.run(check_staged(engine, tmp_path, git=git))

    dirty = str((tmp_path / "app" / "dirty.php").resolve())
    clean = str((tmp_path / "app" / "clean.php").resolve())
    assert outcome.blocked is True
    assert outcome.mode == "strict"
    assert outcome.total == 2
    assert outcome.per_file == ((clean, 0), (dirty, 2))
    assert outcome.unstaged == (dirty,)
    assert git.calls[-1] == ["reset", "-q", "HEAD", "--", dirty]
    assert outcome.to_dict()["per_file"][1] == {"path": dirty, "count": 2}


def test_warn_mode_blocks_only_with_fail_on_warn(tmp_path: Path) -> None:
    engine = _workspace(tmp_path)
    git = FakeGit(["app/dirty.php"])

    relaxed = asyncio.run(check_staged(engine, tmp_path, mode="warn", git=git))
    strict = asyncio.run(check_staged(engine, tmp_path, mode="warn", fail_on_warn=True, git=git))

    assert relaxed.blocked is False
    assert strict.blocked is True
    assert relaxed.unstaged == strict.unstaged == ()
    assert all(call[0] == "diff" for call in git.calls)


def test_lenient_mode_never_blocks(tmp_path: Path) -> None:
    engine = _workspace(tmp_path)

    outcome = asyncio.run(
        check_staged(engine, tmp_path, mode="lenient", git=FakeGit(["app/dirty.php"]))
    )

    assert outcome.blocked is False
    assert outcome.total == 2


def test_nothing_staged_or_clean_files_pass(tmp_path: Path) -> None:
    engine = _workspace(tmp_path)

    empty = asyncio.run(check_staged(engine, tmp_path, git=FakeGit([])))
    clean = asyncio.run(check_staged(engine, tmp_path, git=FakeGit(["app/clean.php"])))

    assert empty.blocked is False and empty.total == 0
    assert clean.blocked is False
    assert clean.per_file == ((str((tmp_path / "app" / "clean.php").resolve()), 0),)


def test_disabled_guard_never_calls_git(tmp_path: Path) -> None:
    (tmp_path / "debug_manager.toml").write_text("[guard]\nenabled = false\n", encoding="utf-8")
    engine = _workspace(tmp_path)
    git = FakeGit(["app/dirty.php"])

    outcome = asyncio.run(check_staged(engine, tmp_path, git=git))

    assert outcome.blocked is False
    assert git.calls == []


def test_list_staged_files_uses_added_copied_modified_renamed_filter(tmp_path: Path) -> None:
    git = FakeGit(["a.php", "", "b/c.php"])

    staged = list_staged_files(tmp_path, git)

    assert git.calls == [["diff", "--cached", "--name-only", "--diff-filter=ACMR"]]
    assert staged == [str((tmp_path / "a.php").resolve()), str((tmp_path / "b" / "c.php").resolve())]


def test_run_git_raises_on_failure(tmp_path: Path) -> None:
    failed = subprocess.CompletedProcess(
        args=["git", "status"], returncode=128, stdout="", stderr="fatal: not a git repository"
    )
    with patch("debug_manager.guard.subprocess.run", return_value=failed):
        with pytest.raises(GitCommandError, match="not a git repository"):
            run_git(tmp_path, ["status"])
