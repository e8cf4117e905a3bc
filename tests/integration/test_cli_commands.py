from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from debug_manager.server import main


def _workspace(tmp_path: Path) -> Path:
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "a.php").write_text("<?php\nvar_dump($a);\necho 'ok';\n", encoding="utf-8")
    (tmp_path / "app" / "b.php").write_text("<?php\n$b = 1;\n", encoding="utf-8")
    return tmp_path


def test_scan_command_prints_json_result(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    workspace = _workspace(tmp_path)

    exit_code = main(["--root", str(workspace), "scan"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["scanned_files"] == 2
    assert [item["type"] for item in payload["statements"]] == ["var_dump", "echo"]


def test_scan_command_exports_csv_for_given_paths(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    workspace = _workspace(tmp_path)

    exit_code = main(
        [
            "--root",
            str(workspace),
            "scan",
            str(workspace / "app" / "a.php"),
            "--format",
            "csv",
            "--fields",
            "line,type",
        ]
    )

    assert exit_code == 0
    assert capsys.readouterr().out.splitlines() == ["line,type", "2,var_dump", "3,echo"]


def test_invalid_config_exits_with_usage_code(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "debug_manager.toml").write_text("[limits]\nbatch_size = 0\n", encoding="utf-8")

    exit_code = main(["--root", str(tmp_path), "scan"])

    assert exit_code == 2
    assert "limits.batch_size" in capsys.readouterr().err


def _fake_git(staged: str):
    calls: list[list[str]] = []

    def run(cmd: list[str], **_: object) -> subprocess.CompletedProcess[str]:
        calls.append(cmd)
        stdout = staged if cmd[1] == "diff" else ""
        return subprocess.CompletedProcess(args=cmd, returncode=0, stdout=stdout, stderr="")

    return run, calls


def test_check_staged_exits_nonzero_when_blocked(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    workspace = _workspace(tmp_path)
    run, calls = _fake_git("app/a.php\napp/b.php\n")

    with patch("debug_manager.guard.subprocess.run", side_effect=run):
        exit_code = main(["--root", str(workspace), "check-staged"])

    outcome = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert outcome["blocked"] is True
    assert outcome["total"] == 2
    assert calls[-1][:5] == ["git", "reset", "-q", "HEAD", "--"]


def test_check_staged_warn_mode_passes_without_fail_flag(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    workspace = _workspace(tmp_path)
    run, calls = _fake_git("app/a.php\n")

    with patch("debug_manager.guard.subprocess.run", side_effect=run):
        relaxed = main(["--root", str(workspace), "check-staged", "--mode", "warn"])
        strict = main(
            ["--root", str(workspace), "check-staged", "--mode", "warn", "--fail-on-warn"]
        )

    capsys.readouterr()
    assert (relaxed, strict) == (0, 1)
    assert all(call[1] == "diff" for call in calls)


def test_check_staged_reports_git_failure(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    failed = subprocess.CompletedProcess(
        args=["git"], returncode=128, stdout="", stderr="fatal: not a git repository"
    )

    with patch("debug_manager.guard.subprocess.run", return_value=failed):
        exit_code = main(["--root", str(tmp_path), "check-staged"])

    assert exit_code == 2
    assert "not a git repository" in capsys.readouterr().err


def test_scan_command_honours_persisted_excludes(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    workspace = _workspace(tmp_path)
    (workspace / ".debug_manager").mkdir()
    (workspace / ".debug_manager" / "excludes.json").write_text('["app/a.php"]\n', encoding="utf-8")

    exit_code = main(["--root", str(workspace), "scan"])

    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["scanned_files"] == 1
    assert payload["statements"] == []
