from __future__ import annotations

from pathlib import Path

import pytest

from debug_manager.errors import PathBlockedError
from debug_manager.workspace import resolve_workspace_path


def test_relative_paths_resolve_against_first_root(tmp_path: Path) -> None:
    roots = (tmp_path / "app", tmp_path / "lib")

    assert resolve_workspace_path(roots, "Http/index.php") == (
        tmp_path / "app" / "Http" / "index.php"
    ).resolve()
    assert resolve_workspace_path(roots, "./Http\\index.php") == (
        tmp_path / "app" / "Http" / "index.php"
    ).resolve()


def test_absolute_path_under_any_root_is_allowed(tmp_path: Path) -> None:
    roots = (tmp_path / "app", tmp_path / "lib")
    target = tmp_path / "lib" / "x.php"

    assert resolve_workspace_path(roots, str(target)) == target.resolve()


def test_traversal_is_blocked(tmp_path: Path) -> None:
    with pytest.raises(PathBlockedError, match="traversal") as caught:
        resolve_workspace_path((tmp_path,), "../etc/passwd")

    assert caught.value.code == "PATH_BLOCKED"
    assert "'..'" in caught.value.hint


def test_absolute_path_outside_roots_is_blocked(tmp_path: Path) -> None:
    with pytest.raises(PathBlockedError, match="outside the workspace"):
        resolve_workspace_path((tmp_path / "app",), str(tmp_path / "other.php"))


def test_empty_path_and_missing_roots_are_blocked(tmp_path: Path) -> None:
    with pytest.raises(PathBlockedError, match="empty"):
        resolve_workspace_path((tmp_path,), "   ")
    with pytest.raises(PathBlockedError, match="No workspace root"):
        resolve_workspace_path((), "a.php")
