from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from debug_manager.config import CliOverrides, load_effective_config
from debug_manager.scan import EMPTY_RESULT, LocalFileProvider, ScanEngine
from debug_manager.scan import engine as engine_module


class CountingProvider(LocalFileProvider):
    def __init__(self) -> None:
        self.reads: list[str] = []

    async def read_text(self, path: str) -> str:
        self.reads.append(path)
        return await super().read_text(path)


class BlockingProvider(LocalFileProvider):
    def __init__(self) -> None:
        self.release = asyncio.Event()

    async def read_text(self, path: str) -> str:
        await self.release.wait()
        return await super().read_text(path)


class FailingProvider(LocalFileProvider):
    async def list_dir(self, path: str):
        if Path(path).name == "locked":
            raise PermissionError(13, "Permission denied", path)
        return await super().list_dir(path)

    async def read_text(self, path: str) -> str:
        if Path(path).name == "broken.php":
            raise OSError(5, "Input/output error", path)
        return await super().read_text(path)


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_workspace_scan_is_sorted_by_path_then_line(tmp_path: Path) -> None:
    _write(tmp_path / "b.php", "<?php\nvar_dump($b);\n")
    _write(tmp_path / "a.php", "<?php\nprint_r($a);\n$x = 1;\necho $x;\n")
    _write(tmp_path / "sub" / "c.php", "<?php dd($c);\n")
    engine = ScanEngine(load_effective_config(tmp_path))

    result = asyncio.run(engine.scan_workspace())

    assert [(item.relative_path, item.line_number) for item in result.statements] == [
        ("a.php", 2),
        ("a.php", 4),
        ("b.php", 2),
        ("sub/c.php", 1),
    ]
    assert result.scanned_files == 3
    assert result.total_statements == 4
    assert result.errors == ()
    assert engine.last_result is result


def test_oversized_file_is_recorded_and_batch_continues(tmp_path: Path) -> None:
    _write(tmp_path / "big.php", "<?php\n" + "var_dump($x);\n" * 20)
    _write(tmp_path / "small.php", "<?php\nvar_dump($y);\n")
    config = load_effective_config(tmp_path, CliOverrides(max_file_bytes=64))
    engine = ScanEngine(config)

    result = asyncio.run(engine.scan_workspace())

    assert [item.content for item in result.statements] == ["var_dump($y);"]
    assert result.scanned_files == 2
    assert len(result.errors) == 1
    assert result.errors[0].code == "FILE_TOO_LARGE"
    assert result.errors[0].file_path.endswith("big.php")


def test_rescan_of_unchanged_files_uses_cache(tmp_path: Path) -> None:
    target = _write(tmp_path / "a.php", "<?php\nvar_dump($a);\n")
    _write(tmp_path / "b.php", "<?php\necho $b;\n")
    provider = CountingProvider()
    engine = ScanEngine(load_effective_config(tmp_path), provider=provider)

    first = asyncio.run(engine.scan_workspace())
    second = asyncio.run(engine.scan_workspace())

    assert first.statements == second.statements
    assert len(provider.reads) == 2
    assert len(engine.cache) == 2

    target.write_text("<?php\nvar_dump($a);\nvar_dump($b);\n", encoding="utf-8")
    third = asyncio.run(engine.scan_workspace())

    assert len(provider.reads) == 3
    assert third.total_statements == 3


def test_overlapping_scan_returns_empty_result(tmp_path: Path) -> None:
    _write(tmp_path / "a.php", "<?php\nvar_dump($a);\n")
    config = load_effective_config(tmp_path)

    async def scenario():
        provider = BlockingProvider()
        engine = ScanEngine(config, provider=provider)
        running = asyncio.create_task(engine.scan_workspace())
        for _ in range(10):
            if engine.is_scanning:
                break
            await asyncio.sleep(0)
        overlapping_files = await engine.scan_files([str(tmp_path / "a.php")])
        overlapping_workspace = await engine.scan_workspace()
        provider.release.set()
        finished = await running
        return engine, overlapping_files, overlapping_workspace, finished

    engine, overlapping_files, overlapping_workspace, finished = asyncio.run(scenario())

    assert overlapping_files is EMPTY_RESULT
    assert overlapping_workspace is EMPTY_RESULT
    assert finished.total_statements == 1
    assert engine.is_scanning is False


def test_scan_files_filters_ineligible_paths(tmp_path: Path) -> None:
    php = _write(tmp_path / "app" / "a.php", "<?php\nvar_dump($a);\n")
    upper = _write(tmp_path / "app" / "B.PHP", "<?php\nvar_dump($b);\n")
    text = _write(tmp_path / "notes.txt", "var_dump($c);\n")
    vendored = _write(tmp_path / "vendor" / "lib.php", "<?php\nvar_dump($d);\n")
    engine = ScanEngine(load_effective_config(tmp_path))

    result = asyncio.run(
        engine.scan_files([str(php), str(upper), str(text), str(vendored), str(php)])
    )

    assert result.scanned_files == 2
    assert sorted(Path(item.file_path).name for item in result.statements) == ["B.PHP", "a.php"]


def test_unreadable_directory_and_file_are_isolated(tmp_path: Path) -> None:
    _write(tmp_path / "locked" / "hidden.php", "<?php\nvar_dump($h);\n")
    _write(tmp_path / "broken.php", "<?php\nvar_dump($b);\n")
    _write(tmp_path / "ok.php", "<?php\nvar_dump($o);\n")
    engine = ScanEngine(load_effective_config(tmp_path), provider=FailingProvider())

    result = asyncio.run(engine.scan_workspace())

    assert [Path(item.file_path).name for item in result.statements] == ["ok.php"]
    assert result.scanned_files == 2
    assert sorted(error.code for error in result.errors) == [
        "DIRECTORY_UNREADABLE",
        "READ_ERROR",
    ]


def test_large_scans_yield_periodically(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for index in range(5):
        _write(tmp_path / f"f{index}.php", "<?php\necho 1;\n")
    engine = ScanEngine(load_effective_config(tmp_path, CliOverrides(batch_size=1)))
    delays: list[float] = []
    real_sleep = asyncio.sleep

    async def recording_sleep(delay: float) -> None:
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(engine_module, "YIELD_EVERY_FILES", 2)
    monkeypatch.setattr(engine_module.asyncio, "sleep", recording_sleep)

    result = asyncio.run(engine.scan_workspace())

    assert result.total_statements == 5
    assert delays == [engine_module.YIELD_DELAY_SECONDS, engine_module.YIELD_DELAY_SECONDS]


def test_reload_config_recompiles_exclude_rules(tmp_path: Path) -> None:
    _write(tmp_path / "gen" / "a.php", "<?php\nvar_dump($a);\n")
    engine = ScanEngine(load_effective_config(tmp_path))
    assert asyncio.run(engine.scan_workspace()).total_statements == 1

    (tmp_path / "debug_manager.toml").write_text(
        '[scan]\nexclude_globs = ["**/gen/**"]\n', encoding="utf-8"
    )
    engine.reload_config(load_effective_config(tmp_path))

    assert asyncio.run(engine.scan_workspace()).total_statements == 0
