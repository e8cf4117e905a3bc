from __future__ import annotations

import asyncio
from pathlib import Path

from debug_manager.config import load_effective_config
from debug_manager.scan import DebouncedRescan, LocalFileProvider, PollingWatcher, ScanEngine
from debug_manager.scan.models import ScanResult


class BlockingProvider(LocalFileProvider):
    def __init__(self) -> None:
        self.release = asyncio.Event()

    async def read_text(self, path: str) -> str:
        await self.release.wait()
        return await super().read_text(path)


def _engine(tmp_path: Path, provider: LocalFileProvider | None = None) -> ScanEngine:
    (tmp_path / "a.php").write_text("<?php\nvar_dump($a);\n", encoding="utf-8")
    return ScanEngine(load_effective_config(tmp_path), provider=provider)


def test_triggers_coalesce_into_one_scan(tmp_path: Path) -> None:
    engine = _engine(tmp_path)
    seen: list[ScanResult] = []

    async def scenario():
        rescan = DebouncedRescan(engine, 0.01, on_complete=seen.append)
        accepted = [rescan.trigger(), rescan.trigger(), rescan.trigger()]
        pending = rescan.pending
        result = await rescan.wait()
        return rescan, accepted, pending, result

    rescan, accepted, pending, result = asyncio.run(scenario())

    assert accepted == [True, False, False]
    assert pending is True
    assert rescan.pending is False
    assert rescan.scan_count == 1
    assert result is not None
    assert result.total_statements == 1
    assert seen == [result]


def test_async_completion_callback_is_awaited(tmp_path: Path) -> None:
    engine = _engine(tmp_path)
    seen: list[int] = []

    async def record(result: ScanResult) -> None:
        await asyncio.sleep(0)
        seen.append(result.total_statements)

    async def scenario() -> None:
        rescan = DebouncedRescan(engine, 0.0, on_complete=record)
        rescan.trigger()
        await rescan.wait()

    asyncio.run(scenario())

    assert seen == [1]


def test_trigger_during_running_scan_is_dropped(tmp_path: Path) -> None:
    provider = BlockingProvider()
    engine = _engine(tmp_path, provider)

    async def scenario() -> tuple[bool, int]:
        provider.release = asyncio.Event()
        rescan = DebouncedRescan(engine, 0.0)
        running = asyncio.create_task(engine.scan_workspace())
        for _ in range(10):
            if engine.is_scanning:
                break
            await asyncio.sleep(0)
        accepted = rescan.trigger()
        provider.release.set()
        await running
        return accepted, rescan.scan_count

    accepted, scan_count = asyncio.run(scenario())

    assert accepted is False
    assert scan_count == 0


def test_polling_watcher_triggers_on_create_change_and_delete(tmp_path: Path) -> None:
    engine = _engine(tmp_path)

    async def scenario() -> list[bool]:
        rescan = DebouncedRescan(engine, 0.0)
        watcher = PollingWatcher(engine, rescan, interval=0.0)
        outcomes = [await watcher.poll_once(), await watcher.poll_once()]

        (tmp_path / "b.php").write_text("<?php\necho 1;\n", encoding="utf-8")
        outcomes.append(await watcher.poll_once())
        await rescan.wait()

        (tmp_path / "b.php").write_text("<?php\necho 1;\necho 2;\n", encoding="utf-8")
        outcomes.append(await watcher.poll_once())
        await rescan.wait()

        (tmp_path / "a.php").unlink()
        outcomes.append(await watcher.poll_once())
        await rescan.wait()

        (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")
        outcomes.append(await watcher.poll_once())
        return outcomes

    outcomes = asyncio.run(scenario())

    assert outcomes == [False, False, True, True, True, False]
    assert engine.last_result is not None
    assert engine.last_result.total_statements == 2


def test_polling_watcher_run_stops_after_iterations(tmp_path: Path) -> None:
    engine = _engine(tmp_path)

    async def scenario() -> int:
        rescan = DebouncedRescan(engine, 0.0)
        watcher = PollingWatcher(engine, rescan, interval=0.0)
        await watcher.run(iterations=3)
        return rescan.scan_count

    assert asyncio.run(scenario()) == 0
