"""Debounced re-scans driven by file-change notifications."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from debug_manager.scan.discovery import collect_files
from debug_manager.scan.engine import ScanEngine
from debug_manager.scan.models import ScanResult
from debug_manager.scan.provider import FileProvider, LocalFileProvider

logger = logging.getLogger(__name__)

ScanCallback = Callable[[ScanResult], Awaitable[None] | None]


class DebouncedRescan:
    """Coalesce bursts of change triggers into one workspace scan.

    A trigger sets the pending flag and schedules a delayed task; further
    triggers while that task is pending are absorbed by it. Triggers that
    arrive while the engine is scanning are dropped.
    """

    def __init__(
        self,
        engine: ScanEngine,
        delay: float,
        on_complete: ScanCallback | None = None,
    ) -> None:
        self._engine = engine
        self._delay = delay
        self._on_complete = on_complete
        self._pending = False
        self._task: asyncio.Task[ScanResult | None] | None = None
        self.scan_count = 0

    @property
    def pending(self) -> bool:
        return self._pending

    def trigger(self) -> bool:
        """Request a re-scan. Returns False when the request was coalesced or dropped."""
        if self._engine.is_scanning:
            logger.debug("change ignored while a scan is running")
            return False
        if self._pending:
            return False
        self._pending = True
        self._task = asyncio.get_running_loop().create_task(self._run())
        return True

    async def wait(self) -> ScanResult | None:
        """Wait for the scheduled scan, if any, and return its result."""
        if self._task is None:
            return None
        return await self._task

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._pending = False

    async def _run(self) -> ScanResult | None:
        await asyncio.sleep(self._delay)
        self._pending = False
        result = await self._engine.scan_workspace()
        self.scan_count += 1
        logger.debug(
            "debounced scan finished: %d statements in %d files",
            result.total_statements,
            result.scanned_files,
        )
        if self._on_complete is not None:
            outcome = self._on_complete(result)
            if outcome is not None:
                await outcome
        return result


class PollingWatcher:
    """Poll eligible files for create/change/delete and trigger a re-scan."""

    def __init__(
        self,
        engine: ScanEngine,
        rescan: DebouncedRescan,
        interval: float,
        provider: FileProvider | None = None,
    ) -> None:
        self._engine = engine
        self._rescan = rescan
        self._interval = interval
        self._provider: FileProvider = provider or LocalFileProvider()
        self._snapshot: dict[str, tuple[int, int]] | None = None

    async def snapshot(self) -> dict[str, tuple[int, int]]:
        """Current ``(size, mtime_ns)`` of every eligible file under the roots."""
        config = self._engine.config
        collected = await collect_files(
            tuple(str(root) for root in config.scan.roots),
            self._provider,
            rules=(),
            skip_dir_names=config.scan.skip_dir_names,
            include_extensions=config.scan.include_extensions,
        )
        state: dict[str, tuple[int, int]] = {}
        for path in collected.paths:
            if not self._engine.is_eligible(path):
                continue
            try:
                stat = await self._provider.stat(path)
            except OSError:
                # removed between listing and stat; counts as a deletion
                continue
            state[path] = (stat.size, stat.mtime_ns)
        return state

    async def poll_once(self) -> bool:
        """Compare with the previous snapshot; trigger when anything differs."""
        current = await self.snapshot()
        previous = self._snapshot
        self._snapshot = current
        if previous is None or previous == current:
            return False
        logger.debug("workspace change detected")
        self._rescan.trigger()
        return True

    async def run(self, iterations: int | None = None) -> None:
        """Poll until cancelled, or for a fixed number of iterations."""
        count = 0
        while iterations is None or count < iterations:
            await self.poll_once()
            count += 1
            await asyncio.sleep(self._interval)
