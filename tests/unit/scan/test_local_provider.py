from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from unittest.mock import patch

from debug_manager.scan.provider import LocalFileProvider


def test_local_reads_stay_on_the_event_loop_thread(tmp_path: Path) -> None:
    first = tmp_path / "a.php"
    second = tmp_path / "b.php"
    first.write_text("<?php\necho 1;\n", encoding="utf-8")
    second.write_text("<?php\necho 2;\n", encoding="utf-8")
    events: list[tuple[str, str, int]] = []
    real_read_text = Path.read_text

    def read_text(self: Path, *args: object, **kwargs: object) -> str:
        events.append(("start", self.name, threading.get_ident()))
        text = real_read_text(self, *args, **kwargs)
        events.append(("end", self.name, threading.get_ident()))
        return text

    provider = LocalFileProvider()

    async def scenario() -> tuple[list[str], int]:
        texts = await asyncio.gather(
            provider.read_text(str(first)), provider.read_text(str(second))
        )
        return texts, threading.get_ident()

    with patch.object(Path, "read_text", read_text):
        texts, loop_thread = asyncio.run(scenario())

    assert texts == ["<?php\necho 1;\n", "<?php\necho 2;\n"]
    assert [(kind, name) for kind, name, _ in events] == [
        ("start", "a.php"),
        ("end", "a.php"),
        ("start", "b.php"),
        ("end", "b.php"),
    ]
    assert {thread for _, _, thread in events} == {loop_thread}


def test_list_dir_sorts_and_classifies_entries(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()
    (tmp_path / "b.php").write_text("", encoding="utf-8")
    (tmp_path / "a.php").write_text("", encoding="utf-8")

    entries = asyncio.run(LocalFileProvider().list_dir(str(tmp_path)))
    stat = asyncio.run(LocalFileProvider().stat(str(tmp_path / "a.php")))

    assert [(entry.name, entry.is_dir, entry.is_file) for entry in entries] == [
        ("a.php", False, True),
        ("b.php", False, True),
        ("src", True, False),
    ]
    assert stat.size == 0
