from __future__ import annotations

from debug_manager.lexical import Severity, StatementType
from debug_manager.scan import DebugStatement, FileCache, build_statement_id, compute_fingerprint


def _statement() -> DebugStatement:
    return DebugStatement(
        id=build_statement_id("/w/a.php", 2, 0),
        file_path="/w/a.php",
        relative_path="a.php",
        line_number=2,
        column=0,
        content="var_dump($a);",
        context="var_dump($a);",
        type=StatementType.VAR_DUMP,
        severity=Severity.INFO,
    )


def test_lookup_requires_matching_fingerprint() -> None:
    cache = FileCache()
    statements = (_statement(),)
    entry = cache.store("/w/a.php", size=20, mtime_ns=1000, statements=statements)

    assert entry.fingerprint == "20-1000"
    assert cache.lookup("/w/a.php", compute_fingerprint(20, 1000)) == statements
    assert cache.lookup("/w/a.php", compute_fingerprint(21, 1000)) is None
    assert cache.lookup("/w/other.php", compute_fingerprint(20, 1000)) is None


def test_store_overwrites_and_discard_removes() -> None:
    cache = FileCache()
    cache.store("/w/b.php", size=1, mtime_ns=1, statements=())
    cache.store("/w/a.php", size=1, mtime_ns=1, statements=())
    cache.store("/w/a.php", size=2, mtime_ns=2, statements=(_statement(),))

    assert cache.paths() == ("/w/a.php", "/w/b.php")
    assert cache.get("/w/a.php").size == 2

    cache.discard("/w/a.php")
    cache.discard("/w/missing.php")
    assert len(cache) == 1

    cache.clear()
    assert len(cache) == 0


def test_statement_id_and_dict_shape() -> None:
    statement = _statement()

    assert statement.id == "/w/a.php:2:0"
    assert statement.to_dict()["type"] == "var_dump"
    assert statement.to_dict()["severity"] == "info"
