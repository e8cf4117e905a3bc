from __future__ import annotations

import pytest

from debug_manager.editing import Selection, TextDocument


def test_selection_rejects_negative_and_reversed_ranges() -> None:
    with pytest.raises(ValueError, match="start_line"):
        Selection(-1, 0, 0, 0)
    with pytest.raises(ValueError, match="precede"):
        Selection(2, 0, 1, 5)


def test_selection_from_dict_defaults_end_to_start() -> None:
    selection = Selection.from_dict({"start": {"line": 3, "character": 4}})

    assert selection == Selection(3, 4, 3, 4)
    assert selection.is_empty is True


def test_selection_from_dict_validates_shape() -> None:
    with pytest.raises(ValueError, match="selection must be an object"):
        Selection.from_dict(None)
    with pytest.raises(ValueError, match="end_character"):
        Selection.from_dict({"start": {"line": 0, "character": 0}, "end": {"line": 0}})


def test_text_in_spans_lines_and_rejects_out_of_range() -> None:
    document = TextDocument.from_text("first line\r\nsecond\nthird")

    assert document.line_count == 3
    assert document.line(0) == "first line"
    assert document.text_in(Selection(0, 6, 2, 3)) == "line\nsecond\nthi"
    with pytest.raises(ValueError, match="document has 3 lines"):
        document.text_in(Selection(0, 0, 5, 0))
    with pytest.raises(IndexError):
        document.line(3)


def test_insert_returns_new_document() -> None:
    document = TextDocument.from_text("a\nb")

    updated = document.insert(1, 0, "x\n")

    assert updated.text == "a\nx\nb"
    assert document.text == "a\nb"
    assert document.insert(2, 0, "tail").text == "a\nb\ntail"
    assert document.insert(0, 99, "!").text == "a!\nb"
