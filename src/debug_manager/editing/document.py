"""Immutable document and selection values used by the editing path."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Selection:
    """Zero-based selection range; ``end`` is exclusive on its line."""

    start_line: int
    start_character: int
    end_line: int
    end_character: int

    def __post_init__(self) -> None:
        for name in ("start_line", "start_character", "end_line", "end_character"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValueError(f"Selection field '{name}' must be a non-negative integer.")
        if (self.end_line, self.end_character) < (self.start_line, self.start_character):
            raise ValueError("Selection end must not precede its start.")

    @property
    def is_empty(self) -> bool:
        return (self.start_line, self.start_character) == (self.end_line, self.end_character)

    @classmethod
    def from_dict(cls, payload: object) -> Selection:
        """Build from ``{"start": {"line", "character"}, "end": {...}}``."""
        if not isinstance(payload, dict):
            raise ValueError("selection must be an object.")
        start = payload.get("start")
        end = payload.get("end", start)
        if not isinstance(start, dict) or not isinstance(end, dict):
            raise ValueError("selection.start and selection.end must be objects.")
        return cls(
            start_line=start.get("line"),
            start_character=start.get("character"),
            end_line=end.get("line"),
            end_character=end.get("character"),
        )


@dataclass(slots=True, frozen=True)
class IndentOptions:
    """Per-document indentation preferences."""

    tab_size: int = 4
    insert_spaces: bool = True


@dataclass(slots=True, frozen=True)
class TextDocument:
    """Line-oriented snapshot of a document's text."""

    lines: tuple[str, ...]

    @classmethod
    def from_text(cls, text: str) -> TextDocument:
        return cls(lines=tuple(line.rstrip("\r") for line in text.split("\n")))

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def line(self, index: int) -> str:
        if index < 0 or index >= len(self.lines):
            raise IndexError(f"Line {index} is outside the document.")
        return self.lines[index]

    def text_in(self, selection: Selection) -> str:
        """Return the selected text; positions past a line's end are clamped."""
        self._check_range(selection)
        if selection.start_line == selection.end_line:
            line = self.lines[selection.start_line]
            return line[selection.start_character : selection.end_character]
        parts = [self.lines[selection.start_line][selection.start_character :]]
        parts.extend(self.lines[selection.start_line + 1 : selection.end_line])
        parts.append(self.lines[selection.end_line][: selection.end_character])
        return "\n".join(parts)

    def insert(self, line: int, column: int, text: str) -> TextDocument:
        """Return a new document with ``text`` inserted at ``(line, column)``.

        A line index equal to ``line_count`` appends after the last line.
        """
        if line < 0 or line > len(self.lines):
            raise IndexError(f"Line {line} is outside the document.")
        if line == len(self.lines):
            body = self.text
            return TextDocument.from_text(body + "\n" + text if body else text)
        offset = sum(len(item) + 1 for item in self.lines[:line])
        offset += min(max(column, 0), len(self.lines[line]))
        body = self.text
        return TextDocument.from_text(body[:offset] + text + body[offset:])

    def _check_range(self, selection: Selection) -> None:
        if selection.end_line >= len(self.lines):
            raise ValueError(
                f"Selection ends on line {selection.end_line}, "
                f"document has {len(self.lines)} lines."
            )
