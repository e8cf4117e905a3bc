"""Quote- and comment-aware character classification for single source lines."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

QUOTE_CHARS = ("'", '"')
ESCAPE_CHAR = "\\"
LINE_COMMENT_PREFIXES = ("//", "#")
BLOCK_COMMENT_START = "/*"
BLOCK_COMMENT_END = "*/"

_OPENERS = {"(": "paren", "[": "bracket", "{": "brace"}
_CLOSERS = {")": "paren", "]": "bracket", "}": "brace"}


class CharClass(StrEnum):
    """Lexical role of one character in a line."""

    CODE = "code"
    STRING = "string"
    QUOTE = "quote"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"


@dataclass(slots=True, frozen=True)
class LineState:
    """Scanner state carried from the end of one line into the next."""

    in_block_comment: bool = False
    in_string: bool = False
    string_delimiter: str | None = None


INITIAL_STATE = LineState()


@dataclass(slots=True, frozen=True)
class LineClassification:
    """Per-character classes for one line plus the state for the next line."""

    classes: tuple[CharClass, ...]
    exit_state: LineState


@dataclass(slots=True, frozen=True)
class SanitizedLine:
    """Code-only view of a line with a map back to raw-line offsets."""

    text: str
    offsets: tuple[int, ...]
    exit_state: LineState

    def raw_offset(self, index: int) -> int:
        """Map a sanitized index to its offset in the raw line."""
        if not self.offsets:
            return 0
        if index >= len(self.offsets):
            return self.offsets[-1] + 1
        return self.offsets[max(0, index)]


def classify_line(line: str, state: LineState = INITIAL_STATE) -> LineClassification:
    """Classify every character of ``line`` starting from ``state``.

    String literals are single-line: a string still open at the end of the line
    is closed there. Block comments carry over until ``*/`` is seen.
    """
    classes: list[CharClass] = []
    length = len(line)
    in_block = state.in_block_comment
    delimiter = state.string_delimiter if state.in_string else None
    escaped = False
    index = 0

    while index < length:
        char = line[index]
        if in_block:
            if line.startswith(BLOCK_COMMENT_END, index):
                classes.extend((CharClass.BLOCK_COMMENT, CharClass.BLOCK_COMMENT))
                in_block = False
                index += 2
                continue
            classes.append(CharClass.BLOCK_COMMENT)
            index += 1
            continue

        if delimiter is not None:
            if escaped:
                classes.append(CharClass.STRING)
                escaped = False
            elif char == ESCAPE_CHAR:
                classes.append(CharClass.STRING)
                escaped = True
            elif char == delimiter:
                classes.append(CharClass.QUOTE)
                delimiter = None
            else:
                classes.append(CharClass.STRING)
            index += 1
            continue

        if char in QUOTE_CHARS:
            classes.append(CharClass.QUOTE)
            delimiter = char
            escaped = False
            index += 1
            continue
        if any(line.startswith(prefix, index) for prefix in LINE_COMMENT_PREFIXES):
            classes.extend([CharClass.LINE_COMMENT] * (length - index))
            break
        if line.startswith(BLOCK_COMMENT_START, index):
            classes.extend((CharClass.BLOCK_COMMENT, CharClass.BLOCK_COMMENT))
            in_block = True
            index += 2
            continue
        classes.append(CharClass.CODE)
        index += 1

    return LineClassification(
        classes=tuple(classes),
        exit_state=LineState(in_block_comment=in_block),
    )


def sanitize_line(line: str, state: LineState = INITIAL_STATE) -> SanitizedLine:
    """Drop string contents, quotes and comments, keeping only code characters."""
    classification = classify_line(line, state)
    kept: list[str] = []
    offsets: list[int] = []
    for index, char_class in enumerate(classification.classes):
        if char_class is CharClass.CODE:
            kept.append(line[index])
            offsets.append(index)
    return SanitizedLine(
        text="".join(kept),
        offsets=tuple(offsets),
        exit_state=classification.exit_state,
    )


@dataclass(slots=True)
class BracketCounter:
    """Running count of open `(`, `[` and `{` over code characters.

    With ``clamp`` set, a closer never drives its count below zero.
    """

    paren: int = 0
    bracket: int = 0
    brace: int = 0
    clamp: bool = False

    def apply(self, char: str) -> None:
        opener = _OPENERS.get(char)
        if opener is not None:
            setattr(self, opener, getattr(self, opener) + 1)
            return
        closer = _CLOSERS.get(char)
        if closer is None:
            return
        current = getattr(self, closer)
        if self.clamp and current <= 0:
            return
        setattr(self, closer, current - 1)

    def feed(self, line: str, state: LineState = INITIAL_STATE) -> LineState:
        """Count every code character of ``line`` and return the exit state."""
        classification = classify_line(line, state)
        for index, char_class in enumerate(classification.classes):
            if char_class is CharClass.CODE:
                self.apply(line[index])
        return classification.exit_state

    @property
    def is_top_level(self) -> bool:
        return self.paren <= 0 and self.bracket <= 0 and self.brace <= 0


def find_statement_end(text: str, start: int = 0) -> int:
    """Return the offset just past the first top-level ``;`` at or after ``start``.

    Falls back to ``len(text)`` when the statement is not terminated on this line.
    """
    begin = max(0, start)
    tail = text[begin:]
    classification = classify_line(tail)
    depth = BracketCounter(clamp=True)
    for index, char_class in enumerate(classification.classes):
        if char_class is not CharClass.CODE:
            continue
        char = tail[index]
        if char == ";" and depth.is_top_level:
            return begin + index + 1
        depth.apply(char)
    return len(text)


def find_statement_end_in_lines(
    lines: list[str] | tuple[str, ...],
    line: int,
    character: int,
) -> tuple[int, int] | None:
    """Locate the first top-level ``;`` scanning forward across lines.

    Returns ``(line_index, offset_after_semicolon)`` or ``None`` when the rest of
    the document holds no terminator.
    """
    depth = BracketCounter(clamp=True)
    state = INITIAL_STATE
    for line_index in range(line, len(lines)):
        text = lines[line_index]
        begin = character if line_index == line else 0
        tail = text[begin:]
        classification = classify_line(tail, state)
        for index, char_class in enumerate(classification.classes):
            if char_class is not CharClass.CODE:
                continue
            char = tail[index]
            if char == ";" and depth.is_top_level:
                return line_index, begin + index + 1
            depth.apply(char)
        state = classification.exit_state
    return None

