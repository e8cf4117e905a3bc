"""Selection validation for dump insertion."""

from __future__ import annotations

import re

from debug_manager.editing.document import Selection, TextDocument
from debug_manager.errors import (
    AmbiguousSelectionError,
    InStringLiteralError,
    NoSelectionError,
    NotInsertableError,
)
from debug_manager.lexical import CharClass, classify_line

_IDENTIFIER_RE = re.compile(r"[A-Za-z_\x80-\uffff][A-Za-z0-9_\x80-\uffff]*")
_CALLEE_RE = re.compile(
    r"^[A-Za-z_\x80-\uffff][A-Za-z0-9_\x80-\uffff]*"
    r"(?:::[A-Za-z_\x80-\uffff][A-Za-z0-9_\x80-\uffff]*)*$"
)
_QUOTES = ("'", '"')

_DUMP_TEMPLATES = {
    "php": "var_dump({expression});exit;",
    "javascript": "console.log({expression});",
    "typescript": "console.log({expression});",
    "python": "print({expression})",
}


def scan_balanced(source: str, start: int, open_char: str, close_char: str) -> int | None:
    """Return the index of the ``close_char`` matching the opener at ``start``.

    Nested pairs and quoted strings (with backslash escapes) are skipped.
    Returns None when the pair never closes.
    """
    depth = 0
    quote: str | None = None
    index = start
    while index < len(source):
        char = source[index]
        if quote is not None:
            if char == quote and _backslashes_before(source, index, start) % 2 == 0:
                quote = None
            index += 1
            continue
        if char in _QUOTES:
            quote = char
        elif char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return index
            if depth < 0:
                return None
        index += 1
    return None


def _backslashes_before(source: str, index: int, floor: int) -> int:
    count = 0
    cursor = index - 1
    while cursor >= floor and source[cursor] == "\\":
        count += 1
        cursor -= 1
    return count


def _skip_whitespace(source: str, index: int) -> int:
    while index < len(source) and source[index].isspace():
        index += 1
    return index


def _consume_accessors(source: str, index: int) -> bool:
    """Accept any chain of ``[index]``, ``->member`` and ``->method(args)``."""
    while True:
        index = _skip_whitespace(source, index)
        if index >= len(source):
            return True
        if source[index] == "[":
            end = scan_balanced(source, index, "[", "]")
            if end is None:
                return False
            index = end + 1
            continue
        if source.startswith("->", index):
            index = _skip_whitespace(source, index + 2)
            member = _IDENTIFIER_RE.match(source, index)
            if member is None:
                return False
            index = _skip_whitespace(source, member.end())
            if index < len(source) and source[index] == "(":
                end = scan_balanced(source, index, "(", ")")
                if end is None:
                    return False
                index = end + 1
            continue
        return False


def is_variable_expression(text: str) -> bool:
    """``$name`` optionally followed by accessors, e.g. ``$obj->items[0]->name``."""
    source = text.strip()
    if not source.startswith("$"):
        return False
    name = _IDENTIFIER_RE.match(source, 1)
    if name is None:
        return False
    return _consume_accessors(source, name.end())


def is_call_expression(text: str) -> bool:
    """``func(...)`` or ``Class::method(...)`` optionally followed by accessors."""
    source = text.strip()
    paren = source.find("(")
    if paren <= 0:
        return False
    if not _CALLEE_RE.match(source[:paren].strip()):
        return False
    end = scan_balanced(source, paren, "(", ")")
    if end is None:
        return False
    return _consume_accessors(source, end + 1)


def is_insertable_expression(text: str) -> bool:
    return is_variable_expression(text) or is_call_expression(text)


def is_incomplete_call(text: str) -> bool:
    """A callee with an opening parenthesis that never closes, like ``foo(``."""
    source = text.strip()
    paren = source.find("(")
    if paren <= 0:
        return False
    callee = source[:paren].strip()
    if not (_CALLEE_RE.match(callee) or is_variable_expression(callee)):
        return False
    return scan_balanced(source, paren, "(", ")") is None


def is_in_string_literal(line: str, start_character: int, end_character: int) -> bool:
    """True when the selection on ``line`` sits inside a quoted string."""
    classes = classify_line(line).classes
    if start_character >= len(classes):
        return False
    last = min(max(end_character - 1, start_character), len(classes) - 1)
    return all(
        char_class is CharClass.STRING for char_class in classes[start_character : last + 1]
    )


def looks_like_partial_call(line: str, end_character: int) -> bool:
    """The selection is directly followed by ``(``, so it is probably only a callee name."""
    return line[end_character:].lstrip().startswith("(")


def strip_trailing_semicolon(text: str) -> str:
    stripped = text.rstrip()
    return stripped[:-1] if stripped.endswith(";") else stripped


def prepare_expression(document: TextDocument, selection: Selection) -> str:
    """Validate the selection and return the expression to dump.

    Raises one of NoSelectionError, InStringLiteralError, AmbiguousSelectionError
    or NotInsertableError; the document is never touched.
    """
    selected = document.text_in(selection).strip()
    if not selected:
        raise NoSelectionError()

    end_line_text = document.line(selection.end_line)
    if selection.start_line == selection.end_line and is_in_string_literal(
        end_line_text, selection.start_character, selection.end_character
    ):
        raise InStringLiteralError()
    if "(" not in selected and looks_like_partial_call(end_line_text, selection.end_character):
        raise AmbiguousSelectionError()

    expression = strip_trailing_semicolon(selected)
    if expression.startswith("$"):
        if is_variable_expression(expression):
            return expression
    elif is_call_expression(expression):
        return expression
    else:
        start_line_text = document.line(selection.start_line)
        previous = selection.start_character - 1
        if 0 <= previous < len(start_line_text) and start_line_text[previous] == "$":
            candidate = f"${expression}"
            if is_variable_expression(candidate):
                return candidate

    if is_incomplete_call(expression):
        raise AmbiguousSelectionError()
    raise NotInsertableError()


def build_dump_statement(language: str, expression: str) -> str:
    """Language-specific dump statement; unknown languages fall back to PHP."""
    template = _DUMP_TEMPLATES.get(language.lower(), _DUMP_TEMPLATES["php"])
    return template.format(expression=expression)
