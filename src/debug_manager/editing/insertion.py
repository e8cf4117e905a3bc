"""Insertion-point resolution for generated debug statements."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from debug_manager.editing.document import IndentOptions, Selection, TextDocument
from debug_manager.errors import UnbalancedBracesError
from debug_manager.lexical import (
    INITIAL_STATE,
    BracketCounter,
    CharClass,
    classify_line,
    find_statement_end_in_lines,
    sanitize_line,
)

logger = logging.getLogger(__name__)

_LEADING_WHITESPACE_RE = re.compile(r"^\s*")


@dataclass(slots=True, frozen=True)
class InsertionPlan:
    """Where and how a generated statement is written.

    ``column`` is 0 except when inserting inside an empty ``{}`` on one line;
    that case also sets ``leading_newline``.
    """

    line: int
    column: int
    indent: str
    leading_newline: bool = False
    rule: str = "statement_end"

    def to_dict(self) -> dict[str, object]:
        return {
            "line": self.line,
            "column": self.column,
            "indent": self.indent,
            "leading_newline": self.leading_newline,
            "rule": self.rule,
        }


def leading_indent(text: str) -> str:
    match = _LEADING_WHITESPACE_RE.match(text)
    return match.group(0) if match else ""


def indent_increment(base_indent: str, options: IndentOptions) -> str:
    """One indentation step; a tab whenever the reference indent already uses tabs."""
    if "\t" in base_indent:
        return "\t"
    if options.insert_spaces:
        return " " * options.tab_size
    return "\t"


def previous_content_indent(lines: tuple[str, ...], from_line: int) -> str:
    """Indent of the nearest line at or above ``from_line`` that is not blank or a lone brace."""
    for index in range(min(from_line, len(lines) - 1), -1, -1):
        trimmed = lines[index].strip()
        if not trimmed or trimmed in ("{", "}"):
            continue
        return leading_indent(lines[index])
    return ""


def check_brace_balance(document: TextDocument) -> None:
    """Raise UnbalancedBracesError unless every code ``{`` has its ``}``.

    Braces inside strings and comments are ignored.
    """
    counter = BracketCounter()
    state = INITIAL_STATE
    for index, line in enumerate(document.lines):
        classification = classify_line(line, state)
        for position, char_class in enumerate(classification.classes):
            if char_class is not CharClass.CODE:
                continue
            counter.apply(line[position])
            if counter.brace < 0:
                raise UnbalancedBracesError(
                    index + 1, f"Unmatched '}}' on line {index + 1}."
                )
        state = classification.exit_state
    if counter.brace != 0:
        raise UnbalancedBracesError(
            None, "Unmatched braces detected; check that every block is closed."
        )


def resolve_insertion(
    document: TextDocument,
    selection: Selection,
    options: IndentOptions | None = None,
) -> InsertionPlan:
    """Compute where a statement about the selection should be inserted.

    The brace-balance check runs first; no plan is produced for malformed text.
    """
    check_brace_balance(document)
    active = options or IndentOptions()
    lines = document.lines
    end_line = min(selection.end_line, len(lines) - 1)
    current = lines[end_line]
    next_index = end_line + 1
    next_line = lines[next_index] if next_index < len(lines) else None

    if next_line is not None and next_line.strip() == "{":
        base = leading_indent(next_line)
        return InsertionPlan(
            line=min(next_index + 1, len(lines)),
            column=0,
            indent=base + indent_increment(base, active),
            rule="after_opening_brace",
        )

    if next_line is not None and next_line.strip() == "}":
        indent = previous_content_indent(lines, end_line) or leading_indent(current)
        return InsertionPlan(line=next_index, column=0, indent=indent, rule="before_closing_brace")

    open_index = _first_code_index(current, "{")
    if open_index is not None:
        close_index = _first_code_index(current, "}", open_index + 1)
        between = current[open_index + 1 : close_index] if close_index is not None else None
        if close_index is not None and not between.strip():
            base = leading_indent(current)
            return InsertionPlan(
                line=end_line,
                column=close_index,
                indent=base + indent_increment(base, active),
                leading_newline=True,
                rule="empty_block",
            )
        closing_line = _next_non_blank(lines, end_line + 1)
        if closing_line is not None and lines[closing_line].strip().startswith("}"):
            base = leading_indent(lines[closing_line])
            return InsertionPlan(
                line=closing_line,
                column=0,
                indent=base + indent_increment(base, active),
                rule="block_close",
            )

    statement_end = find_statement_end_in_lines(lines, end_line, selection.end_character)
    anchor_line = statement_end[0] if statement_end is not None else end_line
    if statement_end is None:
        logger.debug("no statement terminator after line %d; inserting below it", end_line + 1)
    indent = previous_content_indent(lines, anchor_line) or leading_indent(lines[anchor_line])
    return InsertionPlan(line=anchor_line + 1, column=0, indent=indent)


def render_insertion(plan: InsertionPlan, statement: str) -> str:
    prefix = "\n" if plan.leading_newline else ""
    return f"{prefix}{plan.indent}{statement}\n"


def apply_insertion(document: TextDocument, plan: InsertionPlan, statement: str) -> TextDocument:
    """Return the document with the rendered statement written at the plan's position."""
    return document.insert(plan.line, plan.column, render_insertion(plan, statement))


def _first_code_index(line: str, char: str, start: int = 0) -> int | None:
    sanitized = sanitize_line(line)
    for index, offset in enumerate(sanitized.offsets):
        if offset >= start and sanitized.text[index] == char:
            return offset
    return None


def _next_non_blank(lines: tuple[str, ...], start: int) -> int | None:
    for index in range(start, len(lines)):
        if lines[index].strip():
            return index
    return None
