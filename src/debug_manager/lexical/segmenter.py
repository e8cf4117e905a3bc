"""Semicolon segmentation of sanitized lines and dump-and-halt merging."""

from __future__ import annotations

import re
from dataclasses import dataclass

from debug_manager.lexical.patterns import StatementType, classify, is_exit_only_segment

_NESTING_OPENERS = {"(": ")", "[": "]"}
_OPEN_TAGS = ("<?php", "<?")
_CLOSE_TAG = "?>"
# `${...}`, `$obj->{...}`, `Foo::{...}` and `$name{...}` open expression braces.
_EXPRESSION_BRACE_PREFIXES = ("$", "->", "::")
_VARIABLE_TAIL_RE = re.compile(r"\$[A-Za-z_]\w*$")


@dataclass(slots=True, frozen=True)
class Segment:
    """One ``;``-terminated candidate statement in a sanitized line."""

    text: str
    start: int
    end: int

    @property
    def leading_offset(self) -> int:
        """Sanitized offset of the first non-whitespace character."""
        return self.start + (len(self.text) - len(self.text.lstrip()))


@dataclass(slots=True, frozen=True)
class MergedSegment:
    """A classified segment, optionally absorbing a trailing bare exit/die."""

    segment: Segment
    statement_type: StatementType
    halt: Segment | None = None


def segment_line(sanitized: str) -> list[Segment]:
    """Split a sanitized line on top-level semicolons.

    Semicolons nested in ``(``, ``[`` (``for(;;)``) or an expression brace
    (``$obj->{...}``, ``${...}``) are not terminators. Outside of them, block
    ``{``, ``}`` and PHP open/close tags end the current candidate without
    emitting it. An unterminated trailing fragment is dropped.
    """
    segments: list[Segment] = []
    closers: list[str] = []
    seg_start = 0
    index = 0
    length = len(sanitized)
    while index < length:
        char = sanitized[index]
        if char in _NESTING_OPENERS:
            closers.append(_NESTING_OPENERS[char])
            index += 1
            continue
        if char == "{" and _opens_expression_brace(sanitized, index):
            closers.append("}")
            index += 1
            continue
        if closers:
            if char == closers[-1]:
                closers.pop()
            index += 1
            continue
        tag = _boundary_tag(sanitized, index)
        if tag is not None:
            index += len(tag)
            seg_start = index
            continue
        if char in "{}":
            index += 1
            seg_start = index
            continue
        if char == ";":
            text = sanitized[seg_start : index + 1]
            if text.strip():
                segments.append(Segment(text=text, start=seg_start, end=index))
            seg_start = index + 1
        index += 1
    return segments


def merge_segments(segments: list[Segment]) -> list[MergedSegment]:
    """Classify segments, folding ``debug(); exit;`` pairs into one statement.

    Only the immediately following segment is considered for the merge.
    """
    merged: list[MergedSegment] = []
    index = 0
    while index < len(segments):
        segment = segments[index]
        statement_type = classify(segment.text)
        if statement_type is None:
            index += 1
            continue
        following = segments[index + 1] if index + 1 < len(segments) else None
        if following is not None and is_exit_only_segment(following.text):
            merged.append(
                MergedSegment(segment=segment, statement_type=statement_type, halt=following)
            )
            index += 2
            continue
        merged.append(MergedSegment(segment=segment, statement_type=statement_type))
        index += 1
    return merged


def _opens_expression_brace(text: str, index: int) -> bool:
    before = text[:index]
    return before.endswith(_EXPRESSION_BRACE_PREFIXES) or bool(_VARIABLE_TAIL_RE.search(before))


def _boundary_tag(text: str, index: int) -> str | None:
    if text.startswith(_CLOSE_TAG, index):
        return _CLOSE_TAG
    for tag in _OPEN_TAGS:
        if text[index : index + len(tag)].lower() == tag:
            return tag
    return None
