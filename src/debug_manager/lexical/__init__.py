"""Lightweight lexical analysis: cursor, classifier, segmenter."""

from .cursor import (
    INITIAL_STATE,
    BracketCounter,
    CharClass,
    LineClassification,
    LineState,
    SanitizedLine,
    classify_line,
    find_statement_end,
    find_statement_end_in_lines,
    sanitize_line,
)
from .patterns import (
    HALT_TOKEN_RE,
    Severity,
    StatementType,
    classify,
    is_exit_only_segment,
    mentions_debug_token,
    severity_for_content,
    severity_for_type,
    token_for_type,
)
from .segmenter import MergedSegment, Segment, merge_segments, segment_line

__all__ = [
    "BracketCounter",
    "CharClass",
    "HALT_TOKEN_RE",
    "INITIAL_STATE",
    "LineClassification",
    "LineState",
    "MergedSegment",
    "SanitizedLine",
    "Segment",
    "Severity",
    "StatementType",
    "classify",
    "classify_line",
    "find_statement_end",
    "find_statement_end_in_lines",
    "is_exit_only_segment",
    "merge_segments",
    "mentions_debug_token",
    "sanitize_line",
    "segment_line",
    "severity_for_content",
    "severity_for_type",
    "token_for_type",
]
