"""Selection validation and insertion-point resolution."""

from .document import IndentOptions, Selection, TextDocument
from .expressions import (
    build_dump_statement,
    is_call_expression,
    is_in_string_literal,
    is_incomplete_call,
    is_insertable_expression,
    is_variable_expression,
    looks_like_partial_call,
    prepare_expression,
    scan_balanced,
    strip_trailing_semicolon,
)
from .insertion import (
    InsertionPlan,
    apply_insertion,
    check_brace_balance,
    indent_increment,
    render_insertion,
    resolve_insertion,
)

__all__ = [
    "IndentOptions",
    "InsertionPlan",
    "Selection",
    "TextDocument",
    "apply_insertion",
    "build_dump_statement",
    "check_brace_balance",
    "indent_increment",
    "is_call_expression",
    "is_in_string_literal",
    "is_incomplete_call",
    "is_insertable_expression",
    "is_variable_expression",
    "looks_like_partial_call",
    "prepare_expression",
    "render_insertion",
    "resolve_insertion",
    "scan_balanced",
    "strip_trailing_semicolon",
]
