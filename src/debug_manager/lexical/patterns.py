"""Leading-token classification of debug statements."""

from __future__ import annotations

import re
from enum import StrEnum

from debug_manager.lexical.cursor import sanitize_line


class StatementType(StrEnum):
    """Closed set of debug-call kinds."""

    VAR_DUMP = "var_dump"
    PRINT_R = "print_r"
    ECHO = "echo"
    PRINT = "print"
    VAR_EXPORT = "var_export"
    PRINTF = "printf"
    DIE = "die"
    EXIT = "exit"
    ERROR_LOG = "error_log"
    TRIGGER_ERROR = "trigger_error"
    USER_ERROR = "user_error"
    DEBUG_BACKTRACE = "debug_backtrace"
    DUMP = "dump"
    DD = "dd"
    XDEBUG_VAR_DUMP = "xdebug_var_dump"
    XDEBUG_DEBUG_ZVAL = "xdebug_debug_zval"
    XDEBUG_BREAK = "xdebug_break"


class Severity(StrEnum):
    """How urgently a finding should be removed."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


# Order matters only where one token is a prefix of another; each rule also
# pins the syntax that must follow its token.
_RULES: tuple[tuple[re.Pattern[str], StatementType | None], ...] = (
    (re.compile(r"^\s*dd\s*\(", re.IGNORECASE), StatementType.DD),
    (re.compile(r"^\s*var_dump\s*\(", re.IGNORECASE), StatementType.VAR_DUMP),
    (re.compile(r"^\s*print_r\s*\(", re.IGNORECASE), StatementType.PRINT_R),
    (re.compile(r"^\s*echo\s+", re.IGNORECASE), StatementType.ECHO),
    (re.compile(r"^\s*print\s+", re.IGNORECASE), StatementType.PRINT),
    (re.compile(r"^\s*var_export\s*\(", re.IGNORECASE), StatementType.VAR_EXPORT),
    (re.compile(r"^\s*printf\s*\(", re.IGNORECASE), StatementType.PRINTF),
    (re.compile(r"^\s*die\b", re.IGNORECASE), StatementType.DIE),
    (re.compile(r"^\s*exit\b", re.IGNORECASE), StatementType.EXIT),
    (re.compile(r"^\s*error_log\s*\(", re.IGNORECASE), StatementType.ERROR_LOG),
    (re.compile(r"^\s*trigger_error\s*\(", re.IGNORECASE), StatementType.TRIGGER_ERROR),
    (re.compile(r"^\s*user_error\s*\(", re.IGNORECASE), StatementType.USER_ERROR),
    (re.compile(r"^\s*debug_backtrace\s*\(", re.IGNORECASE), StatementType.DEBUG_BACKTRACE),
    (re.compile(r"^\s*dump\s*\(", re.IGNORECASE), StatementType.DUMP),
    (re.compile(r"^\s*xdebug_var_dump\s*\(", re.IGNORECASE), StatementType.XDEBUG_VAR_DUMP),
    (re.compile(r"^\s*xdebug_debug_zval\s*\(", re.IGNORECASE), StatementType.XDEBUG_DEBUG_ZVAL),
    (re.compile(r"^\s*xdebug_break\b", re.IGNORECASE), StatementType.XDEBUG_BREAK),
)

_SEVERITY_BY_TYPE: dict[StatementType, Severity] = {
    StatementType.DIE: Severity.ERROR,
    StatementType.EXIT: Severity.ERROR,
    StatementType.DD: Severity.ERROR,
    StatementType.ERROR_LOG: Severity.WARNING,
    StatementType.TRIGGER_ERROR: Severity.WARNING,
    StatementType.USER_ERROR: Severity.WARNING,
}

_ANY_DEBUG_TOKEN_RE = re.compile(
    r"(?<![A-Za-z0-9_$>:\\])(?:"
    + "|".join(sorted((re.escape(item.value) for item in StatementType), key=len, reverse=True))
    + r")\b",
    re.IGNORECASE,
)
_EXIT_ONLY_RE = re.compile(r"^\s*(?:exit|die)\s*(?:\([^)]*\))?\s*;\s*$", re.IGNORECASE)
_HALT_TAIL_RE = re.compile(r";\s*(?:exit|die)\b", re.IGNORECASE)
HALT_TOKEN_RE = re.compile(r"\b(?:exit|die)\b", re.IGNORECASE)


def classify(text: str) -> StatementType | None:
    """Return the debug type of the text's leading token, if any."""
    for pattern, statement_type in _RULES:
        if pattern.match(text):
            return statement_type
    return None


def severity_for_type(statement_type: StatementType) -> Severity:
    """Fixed severity table lookup."""
    return _SEVERITY_BY_TYPE.get(statement_type, Severity.INFO)


def severity_for_content(content: str) -> Severity:
    """Derive severity from statement content alone.

    A dump followed by a halting ``exit``/``die`` is always an error. The tail is
    looked for in code only, so ``echo "a; die";`` keeps its table severity.
    """
    statement_type = classify(content)
    if _HALT_TAIL_RE.search(sanitize_line(content).text):
        return Severity.ERROR
    if statement_type is None:
        return Severity.INFO
    return severity_for_type(statement_type)


def mentions_debug_token(sanitized: str) -> bool:
    """Cheap pre-filter: does the code text mention any debug token at all."""
    return _ANY_DEBUG_TOKEN_RE.search(sanitized) is not None


def is_exit_only_segment(text: str) -> bool:
    """True for a bare ``exit``/``die`` statement with an optional argument."""
    return _EXIT_ONLY_RE.match(text) is not None


def token_for_type(statement_type: StatementType) -> str:
    """Literal source token used to re-anchor a statement in its raw line."""
    return statement_type.value
