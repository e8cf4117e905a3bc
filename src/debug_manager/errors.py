"""Error taxonomy shared by the scanning and editing paths."""

from __future__ import annotations


class DebugManagerError(Exception):
    """Base class for failures surfaced to callers with a stable code."""

    code = "DEBUG_MANAGER_ERROR"

    def __init__(self, message: str, hint: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class FileTooLargeError(DebugManagerError):
    """Raised when a file exceeds the configured size ceiling."""

    code = "FILE_TOO_LARGE"

    def __init__(self, path: str, size: int, limit: int) -> None:
        super().__init__(
            f"File too large ({size} bytes > {limit} bytes); skipped.",
            hint="Raise limits.max_file_bytes or exclude the file.",
        )
        self.path = path
        self.size = size
        self.limit = limit


class ScanReadError(DebugManagerError):
    """Raised when a file cannot be stat'ed or read."""

    code = "READ_ERROR"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Unable to read file: {reason}")
        self.path = path
        self.reason = reason


class DirectoryEnumerationError(DebugManagerError):
    """Raised (and recorded) when a directory subtree cannot be listed."""

    code = "DIRECTORY_UNREADABLE"

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Unable to list directory: {reason}")
        self.path = path
        self.reason = reason


class UnbalancedBracesError(DebugManagerError):
    """Raised when a document's braces do not balance; no edit may proceed."""

    code = "UNBALANCED_BRACES"

    def __init__(self, line: int | None, message: str) -> None:
        super().__init__(message, hint="Fix the block structure before inserting.")
        self.line = line


class NoSelectionError(DebugManagerError):
    """Raised when an insertion is requested without selected text."""

    code = "NO_SELECTION"

    def __init__(self) -> None:
        super().__init__(
            "Nothing is selected.",
            hint="Select a variable or call expression first.",
        )


class AmbiguousSelectionError(DebugManagerError):
    """Raised when the selection is only part of a call expression."""

    code = "AMBIGUOUS_SELECTION"

    def __init__(self) -> None:
        super().__init__(
            "Selection looks like part of a call expression.",
            hint="Select the complete call, including its parentheses.",
        )


class InStringLiteralError(DebugManagerError):
    """Raised when the selection sits inside a string literal."""

    code = "IN_STRING_LITERAL"

    def __init__(self) -> None:
        super().__init__(
            "Selection is inside a string literal; skipped.",
            hint="Select an expression outside of quotes.",
        )


class NotInsertableError(DebugManagerError):
    """Raised when the selection is neither a variable chain nor a call."""

    code = "NOT_INSERTABLE"

    def __init__(self) -> None:
        super().__init__(
            "Selection is not a variable or callable expression.",
            hint="Select something like $obj->items[0] or Class::method().",
        )


class PathBlockedError(DebugManagerError):
    """Raised when a requested path falls outside the workspace roots."""

    code = "PATH_BLOCKED"


class GitCommandError(DebugManagerError):
    """Raised when a git invocation used by the staging guard fails."""

    code = "GIT_ERROR"
