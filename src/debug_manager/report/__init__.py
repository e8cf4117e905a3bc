"""Export, clearing, bookmark and exclude-list collaborators of the scanner."""

from .bookmarks import BOOKMARKS_FILE_NAME, BookmarkStore
from .cleanup import ClearReport, clear_statements, remove_statements_from_lines
from .excludes import EXCLUDE_KINDS, EXCLUDES_FILE_NAME, ExcludeStore, exclude_pattern_for
from .export import DEFAULT_EXPORT_FIELDS, EXPORT_FIELDS, EXPORT_FORMATS, render_export

__all__ = [
    "BOOKMARKS_FILE_NAME",
    "BookmarkStore",
    "ClearReport",
    "DEFAULT_EXPORT_FIELDS",
    "EXCLUDES_FILE_NAME",
    "EXCLUDE_KINDS",
    "EXPORT_FIELDS",
    "EXPORT_FORMATS",
    "ExcludeStore",
    "clear_statements",
    "exclude_pattern_for",
    "remove_statements_from_lines",
    "render_export",
]
