"""Resolution of caller-supplied paths against the workspace roots."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Final

from debug_manager.errors import PathBlockedError

WINDOWS_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:[\\/]")


def _normalize_input(candidate: str) -> tuple[str, bool]:
    """Normalize separators and detect absolute-style inputs."""
    normalized = candidate.replace("\\", "/")
    return normalized, normalized.startswith("/") or bool(
        WINDOWS_ABSOLUTE_PATTERN.match(normalized)
    )


def resolve_workspace_path(roots: tuple[Path, ...], candidate: str) -> Path:
    """Resolve ``candidate`` so that it lies under one of ``roots``.

    Relative paths are taken against the first root; ``..`` segments are refused.
    """
    if not roots:
        raise PathBlockedError("No workspace root is configured.")
    normalized, is_absolute = _normalize_input(candidate.strip())
    if not normalized:
        raise PathBlockedError(
            "Path is empty.",
            hint="Provide a workspace-relative path such as 'app/index.php'.",
        )

    resolved_roots = tuple(root.resolve() for root in roots)
    if is_absolute:
        resolved = Path(normalized).resolve(strict=False)
    else:
        parts = [part for part in normalized.split("/") if part not in ("", ".")]
        if any(part == ".." for part in parts):
            raise PathBlockedError(
                "Path traversal is blocked.",
                hint="Remove '..' segments and use a workspace-relative path.",
            )
        resolved = (resolved_roots[0] / Path(*parts)).resolve(strict=False)

    if not any(resolved.is_relative_to(root) for root in resolved_roots):
        raise PathBlockedError(
            "Path is outside the workspace roots.",
            hint="Use a path located under a configured scan root.",
        )
    return resolved
