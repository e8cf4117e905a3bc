"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

CONFIG_FILE_NAME = "debug_manager.toml"

MAX_FILE_BYTES_CAP = 16 * 1024 * 1024
BATCH_SIZE_CAP = 500
MAX_TOTAL_BYTES_PER_RESPONSE_CAP = 8 * 1024 * 1024
TAB_SIZE_CAP = 16

DEFAULT_INCLUDE_EXTENSIONS = (".php",)
DEFAULT_EXCLUDE_GLOBS = ("**/vendor/**", "**/node_modules/**")
DEFAULT_SKIP_DIR_NAMES = (
    "vendor",
    "node_modules",
    ".git",
    ".svn",
    ".hg",
    "cache",
    "temp",
    "tmp",
    "logs",
    "storage",
    ".history",
    "tests",
    "test",
    "spec",
    "docs",
    "documentation",
)
SUPPORTED_LANGUAGES = ("php", "javascript", "typescript", "python")
GUARD_MODES = ("strict", "warn", "lenient")


@dataclass(slots=True, frozen=True)
class ScanConfig:
    """Which files are eligible for scanning."""

    roots: tuple[Path, ...]
    include_extensions: tuple[str, ...]
    exclude_globs: tuple[str, ...]
    skip_dir_names: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class ScanLimits:
    """Resource bounds for scans and responses."""

    max_file_bytes: int = 1024 * 1024
    batch_size: int = 50
    max_total_bytes_per_response: int = 1024 * 1024


@dataclass(slots=True, frozen=True)
class EditorConfig:
    """Indentation and target-language defaults for dump insertion."""

    tab_size: int = 4
    insert_spaces: bool = True
    language: str = "php"


@dataclass(slots=True, frozen=True)
class GuardConfig:
    """Staging guard behaviour."""

    enabled: bool = True
    mode: str = "strict"


@dataclass(slots=True, frozen=True)
class WatchConfig:
    """Debounce and polling intervals for the change watcher."""

    debounce_seconds: float = 1.0
    poll_interval_seconds: float = 2.0


@dataclass(slots=True, frozen=True)
class ManagerConfig:
    """Fully merged configuration."""

    workspace_root: Path
    data_dir: Path
    scan: ScanConfig
    limits: ScanLimits
    editor: EditorConfig
    guard: GuardConfig
    watch: WatchConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for tool responses."""
        return {
            "workspace_root": str(self.workspace_root),
            "data_dir": str(self.data_dir),
            "scan": {
                "roots": [str(root) for root in self.scan.roots],
                "include_extensions": list(self.scan.include_extensions),
                "exclude_globs": list(self.scan.exclude_globs),
                "skip_dir_names": list(self.scan.skip_dir_names),
            },
            "limits": {
                "max_file_bytes": self.limits.max_file_bytes,
                "batch_size": self.limits.batch_size,
                "max_total_bytes_per_response": self.limits.max_total_bytes_per_response,
            },
            "editor": {
                "tab_size": self.editor.tab_size,
                "insert_spaces": self.editor.insert_spaces,
                "language": self.editor.language,
            },
            "guard": {"enabled": self.guard.enabled, "mode": self.guard.mode},
            "watch": {
                "debounce_seconds": self.watch.debounce_seconds,
                "poll_interval_seconds": self.watch.poll_interval_seconds,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    max_file_bytes: int | None = None
    batch_size: int | None = None
    guard_mode: str | None = None
    language: str | None = None


def default_config(workspace_root: Path) -> ManagerConfig:
    """Build default config for a given workspace root."""
    resolved_root = workspace_root.resolve()
    return ManagerConfig(
        workspace_root=resolved_root,
        data_dir=resolved_root / ".debug_manager",
        scan=ScanConfig(
            roots=(resolved_root,),
            include_extensions=DEFAULT_INCLUDE_EXTENSIONS,
            exclude_globs=DEFAULT_EXCLUDE_GLOBS,
            skip_dir_names=DEFAULT_SKIP_DIR_NAMES,
        ),
        limits=ScanLimits(),
        editor=EditorConfig(),
        guard=GuardConfig(),
        watch=WatchConfig(),
    )


def load_config_file(workspace_root: Path) -> dict[str, object]:
    """Load optional debug_manager.toml from the workspace root."""
    config_path = workspace_root / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def merge_config(
    base: ManagerConfig, payload: dict[str, object], overrides: CliOverrides
) -> ManagerConfig:
    """Merge defaults, workspace config file, then CLI/startup overrides."""
    scan_payload = _get_table(payload, "scan")
    limits_payload = _get_table(payload, "limits")
    editor_payload = _get_table(payload, "editor")
    guard_payload = _get_table(payload, "guard")
    watch_payload = _get_table(payload, "watch")

    roots = base.scan.roots
    if "roots" in scan_payload:
        raw_roots = _tuple_of_strings(scan_payload["roots"], "scan", "roots")
        if not raw_roots:
            raise ValueError("Config field 'scan.roots' must not be empty.")
        roots = tuple((base.workspace_root / raw).resolve() for raw in raw_roots)
    include_extensions = base.scan.include_extensions
    if "include_extensions" in scan_payload:
        include_extensions = tuple(
            _normalize_extension(item)
            for item in _tuple_of_strings(
                scan_payload["include_extensions"], "scan", "include_extensions"
            )
        )
    exclude_globs = base.scan.exclude_globs
    if "exclude_globs" in scan_payload:
        exclude_globs = _tuple_of_strings(scan_payload["exclude_globs"], "scan", "exclude_globs")
    skip_dir_names = base.scan.skip_dir_names
    if "skip_dir_names" in scan_payload:
        skip_dir_names = _tuple_of_strings(
            scan_payload["skip_dir_names"], "scan", "skip_dir_names"
        )

    limits = ScanLimits(
        max_file_bytes=_optional_positive_int_with_cap(
            limits_payload.get("max_file_bytes"),
            "limits.max_file_bytes",
            base.limits.max_file_bytes,
            MAX_FILE_BYTES_CAP,
        ),
        batch_size=_optional_positive_int_with_cap(
            limits_payload.get("batch_size"),
            "limits.batch_size",
            base.limits.batch_size,
            BATCH_SIZE_CAP,
        ),
        max_total_bytes_per_response=_optional_positive_int_with_cap(
            limits_payload.get("max_total_bytes_per_response"),
            "limits.max_total_bytes_per_response",
            base.limits.max_total_bytes_per_response,
            MAX_TOTAL_BYTES_PER_RESPONSE_CAP,
        ),
    )

    editor = EditorConfig(
        tab_size=_optional_positive_int_with_cap(
            editor_payload.get("tab_size"), "editor.tab_size", base.editor.tab_size, TAB_SIZE_CAP
        ),
        insert_spaces=_optional_bool(
            editor_payload.get("insert_spaces"), "editor.insert_spaces", base.editor.insert_spaces
        ),
        language=_optional_choice(
            editor_payload.get("language"),
            "editor.language",
            base.editor.language,
            SUPPORTED_LANGUAGES,
        ),
    )
    guard = GuardConfig(
        enabled=_optional_bool(guard_payload.get("enabled"), "guard.enabled", base.guard.enabled),
        mode=_optional_choice(guard_payload.get("mode"), "guard.mode", base.guard.mode, GUARD_MODES),
    )
    watch = WatchConfig(
        debounce_seconds=_optional_positive_float(
            watch_payload.get("debounce_seconds"),
            "watch.debounce_seconds",
            base.watch.debounce_seconds,
        ),
        poll_interval_seconds=_optional_positive_float(
            watch_payload.get("poll_interval_seconds"),
            "watch.poll_interval_seconds",
            base.watch.poll_interval_seconds,
        ),
    )

    merged = ManagerConfig(
        workspace_root=base.workspace_root,
        data_dir=base.data_dir,
        scan=ScanConfig(
            roots=roots,
            include_extensions=include_extensions,
            exclude_globs=exclude_globs,
            skip_dir_names=skip_dir_names,
        ),
        limits=limits,
        editor=editor,
        guard=guard,
        watch=watch,
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: ManagerConfig, overrides: CliOverrides) -> ManagerConfig:
    """Apply startup overrides at highest precedence."""
    limits = ScanLimits(
        max_file_bytes=_optional_positive_int_with_cap(
            overrides.max_file_bytes,
            "overrides.max_file_bytes",
            config.limits.max_file_bytes,
            MAX_FILE_BYTES_CAP,
        ),
        batch_size=_optional_positive_int_with_cap(
            overrides.batch_size,
            "overrides.batch_size",
            config.limits.batch_size,
            BATCH_SIZE_CAP,
        ),
        max_total_bytes_per_response=config.limits.max_total_bytes_per_response,
    )
    guard = GuardConfig(
        enabled=config.guard.enabled,
        mode=_optional_choice(
            overrides.guard_mode, "overrides.guard_mode", config.guard.mode, GUARD_MODES
        ),
    )
    editor = EditorConfig(
        tab_size=config.editor.tab_size,
        insert_spaces=config.editor.insert_spaces,
        language=_optional_choice(
            overrides.language, "overrides.language", config.editor.language, SUPPORTED_LANGUAGES
        ),
    )
    data_dir = overrides.data_dir or config.data_dir
    return ManagerConfig(
        workspace_root=config.workspace_root,
        data_dir=data_dir.resolve(),
        scan=config.scan,
        limits=limits,
        editor=editor,
        guard=guard,
        watch=config.watch,
    )


def load_effective_config(
    workspace_root: Path, overrides: CliOverrides | None = None
) -> ManagerConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    resolved_root = workspace_root.resolve()
    base = default_config(resolved_root)
    payload = load_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())


def with_extra_excludes(config: ManagerConfig, patterns: tuple[str, ...]) -> ManagerConfig:
    """Append user-managed exclude patterns after the configured ones, without duplicates."""
    exclude_globs = list(config.scan.exclude_globs)
    for pattern in patterns:
        if pattern not in exclude_globs:
            exclude_globs.append(pattern)
    return ManagerConfig(
        workspace_root=config.workspace_root,
        data_dir=config.data_dir,
        scan=ScanConfig(
            roots=config.scan.roots,
            include_extensions=config.scan.include_extensions,
            exclude_globs=tuple(exclude_globs),
            skip_dir_names=config.scan.skip_dir_names,
        ),
        limits=config.limits,
        editor=config.editor,
        guard=config.guard,
        watch=config.watch,
    )


def _normalize_extension(value: str) -> str:
    stripped = value.strip().lower()
    if stripped and not stripped.startswith("."):
        return f".{stripped}"
    return stripped


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value


def _optional_positive_float(value: object, name: str, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ValueError(f"Config field '{name}' must be a positive number.")
    return float(value)


def _optional_bool(value: object, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"Config field '{name}' must be a boolean.")
    return value


def _optional_choice(value: object, name: str, default: str, choices: tuple[str, ...]) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or value not in choices:
        raise ValueError(f"Config field '{name}' must be one of: {', '.join(choices)}.")
    return value
