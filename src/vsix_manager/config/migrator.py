"""
vsix-manager — legacy configuration migration.

File: src/vsix_manager/config/migrator.py
Last updated: 2026-10-18

Purpose
- Upgrade a flat v1 document into the nested 2.0 layout exactly once.

What should be included in this file
- An exhaustive legacy field -> target table, including dropped fields.
- A pure ``migrate`` producing the new document and a reviewable change list.
- ``auto_migrate_if_needed`` discovery/confirm/dry-run/write/backup orchestration.
- ``create_sample_config`` for fresh installs.

Functional requirements
- Migration output is deterministic: equal input gives byte-identical YAML.
- Never overwrite an existing file; never delete or move the legacy document.

Non-functional requirements
- Filesystem effects are confined to the orchestration functions.
"""

from __future__ import annotations

import json
import logging
import shutil
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final, TextIO

import yaml

from vsix_manager.config.legacy import LegacyConfigDocument, parse_legacy_document
from vsix_manager.config.loader import ConfigLoadError, read_document
from vsix_manager.constants import (
    BACKUP_SUFFIX,
    CONFIG_SCHEMA_VERSION,
    SECTION_NAMES,
    current_document_candidates,
    default_config_target,
    legacy_document_candidates,
)

logger = logging.getLogger(__name__)

# Every v1 field and the 2.0 paths it feeds; an empty tuple means dropped.
LEGACY_FIELD_TARGETS: Final[dict[str, tuple[str, ...]]] = {
    "editor": ("editor.prefer",),
    "cursorBin": ("editor.cursor-binary",),
    "codeBin": ("editor.vscode-binary",),
    "checkCompatibility": ("safety.check-compatibility",),
    "checksum": ("safety.verify-checksums",),
    "allowMismatchedBinary": ("safety.allow-mismatch",),
    "parallel": ("performance.parallel-downloads",),
    "installParallel": ("performance.parallel-installs",),
    "timeout": ("performance.timeout",),
    "installRetry": ("performance.retry", "behavior.auto-retry"),
    "retry": ("performance.retry",),
    "retryDelay": ("performance.retry-delay",),
    "skipExisting": ("behavior.skip-installed",),
    "outputDir": ("behavior.download-dir",),
    "cacheDir": ("behavior.cache-dir",),
    "source": ("network.source",),
    "userAgent": ("network.user-agent",),
    "json": ("output.format",),
    "quiet": ("output.format", "output.colors", "output.show-progress"),
    "overwrite": (),
    "filenameTemplate": (),
    "preRelease": (),
    "progressUpdateInterval": (),
}

INTRODUCED_DEFAULTS: Final[dict[str, object]] = {
    "safety.auto-backup": True,
    "behavior.update-check": "weekly",
}

SAMPLE_CONFIG: Final[str] = """\
# vsix-manager configuration
# Every key is optional; omitted keys use the built-in default.

version: "2.0"

# Editor preferences
editor:
  prefer: auto # auto | cursor | vscode
  # cursor-binary: /path/to/cursor
  # vscode-binary: /path/to/code

# Safety features
safety:
  check-compatibility: true
  auto-backup: true
  verify-checksums: true
  allow-mismatch: false

# Performance tuning
performance:
  parallel-downloads: 3 # 1-10
  parallel-installs: 1 # 1-5
  timeout: 30000 # milliseconds, >= 5000
  retry: 2 # 0-5
  retry-delay: 1000 # milliseconds, >= 100

# Behavior preferences
behavior:
  skip-installed: ask # ask | always | never
  update-check: weekly # never | daily | weekly | always
  auto-retry: true
  download-dir: ./downloads
  # cache-dir: ~/.vsix/cache

# Network settings
# network:
#   source: auto # auto | marketplace | open-vsx
#   proxy: http://proxy:8080

# Output preferences
# output:
#   format: auto # auto | json | table | quiet
#   colors: true
#   show-progress: true

# Profile applied when no other profile is requested
# active-profile: ci

# Named overlays; each may set any subset of the sections above
# profiles:
#   development:
#     safety:
#       check-compatibility: false
#     performance:
#       parallel-installs: 3
#   ci:
#     output:
#       format: json
#       show-progress: false
#     behavior:
#       skip-installed: always
"""

_EDITOR_ALIASES: Final[dict[str, str]] = {"cursor": "cursor", "vscode": "vscode", "code": "vscode"}
_SOURCE_ALIASES: Final[dict[str, str]] = {
    "marketplace": "marketplace",
    "open-vsx": "open-vsx",
    "openvsx": "open-vsx",
}


class MigrationError(ConfigLoadError):
    """Raised when a legacy document cannot be read or parsed for migration."""


class UnsafeWriteError(FileExistsError):
    """Raised instead of overwriting an existing file."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"refusing to overwrite existing file: {path}")


@dataclass(frozen=True, slots=True)
class MigrationChange:
    """One entry of the migration diff; ``target`` is ``None`` for dropped fields."""

    source: str | None
    target: str | None
    before: object
    after: object
    note: str = ""

    def render(self) -> str:
        if self.target is None:
            line = f"- {self.source}: {_scalar(self.before)} (dropped)"
        elif self.source is None:
            line = f"+ {self.target}: {_scalar(self.after)}"
        else:
            line = f"~ {self.source}: {_scalar(self.before)} -> {self.target}: {_scalar(self.after)}"
        if self.note:
            line = f"{line} [{self.note}]"
        return line


@dataclass(frozen=True, slots=True)
class MigrationResult:
    document: dict[str, Any]
    changes: tuple[MigrationChange, ...]

    def to_yaml(self) -> str:
        return yaml.safe_dump(
            self.document,
            sort_keys=False,
            default_flow_style=False,
            allow_unicode=True,
        )

    def render_diff(self) -> tuple[str, ...]:
        return tuple(change.render() for change in self.changes)


@dataclass(frozen=True, slots=True)
class MigrationOptions:
    """Inputs for ``auto_migrate_if_needed``.

    ``confirm`` receives the legacy path and the planned result and returns
    False to decline. ``output`` receives the dry-run rendering (defaults to
    stdout).
    """

    home: Path | None = None
    dry_run: bool = False
    confirm: Callable[[Path, MigrationResult], bool] | None = None
    output: TextIO | None = None


class _DocumentBuilder:
    __slots__ = ("_changes", "_legacy", "_sections")

    def __init__(self, legacy: LegacyConfigDocument) -> None:
        self._legacy: Mapping[str, object] = legacy
        self._sections: dict[str, dict[str, Any]] = {name: {} for name in SECTION_NAMES}
        self._changes: list[MigrationChange] = []

    def put(self, path: str, value: object, *, source: str | None = None, note: str = "") -> None:
        if value is None:
            return
        section, name = path.split(".", 1)
        self._sections[section][name] = value
        if source is not None and source in self._legacy:
            self._changes.append(
                MigrationChange(source, path, self._legacy[source], value, note)
            )

    def introduce(self, path: str, value: object) -> None:
        self.put(path, value)
        self._changes.append(MigrationChange(None, path, None, value, "introduced in 2.0"))

    def note(self, change: MigrationChange) -> None:
        self._changes.append(change)

    def result(self) -> MigrationResult:
        document: dict[str, Any] = {"version": CONFIG_SCHEMA_VERSION}
        document.update(self._sections)
        return MigrationResult(document=document, changes=tuple(self._changes))


def migrate(legacy: Mapping[str, object]) -> MigrationResult:
    """Map a legacy document onto the 2.0 layout. Pure and deterministic."""

    parsed = parse_legacy_document(legacy)
    builder = _DocumentBuilder(parsed)

    editor = parsed.get("editor")
    builder.put("editor.prefer", _map_editor(editor), source="editor")
    builder.put("editor.cursor-binary", parsed.get("cursorBin"), source="cursorBin")
    builder.put("editor.vscode-binary", parsed.get("codeBin"), source="codeBin")

    builder.put(
        "safety.check-compatibility",
        parsed.get("checkCompatibility", True),
        source="checkCompatibility",
    )
    builder.introduce("safety.auto-backup", INTRODUCED_DEFAULTS["safety.auto-backup"])
    builder.put("safety.verify-checksums", parsed.get("checksum", True), source="checksum")
    builder.put(
        "safety.allow-mismatch",
        parsed.get("allowMismatchedBinary", False),
        source="allowMismatchedBinary",
    )

    _put_bounded(builder, parsed, "parallel", "performance.parallel-downloads", 3, 1, 10)
    _put_bounded(builder, parsed, "installParallel", "performance.parallel-installs", 1, 1, 5)
    _put_bounded(builder, parsed, "timeout", "performance.timeout", 30000, 5000, None)

    install_retry = parsed.get("installRetry")
    retry_source = "installRetry" if install_retry is not None else "retry"
    _put_bounded(builder, parsed, retry_source, "performance.retry", 2, 0, 5)
    if install_retry is not None and "retry" in parsed:
        builder.note(
            MigrationChange(
                "retry", "performance.retry", parsed["retry"], None, "superseded by installRetry"
            )
        )
    _put_bounded(builder, parsed, "retryDelay", "performance.retry-delay", 1000, 100, None)

    skip_existing = parsed.get("skipExisting", False)
    builder.put(
        "behavior.skip-installed",
        "always" if skip_existing else "ask",
        source="skipExisting",
    )
    builder.introduce("behavior.update-check", INTRODUCED_DEFAULTS["behavior.update-check"])
    builder.put(
        "behavior.auto-retry",
        (install_retry or 0) > 0,
        source="installRetry",
    )
    builder.put(
        "behavior.download-dir",
        parsed.get("outputDir", "./downloads"),
        source="outputDir",
    )
    builder.put("behavior.cache-dir", parsed.get("cacheDir"), source="cacheDir")

    builder.put("network.source", _map_source(parsed.get("source")), source="source")
    builder.put("network.user-agent", parsed.get("userAgent"), source="userAgent")

    as_json = parsed.get("json", False)
    quiet = parsed.get("quiet", False)
    output_format = "json" if as_json else "quiet" if quiet else "auto"
    format_source = "json" if as_json or not quiet else "quiet"
    builder.put("output.format", output_format, source=format_source)
    if as_json and quiet:
        builder.note(MigrationChange("quiet", "output.format", True, None, "json takes precedence"))
    builder.put("output.colors", not quiet, source="quiet")
    builder.put("output.show-progress", not quiet, source="quiet")

    for key, targets in LEGACY_FIELD_TARGETS.items():
        if not targets and key in parsed:
            builder.note(MigrationChange(key, None, parsed[key], None, "no equivalent in 2.0"))  # type: ignore[literal-required]

    return builder.result()


def find_legacy_document(home: Path) -> Path | None:
    for candidate in legacy_document_candidates(home):
        if candidate.is_file():
            return candidate
    return None


def auto_migrate_if_needed(options: MigrationOptions | None = None) -> bool:
    """Migrate the first legacy document found under ``home``.

    ``confirm`` sees the planned result, including its diff, before anything
    is written. Returns True only when a new document was written. A dry run
    writes the diff as YAML comments followed by the document to
    ``options.output`` and returns False.
    """

    opts = options or MigrationOptions()
    home = Path.home() if opts.home is None else opts.home

    legacy_path = find_legacy_document(home)
    if legacy_path is None:
        logger.debug("no legacy config found under %s", home)
        return False

    for candidate in current_document_candidates(home):
        if candidate.exists():
            logger.info("skipping migration of %s: %s already exists", legacy_path, candidate)
            return False

    try:
        raw = read_document(legacy_path)
    except (ConfigLoadError, OSError) as exc:
        raise MigrationError(f"cannot migrate {legacy_path}: {exc}") from exc

    result = migrate(raw)
    for line in result.render_diff():
        logger.debug("migration: %s", line)

    if opts.dry_run:
        stream = sys.stdout if opts.output is None else opts.output
        stream.write("".join(f"# {line}\n" for line in result.render_diff()))
        stream.write(result.to_yaml())
        return False

    if opts.confirm is not None and not opts.confirm(legacy_path, result):
        logger.info("migration of %s declined", legacy_path)
        return False

    target = default_config_target(home)
    _write_exclusive(target, result.to_yaml())
    try:
        backup = _copy_to_backup(legacy_path)
    except OSError:
        target.unlink()
        logger.error("backup of %s failed; removed %s", legacy_path, target)
        raise
    logger.info("migrated %s -> %s (backup: %s)", legacy_path, target, backup)
    return True


def create_sample_config(
    target: str | Path | None = None,
    *,
    force: bool = False,
    home: str | Path | None = None,
) -> Path:
    """Write the commented sample document and return its path."""

    home_dir = Path.home() if home is None else Path(home)
    path = default_config_target(home_dir) if target is None else Path(target).expanduser()

    if force:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(SAMPLE_CONFIG, encoding="utf-8")
    else:
        _write_exclusive(path, SAMPLE_CONFIG)
    logger.info("wrote sample config to %s", path)
    return path


def _put_bounded(
    builder: _DocumentBuilder,
    parsed: LegacyConfigDocument,
    key: str,
    path: str,
    fallback: int,
    minimum: int,
    maximum: int | None,
) -> None:
    raw = parsed.get(key)  # type: ignore[misc]
    if not isinstance(raw, int):
        builder.put(path, fallback)
        return
    value = max(minimum, raw)
    if maximum is not None:
        value = min(maximum, value)
    note = ""
    if value != raw:
        note = f"clamped to {minimum}..{maximum}" if maximum is not None else f"raised to {minimum}"
    builder.put(path, value, source=key, note=note)


def _map_editor(value: str | None) -> str:
    if value is None:
        return "auto"
    return _EDITOR_ALIASES.get(value.lower(), "auto")


def _map_source(value: str | None) -> str:
    if value is None:
        return "auto"
    return _SOURCE_ALIASES.get(value.lower(), "auto")


def _write_exclusive(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with path.open("x", encoding="utf-8") as handle:
            handle.write(text)
    except FileExistsError as exc:
        raise UnsafeWriteError(path) from exc


def _copy_to_backup(legacy_path: Path) -> Path:
    backup = legacy_path.with_name(legacy_path.name + BACKUP_SUFFIX)
    if backup.exists():
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        backup = legacy_path.with_name(f"{legacy_path.name}{BACKUP_SUFFIX}.{stamp}")
    try:
        with legacy_path.open("rb") as source, backup.open("xb") as destination:
            shutil.copyfileobj(source, destination)
    except FileExistsError as exc:
        raise UnsafeWriteError(backup) from exc
    return backup


def _scalar(value: object) -> str:
    return json.dumps(value, ensure_ascii=False)


__all__ = [
    "INTRODUCED_DEFAULTS",
    "LEGACY_FIELD_TARGETS",
    "SAMPLE_CONFIG",
    "MigrationChange",
    "MigrationError",
    "MigrationOptions",
    "MigrationResult",
    "UnsafeWriteError",
    "auto_migrate_if_needed",
    "create_sample_config",
    "find_legacy_document",
    "migrate",
]
