"""
vsix-manager — layered configuration resolver.

File: src/vsix_manager/config/loader.py
Last updated: 2026-10-18

Purpose
- Resolve one validated configuration from defaults, an on-disk document,
  a named profile, ``VSIX_*`` environment variables, and caller overrides.

What should be included in this file
- Precedence logic: overrides > env > profile > file > defaults, merged per field.
- Document discovery over a fixed directory/filename search order.
- YAML loading via PyYAML ``safe_load`` and JSON loading for legacy names.
- A per-resolver cache and a non-raising file validation report.
- Redacted deterministic dump of the effective config.

Functional requirements
- A missing or unreadable document is not an error; a malformed one is.
- Every field issue from every stage is reported together.

Non-functional requirements
- Keep loading deterministic and reproducible; inject cwd/home/environ for tests.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from vsix_manager.config.environment import apply_environment, profile_from_environment
from vsix_manager.config.legacy import looks_like_legacy_document
from vsix_manager.config.profiles import select_profile
from vsix_manager.config.schema import (
    ConfigValidationError,
    ConfigValidationResult,
    FieldError,
    ResolvedConfig,
    default_config,
    merge_sections,
    redact_document,
    validate_config,
)
from vsix_manager.constants import (
    CONFIG_FILE_NAMES,
    CONFIG_SCHEMA_VERSION,
    DEDICATED_DIR_FILE_NAMES,
    JSON_BARE_NAMES,
    JSON_SUFFIXES,
    YAML_SUFFIXES,
    dedicated_config_dir,
    legacy_config_dir,
)

logger = logging.getLogger(__name__)

_PROFILE_OVERRIDE_KEYS = ("active-profile", "profile")


class ConfigLoadError(ValueError):
    """Raised when a config document cannot be parsed or overrides are malformed."""


@dataclass(frozen=True, slots=True)
class FileValidationReport:
    """Outcome of validating one document on disk."""

    valid: bool
    errors: tuple[str, ...] = ()


class ConfigResolver:
    """Resolve configuration for one process context.

    ``cwd``, ``home`` and ``environ`` default to the real process values and
    are captured once at construction.
    """

    def __init__(
        self,
        *,
        cwd: str | Path | None = None,
        home: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._cwd = Path.cwd() if cwd is None else Path(cwd)
        self._home = Path.home() if home is None else Path(home)
        self._environ = dict(os.environ if environ is None else environ)
        self._cache: ResolvedConfig | None = None

    @property
    def home(self) -> Path:
        return self._home

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ

    def search_candidates(self) -> tuple[Path, ...]:
        """Every path discovery considers, in priority order."""

        dedicated = dedicated_config_dir(self._home)
        directories = (self._cwd, dedicated, legacy_config_dir(self._home), self._home)
        candidates: list[Path] = []
        for directory in directories:
            names = CONFIG_FILE_NAMES
            if directory == dedicated:
                names = DEDICATED_DIR_FILE_NAMES + CONFIG_FILE_NAMES
            candidates.extend(directory / name for name in names)
        return tuple(dict.fromkeys(candidates))

    def find_config_file(self) -> Path | None:
        for candidate in self.search_candidates():
            if candidate.is_file():
                return candidate
        return None

    def config_exists(self, path: str | Path | None = None) -> bool:
        if path is not None:
            return Path(path).expanduser().is_file()
        return self.find_config_file() is not None

    def resolve(
        self,
        cli_overrides: Mapping[str, object] | None = None,
        config_path: str | Path | None = None,
        *,
        profile: str | None = None,
    ) -> ConfigValidationResult:
        """Resolve without raising on field issues; malformed documents still raise."""

        overrides = dict(cli_overrides or {})
        override_payload = materialize_overrides(overrides)

        source = self._locate(config_path)
        document = self._read_source(source, explicit=config_path is not None)

        profile_name = self._profile_name(profile, overrides, document)
        issues: list[FieldError] = []
        declared = document.get("active-profile")
        if declared is not None and not isinstance(declared, str):
            issues.append(
                FieldError("active-profile", f"expected string, got {type(declared).__name__}")
            )

        merged = merge_sections(default_config(), document)
        selection = select_profile(document, profile_name)
        issues.extend(selection.issues)
        merged = merge_sections(merged, selection.overlay)

        env_overlay = apply_environment(merged, self._environ)
        issues.extend(env_overlay.issues)
        merged = merge_sections(env_overlay.document, override_payload)

        merged.pop("profiles", None)
        merged.pop("active-profile", None)
        version = document.get("version")
        merged["version"] = CONFIG_SCHEMA_VERSION if version is None else version
        if selection.name is not None:
            merged["active-profile"] = selection.name

        result = validate_config(merged)
        issues.extend(result.issues)
        if issues:
            return ConfigValidationResult(config=None, issues=tuple(issues))

        logger.debug(
            "resolved configuration (source=%s, profile=%s, env=%s)",
            source,
            selection.name,
            ",".join(env_overlay.applied) or "-",
        )
        return result

    def load_config(
        self,
        cli_overrides: Mapping[str, object] | None = None,
        config_path: str | Path | None = None,
        *,
        profile: str | None = None,
    ) -> ResolvedConfig:
        """Resolve and raise ``ConfigValidationError`` carrying every issue on failure."""

        result = self.resolve(cli_overrides, config_path, profile=profile)
        if result.config is None:
            raise ConfigValidationError(result.issues)
        return result.config

    def cached(
        self,
        cli_overrides: Mapping[str, object] | None = None,
        config_path: str | Path | None = None,
        *,
        profile: str | None = None,
    ) -> ResolvedConfig:
        """Resolve once for this resolver; later calls return the same object."""

        if self._cache is None:
            self._cache = self.load_config(cli_overrides, config_path, profile=profile)
        return self._cache

    def invalidate(self) -> None:
        self._cache = None

    def _locate(self, config_path: str | Path | None) -> Path | None:
        if config_path is not None:
            return Path(config_path).expanduser()
        found = self.find_config_file()
        if found is None:
            logger.debug("no config file found; using defaults")
        return found

    def _read_source(self, source: Path | None, *, explicit: bool) -> dict[str, Any]:
        if source is None:
            return {}
        try:
            document = read_document(source)
        except FileNotFoundError:
            if explicit:
                logger.warning("config file not found: %s; using defaults", source)
            return {}
        except OSError as exc:
            logger.warning("unable to read config file %s: %s; using defaults", source, exc)
            return {}

        if looks_like_legacy_document(document):
            logger.warning(
                "%s uses the legacy v1 layout; run `vsix config migrate` to upgrade it", source
            )
        logger.debug("loaded config file %s", source)
        return document

    def _profile_name(
        self,
        profile: str | None,
        overrides: Mapping[str, object],
        document: Mapping[str, object],
    ) -> str | None:
        if profile is not None:
            return profile.strip() or None

        for key in _PROFILE_OVERRIDE_KEYS:
            override = overrides.get(key)
            if override is None:
                continue
            if not isinstance(override, str):
                raise ConfigLoadError(f"override {key!r} must be a string")
            return override.strip() or None

        env_profile = profile_from_environment(self._environ)
        if env_profile is not None:
            return env_profile

        declared = document.get("active-profile")
        if isinstance(declared, str):
            return declared.strip() or None
        return None


def load_config(
    cli_overrides: Mapping[str, object] | None = None,
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cwd: str | Path | None = None,
    home: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> ResolvedConfig:
    """Load effective config with a fresh resolver: overrides > env > profile > file > defaults."""

    resolver = ConfigResolver(cwd=cwd, home=home, environ=environ)
    return resolver.load_config(cli_overrides, config_path, profile=profile)


def read_document(path: Path) -> dict[str, Any]:
    """Parse one config document.

    Raises ``ConfigLoadError`` for malformed content and lets ``OSError``
    (including ``FileNotFoundError``) propagate to the caller.
    """

    if path.suffix.lower() in YAML_SUFFIXES:
        parser = "yaml"
    elif path.suffix.lower() in JSON_SUFFIXES or path.name in JSON_BARE_NAMES:
        parser = "json"
    else:
        raise ConfigLoadError(f"unsupported config file type: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            if parser == "yaml":
                parsed = yaml.safe_load(handle)
            else:
                parsed = json.load(handle)
    except yaml.YAMLError as exc:
        raise ConfigLoadError(f"invalid YAML in {path}: {exc}") from exc
    except ValueError as exc:
        raise ConfigLoadError(f"invalid {parser.upper()} in {path}: {exc}") from exc

    if parsed is None and parser == "yaml":
        return {}
    if not isinstance(parsed, dict):
        raise ConfigLoadError(f"config root must be a mapping: {path}")
    return parsed


def materialize_overrides(cli_overrides: Mapping[str, object]) -> dict[str, Any]:
    """Normalize caller overrides into the nested section shape.

    Accepts nested sections (``{"performance": {"retry": 1}}``) and dotted
    keys (``{"performance.retry": 1}``); both may be mixed.
    """

    payload: dict[str, Any] = {}
    for key in sorted(cli_overrides, key=str):
        if not isinstance(key, str):
            raise ConfigLoadError(f"override key must be a string, got {type(key).__name__}")
        if key in _PROFILE_OVERRIDE_KEYS:
            continue
        value = cli_overrides[key]
        if "." in key:
            path = tuple(part for part in key.split(".") if part)
            if len(path) != 2:
                raise ConfigLoadError(f"invalid override key {key!r}; expected section.field")
            _set_nested(payload, path, value)
            continue
        if isinstance(value, Mapping):
            section = payload.setdefault(key, {})
            if isinstance(section, dict):
                section.update(value)
            continue
        payload[key] = value
    return payload


def validate_config_file(path: str | Path) -> FileValidationReport:
    """Validate one document on disk; never raises for bad content."""

    target = Path(path).expanduser()
    try:
        document = read_document(target)
    except ConfigLoadError as exc:
        return FileValidationReport(valid=False, errors=(str(exc),))
    except OSError as exc:
        return FileValidationReport(valid=False, errors=(f"unable to read {target}: {exc}",))

    result = validate_config(document)
    return FileValidationReport(
        valid=result.is_valid,
        errors=tuple(str(issue) for issue in result.issues),
    )


def effective_config(config: ResolvedConfig) -> dict[str, Any]:
    """Return a redacted effective config representation suitable for logging."""

    return redact_document(config.to_document())


def dump_effective_config(config: ResolvedConfig) -> str:
    """Return deterministic JSON dump of redacted effective config."""

    return json.dumps(
        effective_config(config), sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )


def _set_nested(target: dict[str, Any], path: tuple[str, ...], value: object) -> None:
    cursor = target
    for part in path[:-1]:
        next_node = cursor.get(part)
        if not isinstance(next_node, dict):
            next_node = {}
            cursor[part] = next_node
        cursor = next_node
    cursor[path[-1]] = value


__all__ = [
    "ConfigLoadError",
    "ConfigResolver",
    "FileValidationReport",
    "dump_effective_config",
    "effective_config",
    "load_config",
    "materialize_overrides",
    "read_document",
    "validate_config_file",
]
