"""
vsix-manager — environment variable mapping.

File: src/vsix_manager/config/environment.py
Last updated: 2026-10-18

Purpose
- Translate ``VSIX_*`` process environment variables into a partial config overlay.

What should be included in this file
- The fixed variable <-> dot-path table, including the reverse lookup.
- Strict per-type coercion: decimal integers, a closed boolean vocabulary, exact enums.

Functional requirements
- Absent or empty variables leave lower-precedence values untouched.
- Coercion failures become field errors that name the variable; nothing is guessed.

Non-functional requirements
- Deterministic iteration order; no reads of the real environment unless asked.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

from vsix_manager.constants import ENV_PREFIX, PROFILE_ENV_VAR
from vsix_manager.config.schema import FIELDS_BY_PATH, FieldError, FieldSpec, merge_sections

logger = logging.getLogger(__name__)

_BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"1", "true", "t", "yes", "y", "on"})
_BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"0", "false", "f", "no", "n", "off"})
_DECIMAL_INTEGER = re.compile(r"[+-]?[0-9]+")

ENV_BINDINGS: Final[dict[str, str]] = {
    f"{ENV_PREFIX}EDITOR": "editor.prefer",
    f"{ENV_PREFIX}CURSOR_BIN": "editor.cursor-binary",
    f"{ENV_PREFIX}VSCODE_BIN": "editor.vscode-binary",
    f"{ENV_PREFIX}CHECK_COMPAT": "safety.check-compatibility",
    f"{ENV_PREFIX}AUTO_BACKUP": "safety.auto-backup",
    f"{ENV_PREFIX}VERIFY_CHECKSUM": "safety.verify-checksums",
    f"{ENV_PREFIX}ALLOW_MISMATCH": "safety.allow-mismatch",
    f"{ENV_PREFIX}PARALLEL_DOWNLOADS": "performance.parallel-downloads",
    f"{ENV_PREFIX}PARALLEL_INSTALLS": "performance.parallel-installs",
    f"{ENV_PREFIX}TIMEOUT": "performance.timeout",
    f"{ENV_PREFIX}RETRY": "performance.retry",
    f"{ENV_PREFIX}RETRY_DELAY": "performance.retry-delay",
    f"{ENV_PREFIX}SKIP_INSTALLED": "behavior.skip-installed",
    f"{ENV_PREFIX}UPDATE_CHECK": "behavior.update-check",
    f"{ENV_PREFIX}AUTO_RETRY": "behavior.auto-retry",
    f"{ENV_PREFIX}DOWNLOAD_DIR": "behavior.download-dir",
    f"{ENV_PREFIX}CACHE_DIR": "behavior.cache-dir",
    f"{ENV_PREFIX}SOURCE": "network.source",
    f"{ENV_PREFIX}USER_AGENT": "network.user-agent",
    f"{ENV_PREFIX}PROXY": "network.proxy",
    f"{ENV_PREFIX}FORMAT": "output.format",
    f"{ENV_PREFIX}COLORS": "output.colors",
    f"{ENV_PREFIX}SHOW_PROGRESS": "output.show-progress",
}

# Older variable names, consulted only when the primary variable is unset.
ENV_ALIASES: Final[dict[str, str]] = {
    f"{ENV_PREFIX}CODE_BIN": f"{ENV_PREFIX}VSCODE_BIN",
}

_PATH_TO_ENV: Final[dict[str, str]] = {path: name for name, path in ENV_BINDINGS.items()}


@dataclass(frozen=True, slots=True)
class EnvironmentOverlay:
    """Result of applying the environment to a partial document."""

    document: dict[str, Any]
    issues: tuple[FieldError, ...]
    applied: tuple[str, ...]


def env_var_for_path(path: str) -> str | None:
    """Return the variable bound to ``path``, or ``None`` when unbound."""

    if path == "active-profile":
        return PROFILE_ENV_VAR
    return _PATH_TO_ENV.get(path)


def profile_from_environment(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the profile requested through ``VSIX_PROFILE``, if any."""

    env_map = os.environ if environ is None else environ
    raw = env_map.get(PROFILE_ENV_VAR)
    if raw is None:
        return None
    return raw.strip() or None


def apply_environment(
    partial: Mapping[str, object],
    environ: Mapping[str, str] | None = None,
) -> EnvironmentOverlay:
    """Overlay recognized ``VSIX_*`` variables onto ``partial``.

    Variables with values that cannot be coerced are reported as issues and
    leave the underlying field untouched.
    """

    env_map = os.environ if environ is None else environ
    overlay: dict[str, dict[str, Any]] = {}
    issues: list[FieldError] = []
    applied: list[str] = []

    for env_name, path in ENV_BINDINGS.items():
        source_name, raw = _lookup(env_map, env_name)
        if raw is None:
            continue
        spec = FIELDS_BY_PATH[path]
        try:
            value = _coerce(raw, spec)
        except ValueError as exc:
            issues.append(FieldError(path=path, message=f"{source_name}: {exc}"))
            continue
        overlay.setdefault(spec.section, {})[spec.name] = value
        applied.append(source_name)

    if applied:
        logger.debug("environment overrides applied: %s", ", ".join(applied))

    return EnvironmentOverlay(
        document=merge_sections(partial, overlay),
        issues=tuple(issues),
        applied=tuple(applied),
    )


def _lookup(environ: Mapping[str, str], env_name: str) -> tuple[str, str | None]:
    raw = environ.get(env_name)
    if raw is not None and raw.strip():
        return env_name, raw
    for alias, primary in ENV_ALIASES.items():
        if primary != env_name:
            continue
        alias_raw = environ.get(alias)
        if alias_raw is not None and alias_raw.strip():
            return alias, alias_raw
    return env_name, None


def _coerce(raw: str, spec: FieldSpec) -> object:
    value = raw.strip()
    if spec.kind == "str":
        return value
    if spec.kind == "int":
        if _DECIMAL_INTEGER.fullmatch(value) is None:
            raise ValueError(f"expected integer, got {value!r}")
        return int(value)
    if spec.kind == "enum":
        if value not in spec.choices:
            expected = ", ".join(spec.choices)
            raise ValueError(f"invalid value {value!r}; expected one of: {expected}")
        return value

    lowered = value.lower()
    if lowered in _BOOLEAN_TRUE:
        return True
    if lowered in _BOOLEAN_FALSE:
        return False
    raise ValueError(f"expected boolean (true/false/1/0/yes/no/on/off), got {value!r}")


__all__ = [
    "ENV_ALIASES",
    "ENV_BINDINGS",
    "EnvironmentOverlay",
    "apply_environment",
    "env_var_for_path",
    "profile_from_environment",
]
