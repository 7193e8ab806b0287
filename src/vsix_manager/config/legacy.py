"""
vsix-manager — legacy (v1) configuration document.

File: src/vsix_manager/config/legacy.py
Last updated: 2026-10-18

Purpose
- Declare the flat v1 document shape so migration never reads untyped keys.

What should be included in this file
- ``LegacyConfigDocument`` with every v1 field and its loose type.
- Tolerant parsing that keeps declared fields of an accepted type.
- Detection of flat legacy documents found during normal discovery.

Functional requirements
- Undeclared keys are ignored; declared keys of the wrong type are dropped with a warning.
- Integral floats are accepted for numeric fields (JSON writers emit ``3.0``).

Non-functional requirements
- Pure functions; no filesystem access.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Final, Literal, TypedDict

from vsix_manager.constants import CONFIG_SCHEMA_VERSION, SECTION_NAMES

logger = logging.getLogger(__name__)

LegacyKind = Literal["str", "int", "bool"]


class LegacyConfigDocument(TypedDict, total=False):
    outputDir: str
    cacheDir: str
    parallel: int
    retry: int
    retryDelay: int
    skipExisting: bool
    overwrite: bool
    filenameTemplate: str
    quiet: bool
    json: bool
    source: str
    preRelease: bool
    checksum: bool
    timeout: int
    userAgent: str
    progressUpdateInterval: int
    editor: str
    cursorBin: str
    codeBin: str
    checkCompatibility: bool
    allowMismatchedBinary: bool
    installParallel: int
    installRetry: int


LEGACY_FIELDS: Final[dict[str, LegacyKind]] = {
    "outputDir": "str",
    "cacheDir": "str",
    "parallel": "int",
    "retry": "int",
    "retryDelay": "int",
    "skipExisting": "bool",
    "overwrite": "bool",
    "filenameTemplate": "str",
    "quiet": "bool",
    "json": "bool",
    "source": "str",
    "preRelease": "bool",
    "checksum": "bool",
    "timeout": "int",
    "userAgent": "str",
    "progressUpdateInterval": "int",
    "editor": "str",
    "cursorBin": "str",
    "codeBin": "str",
    "checkCompatibility": "bool",
    "allowMismatchedBinary": "bool",
    "installParallel": "int",
    "installRetry": "int",
}


def parse_legacy_document(raw: Mapping[str, object]) -> LegacyConfigDocument:
    """Keep the declared v1 fields whose values have an accepted type."""

    parsed: dict[str, object] = {}
    for key, kind in LEGACY_FIELDS.items():
        if key not in raw or raw[key] is None:
            continue
        value = _coerce(raw[key], kind)
        if value is None:
            logger.warning(
                "ignoring legacy field %s: expected %s, got %s",
                key,
                kind,
                type(raw[key]).__name__,
            )
            continue
        parsed[key] = value
    return LegacyConfigDocument(**parsed)  # type: ignore[typeddict-item]


def looks_like_legacy_document(raw: Mapping[str, object]) -> bool:
    """Return True for a flat document carrying v1 keys and no v2 sections."""

    if raw.get("version") == CONFIG_SCHEMA_VERSION:
        return False
    if any(isinstance(raw.get(section), Mapping) for section in SECTION_NAMES):
        return False
    return any(key in LEGACY_FIELDS for key in raw)


def _coerce(value: object, kind: LegacyKind) -> object | None:
    if kind == "bool":
        return value if isinstance(value, bool) else None
    if kind == "int":
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


__all__ = [
    "LEGACY_FIELDS",
    "LegacyConfigDocument",
    "LegacyKind",
    "looks_like_legacy_document",
    "parse_legacy_document",
]
