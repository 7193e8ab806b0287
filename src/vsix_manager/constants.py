"""Stable constants shared by the configuration engine and the CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Final

# Schema generation written into every current-format document.
CONFIG_SCHEMA_VERSION: Final[str] = "2.0"

ENV_PREFIX: Final[str] = "VSIX_"
PROFILE_ENV_VAR: Final[str] = f"{ENV_PREFIX}PROFILE"

# Section names in deterministic merge/validation order.
SECTION_NAMES: Final[tuple[str, ...]] = (
    "editor",
    "safety",
    "performance",
    "behavior",
    "network",
    "output",
)

# Config file names tried in every search directory (newer YAML first, legacy JSON last).
CONFIG_FILE_NAMES: Final[tuple[str, ...]] = (
    ".vsix.yml",
    ".vsix.yaml",
    "vsix.config.yml",
    "vsix.config.yaml",
    ".vsixrc",
    ".vsixrc.json",
)

# Extra names tried first inside the dedicated config directory.
DEDICATED_DIR_FILE_NAMES: Final[tuple[str, ...]] = ("config.yml", "config.yaml")

DEDICATED_CONFIG_DIRNAME: Final[str] = ".vsix"
LEGACY_CONFIG_DIR_PARTS: Final[tuple[str, ...]] = (".config", "vsix-extension-manager")

YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yml", ".yaml"})
JSON_SUFFIXES: Final[frozenset[str]] = frozenset({".json"})
JSON_BARE_NAMES: Final[frozenset[str]] = frozenset({".vsixrc"})

BACKUP_SUFFIX: Final[str] = ".v1.backup"


def dedicated_config_dir(home: Path) -> Path:
    return home / DEDICATED_CONFIG_DIRNAME


def legacy_config_dir(home: Path) -> Path:
    return home.joinpath(*LEGACY_CONFIG_DIR_PARTS)


def default_config_target(home: Path) -> Path:
    """Location written by migration and ``config init``."""

    return dedicated_config_dir(home) / "config.yml"


def legacy_document_candidates(home: Path) -> tuple[Path, ...]:
    """Legacy (v1) documents considered by migration, in priority order."""

    return (
        home / ".vsixrc",
        home / ".vsixrc.json",
        legacy_config_dir(home) / "config.json",
    )


def current_document_candidates(home: Path) -> tuple[Path, ...]:
    """Current-format documents whose presence blocks migration."""

    return (
        default_config_target(home),
        home / ".vsix.yml",
    )


__all__ = [
    "BACKUP_SUFFIX",
    "CONFIG_FILE_NAMES",
    "CONFIG_SCHEMA_VERSION",
    "DEDICATED_CONFIG_DIRNAME",
    "DEDICATED_DIR_FILE_NAMES",
    "ENV_PREFIX",
    "JSON_BARE_NAMES",
    "JSON_SUFFIXES",
    "LEGACY_CONFIG_DIR_PARTS",
    "PROFILE_ENV_VAR",
    "SECTION_NAMES",
    "YAML_SUFFIXES",
    "current_document_candidates",
    "dedicated_config_dir",
    "default_config_target",
    "legacy_config_dir",
    "legacy_document_candidates",
]
