"""
vsix-manager config package public API.

File: src/vsix_manager/config/__init__.py
Last updated: 2026-10-18

Purpose
- Export config resolution, validation and migration entrypoints and error types.

What should be included in this file
- Schema defaults, resolved config types and validation results.
- Resolver APIs for effective config and redacted dumps.
- Legacy migration and sample config creation.

Functional requirements
- Support loading from YAML/JSON documents + ``VSIX_`` env overrides + profiles.
- Fail fast with clear structured validation/load errors.

Non-functional requirements
- Keep import-time surface small and deterministic.
"""

from vsix_manager.config.environment import (
    ENV_BINDINGS,
    EnvironmentOverlay,
    apply_environment,
    env_var_for_path,
)
from vsix_manager.config.legacy import (
    LegacyConfigDocument,
    looks_like_legacy_document,
    parse_legacy_document,
)
from vsix_manager.config.loader import (
    ConfigLoadError,
    ConfigResolver,
    FileValidationReport,
    dump_effective_config,
    effective_config,
    load_config,
    validate_config_file,
)
from vsix_manager.config.migrator import (
    MigrationChange,
    MigrationError,
    MigrationOptions,
    MigrationResult,
    UnsafeWriteError,
    auto_migrate_if_needed,
    create_sample_config,
    migrate,
)
from vsix_manager.config.profiles import apply_profile, profile_names
from vsix_manager.config.schema import (
    DEFAULT_CONFIG,
    ConfigDocument,
    ConfigValidationError,
    ConfigValidationResult,
    FieldError,
    ProfileOverlay,
    ResolvedConfig,
    assert_valid_config,
    default_config,
    merge_sections,
    migration_guidance,
    validate_config,
    validate_partial,
)

__all__ = [
    "DEFAULT_CONFIG",
    "ENV_BINDINGS",
    "ConfigDocument",
    "ConfigLoadError",
    "ConfigResolver",
    "ConfigValidationError",
    "ConfigValidationResult",
    "EnvironmentOverlay",
    "FieldError",
    "FileValidationReport",
    "LegacyConfigDocument",
    "MigrationChange",
    "MigrationError",
    "MigrationOptions",
    "MigrationResult",
    "ProfileOverlay",
    "ResolvedConfig",
    "UnsafeWriteError",
    "apply_environment",
    "apply_profile",
    "assert_valid_config",
    "auto_migrate_if_needed",
    "create_sample_config",
    "default_config",
    "dump_effective_config",
    "effective_config",
    "env_var_for_path",
    "load_config",
    "looks_like_legacy_document",
    "merge_sections",
    "migrate",
    "migration_guidance",
    "parse_legacy_document",
    "profile_names",
    "validate_config",
    "validate_config_file",
    "validate_partial",
]
