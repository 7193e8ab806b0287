"""
vsix-manager — configuration schema and validation.

File: src/vsix_manager/config/schema.py
Last updated: 2026-10-18

Purpose
- Define authoritative configuration defaults and total validation rules.

What should be included in this file
- Declarative field table: type, inclusive numeric bounds, enum sets, optionality.
- Typed document shapes and the frozen ``ResolvedConfig`` value.
- Structured field errors (dot-path + message) collected in one pass.
- The explicit per-field section merge used by every precedence stage.

Functional requirements
- Unknown keys are ignored, never rejected.
- Every known field with a wrong type or out-of-range value yields exactly one error.
- Enumerated fields are closed and case-sensitive; nothing is coerced.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, fields
from typing import Any, Final, Literal, NotRequired, TypedDict

from vsix_manager.constants import CONFIG_SCHEMA_VERSION, SECTION_NAMES

FieldKind = Literal["str", "int", "bool", "enum"]

EDITOR_CHOICES: Final[tuple[str, ...]] = ("cursor", "vscode", "auto")
SKIP_INSTALLED_CHOICES: Final[tuple[str, ...]] = ("ask", "always", "never")
UPDATE_CHECK_CHOICES: Final[tuple[str, ...]] = ("never", "daily", "weekly", "always")
SOURCE_CHOICES: Final[tuple[str, ...]] = ("marketplace", "open-vsx", "auto")
OUTPUT_FORMAT_CHOICES: Final[tuple[str, ...]] = ("auto", "json", "table", "quiet")

_URL_CREDENTIALS = re.compile(r"(?P<scheme>[a-zA-Z][a-zA-Z0-9+.-]*://)[^/@\s]+@")
_REDACTED_VALUE: Final[str] = "<redacted>"


EditorSection = TypedDict(
    "EditorSection",
    {
        "prefer": str,
        "cursor-binary": NotRequired[str],
        "vscode-binary": NotRequired[str],
    },
)

SafetySection = TypedDict(
    "SafetySection",
    {
        "check-compatibility": bool,
        "auto-backup": bool,
        "verify-checksums": bool,
        "allow-mismatch": bool,
    },
)

PerformanceSection = TypedDict(
    "PerformanceSection",
    {
        "parallel-downloads": int,
        "parallel-installs": int,
        "timeout": int,
        "retry": int,
        "retry-delay": int,
    },
)

BehaviorSection = TypedDict(
    "BehaviorSection",
    {
        "skip-installed": str,
        "update-check": str,
        "auto-retry": bool,
        "download-dir": str,
        "cache-dir": NotRequired[str],
    },
)

NetworkSection = TypedDict(
    "NetworkSection",
    {
        "source": str,
        "user-agent": NotRequired[str],
        "proxy": NotRequired[str],
    },
)

OutputSection = TypedDict(
    "OutputSection",
    {
        "format": str,
        "colors": bool,
        "show-progress": bool,
    },
)


class ProfileOverlay(TypedDict, total=False):
    editor: dict[str, object]
    safety: dict[str, object]
    performance: dict[str, object]
    behavior: dict[str, object]
    network: dict[str, object]
    output: dict[str, object]


ConfigDocument = TypedDict(
    "ConfigDocument",
    {
        "version": str,
        "editor": EditorSection,
        "safety": SafetySection,
        "performance": PerformanceSection,
        "behavior": BehaviorSection,
        "network": NetworkSection,
        "output": OutputSection,
        "active-profile": NotRequired[str],
        "profiles": NotRequired[dict[str, ProfileOverlay]],
    },
)


DEFAULT_CONFIG: Final[ConfigDocument] = {
    "version": CONFIG_SCHEMA_VERSION,
    "editor": {
        "prefer": "auto",
    },
    "safety": {
        "check-compatibility": True,
        "auto-backup": True,
        "verify-checksums": True,
        "allow-mismatch": False,
    },
    "performance": {
        "parallel-downloads": 3,
        "parallel-installs": 1,
        "timeout": 30000,
        "retry": 2,
        "retry-delay": 1000,
    },
    "behavior": {
        "skip-installed": "ask",
        "update-check": "weekly",
        "auto-retry": True,
        "download-dir": "./downloads",
    },
    "network": {
        "source": "auto",
    },
    "output": {
        "format": "auto",
        "colors": True,
        "show-progress": True,
    },
}


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Declared shape of one configuration field."""

    section: str
    name: str
    kind: FieldKind
    minimum: int | None = None
    maximum: int | None = None
    choices: tuple[str, ...] = ()
    optional: bool = False

    @property
    def path(self) -> str:
        return f"{self.section}.{self.name}"

    @property
    def default(self) -> object:
        section = DEFAULT_CONFIG[self.section]  # type: ignore[literal-required]
        return section.get(self.name)


FIELD_SPECS: Final[tuple[FieldSpec, ...]] = (
    FieldSpec("editor", "prefer", "enum", choices=EDITOR_CHOICES),
    FieldSpec("editor", "cursor-binary", "str", optional=True),
    FieldSpec("editor", "vscode-binary", "str", optional=True),
    FieldSpec("safety", "check-compatibility", "bool"),
    FieldSpec("safety", "auto-backup", "bool"),
    FieldSpec("safety", "verify-checksums", "bool"),
    FieldSpec("safety", "allow-mismatch", "bool"),
    FieldSpec("performance", "parallel-downloads", "int", minimum=1, maximum=10),
    FieldSpec("performance", "parallel-installs", "int", minimum=1, maximum=5),
    FieldSpec("performance", "timeout", "int", minimum=5000),
    FieldSpec("performance", "retry", "int", minimum=0, maximum=5),
    FieldSpec("performance", "retry-delay", "int", minimum=100),
    FieldSpec("behavior", "skip-installed", "enum", choices=SKIP_INSTALLED_CHOICES),
    FieldSpec("behavior", "update-check", "enum", choices=UPDATE_CHECK_CHOICES),
    FieldSpec("behavior", "auto-retry", "bool"),
    FieldSpec("behavior", "download-dir", "str"),
    FieldSpec("behavior", "cache-dir", "str", optional=True),
    FieldSpec("network", "source", "enum", choices=SOURCE_CHOICES),
    FieldSpec("network", "user-agent", "str", optional=True),
    FieldSpec("network", "proxy", "str", optional=True),
    FieldSpec("output", "format", "enum", choices=OUTPUT_FORMAT_CHOICES),
    FieldSpec("output", "colors", "bool"),
    FieldSpec("output", "show-progress", "bool"),
)

FIELDS_BY_PATH: Final[dict[str, FieldSpec]] = {spec.path: spec for spec in FIELD_SPECS}
SECTION_FIELDS: Final[dict[str, tuple[FieldSpec, ...]]] = {
    section: tuple(spec for spec in FIELD_SPECS if spec.section == section)
    for section in SECTION_NAMES
}


# ---------------------------------------------------------------------------
# Resolved (typed, frozen) configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class EditorSettings:
    prefer: str
    cursor_binary: str | None = None
    vscode_binary: str | None = None


@dataclass(frozen=True, slots=True)
class SafetySettings:
    check_compatibility: bool
    auto_backup: bool
    verify_checksums: bool
    allow_mismatch: bool


@dataclass(frozen=True, slots=True)
class PerformanceSettings:
    parallel_downloads: int
    parallel_installs: int
    timeout: int
    retry: int
    retry_delay: int


@dataclass(frozen=True, slots=True)
class BehaviorSettings:
    skip_installed: str
    update_check: str
    auto_retry: bool
    download_dir: str
    cache_dir: str | None = None


@dataclass(frozen=True, slots=True)
class NetworkSettings:
    source: str
    user_agent: str | None = None
    proxy: str | None = None


@dataclass(frozen=True, slots=True)
class OutputSettings:
    format: str
    colors: bool
    show_progress: bool


_SECTION_TYPES: Final[dict[str, type[Any]]] = {
    "editor": EditorSettings,
    "safety": SafetySettings,
    "performance": PerformanceSettings,
    "behavior": BehaviorSettings,
    "network": NetworkSettings,
    "output": OutputSettings,
}


@dataclass(frozen=True, slots=True)
class ResolvedConfig:
    """Fully defaulted, validated configuration consumed for decision-making."""

    editor: EditorSettings
    safety: SafetySettings
    performance: PerformanceSettings
    behavior: BehaviorSettings
    network: NetworkSettings
    output: OutputSettings
    version: str = CONFIG_SCHEMA_VERSION
    active_profile: str | None = None

    def to_document(self) -> dict[str, Any]:
        """Return the hyphenated document form; unset optional fields are omitted."""

        document: dict[str, Any] = {"version": self.version}
        for section in SECTION_NAMES:
            settings = getattr(self, section)
            values: dict[str, Any] = {}
            for item in fields(settings):
                value = getattr(settings, item.name)
                if value is None:
                    continue
                values[item.name.replace("_", "-")] = value
            document[section] = values
        if self.active_profile is not None:
            document["active-profile"] = self.active_profile
        return document

    def get(self, path: str) -> object:
        """Look up a field by its dot-path, e.g. ``performance.parallel-downloads``."""

        spec = FIELDS_BY_PATH.get(path)
        if spec is None:
            raise KeyError(path)
        return getattr(getattr(self, spec.section), _attr_name(spec.name))


@dataclass(frozen=True, slots=True)
class FieldError:
    """Single structured validation failure."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with the resolved config when no issues were found."""

    config: ResolvedConfig | None
    issues: tuple[FieldError, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when validation of the merged configuration fails."""

    def __init__(self, issues: Sequence[FieldError]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[FieldError] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(FieldError(path=path, message=message))

    def extend(self, items: Sequence[FieldError]) -> None:
        self._items.extend(items)

    def items(self) -> tuple[FieldError, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def default_config() -> ConfigDocument:
    """Return a deep copy of the compiled-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: str) -> str:
    """Return guidance for a document whose version tag is not the current one."""

    try:
        numeric = float(found_version)
    except ValueError:
        return f"unsupported schema version {found_version!r}; expected {CONFIG_SCHEMA_VERSION!r}"
    if numeric < float(CONFIG_SCHEMA_VERSION):
        return (
            f"schema version {found_version!r} is older than supported {CONFIG_SCHEMA_VERSION!r}; "
            "run `vsix config migrate` to upgrade the document"
        )
    if numeric > float(CONFIG_SCHEMA_VERSION):
        return (
            f"schema version {found_version!r} is newer than supported {CONFIG_SCHEMA_VERSION!r}; "
            "upgrade vsix-manager"
        )
    return f"version must be written as the string {CONFIG_SCHEMA_VERSION!r}"


def merge_sections(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Merge ``overlay`` onto ``base`` field by field within the six sections.

    Only one level is merged: a section of ``overlay`` updates the matching
    section of ``base`` key by key. ``None`` values count as absent. Keys of
    ``overlay`` outside the six sections are not merged. A non-object section
    value replaces the base section so that validation can report it; once a
    section is malformed, later overlays do not mask it.
    """

    merged = _copy_document(base)
    for section in SECTION_NAMES:
        incoming = overlay.get(section)
        if incoming is None:
            continue
        current = merged.get(section)
        if current is not None and not isinstance(current, Mapping):
            continue
        if not isinstance(incoming, Mapping):
            merged[section] = copy.deepcopy(incoming)
            continue
        updated: dict[str, Any] = dict(current or {})
        for key, value in incoming.items():
            if value is None:
                continue
            updated[key] = copy.deepcopy(value)
        merged[section] = updated
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate a full document, filling defaults, and collect every issue."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    version = CONFIG_SCHEMA_VERSION
    if root.get("version") is not None:
        parsed_version = _validate_version(root["version"], issues)
        if parsed_version is not None:
            version = parsed_version

    sections: dict[str, dict[str, Any]] = {}
    for section in SECTION_NAMES:
        parsed = _section(root, section, "", issues, partial=False)
        if parsed is not None:
            sections[section] = parsed

    active_profile: str | None = None
    if root.get("active-profile") is not None:
        active_profile = _as_str(root["active-profile"], "active-profile", issues)

    if root.get("profiles") is not None:
        _validate_profiles(root["profiles"], "profiles", issues)

    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())

    resolved = ResolvedConfig(
        **{section: _build_settings(section, sections[section]) for section in SECTION_NAMES},
        version=version,
        active_profile=active_profile,
    )
    return ConfigValidationResult(config=resolved, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> ResolvedConfig:
    """Validate a full document and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def validate_partial(
    overlay: Mapping[str, object] | object,
    *,
    path: str = "",
) -> tuple[dict[str, Any], tuple[FieldError, ...]]:
    """Validate a partial overlay without filling defaults.

    Returns the normalized overlay (valid fields only) and the issues found.
    """

    issues = _IssueCollector()
    root = _as_object(overlay, path or "<root>", issues)
    if root is None:
        return {}, issues.items()
    return _validate_overlay_sections(root, path, issues), issues.items()


def redact_document(document: Mapping[str, object]) -> dict[str, Any]:
    """Return a copy with credentials embedded in URL-valued fields masked."""

    redacted = _copy_document(document)
    network = redacted.get("network")
    if isinstance(network, dict):
        for key in ("proxy",):
            value = network.get(key)
            if isinstance(value, str):
                network[key] = _URL_CREDENTIALS.sub(
                    lambda match: f"{match.group('scheme')}{_REDACTED_VALUE}@", value
                )
    return redacted


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _validate_version(value: object, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            issues.add("version", migration_guidance(str(value)))
        else:
            issues.add("version", f"expected string, got {type(value).__name__}")
        return None
    if value != CONFIG_SCHEMA_VERSION:
        issues.add("version", migration_guidance(value))
        return None
    return value


def _section(
    payload: Mapping[str, object],
    section: str,
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any] | None:
    section_path = _join(path, section)
    raw = payload.get(section)
    if raw is None:
        return {} if partial else _validate_section({}, section, section_path, issues, partial=False)
    section_obj = _as_object(raw, section_path, issues)
    if section_obj is None:
        return None
    return _validate_section(section_obj, section, section_path, issues, partial=partial)


def _validate_section(
    payload: Mapping[str, object],
    section: str,
    path: str,
    issues: _IssueCollector,
    *,
    partial: bool,
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for spec in SECTION_FIELDS[section]:
        raw = payload.get(spec.name)
        if raw is None:
            if not partial and not spec.optional:
                out[spec.name] = copy.deepcopy(spec.default)
            continue
        parsed = _validate_field(spec, raw, _join(path, spec.name), issues)
        if parsed is not None:
            out[spec.name] = parsed
    return out


def _validate_field(spec: FieldSpec, value: object, path: str, issues: _IssueCollector) -> object:
    if spec.kind == "bool":
        return _as_bool(value, path, issues)
    if spec.kind == "int":
        return _as_int(value, path, issues, minimum=spec.minimum, maximum=spec.maximum)
    if spec.kind == "enum":
        return _as_enum(value, path, issues, allowed_values=spec.choices)
    return _as_str(value, path, issues)


def _validate_overlay_sections(
    payload: Mapping[str, object],
    path: str,
    issues: _IssueCollector,
) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for section in SECTION_NAMES:
        if payload.get(section) is None:
            continue
        parsed = _section(payload, section, path, issues, partial=True)
        if parsed is not None:
            out[section] = parsed
    return out


def _validate_profiles(value: object, path: str, issues: _IssueCollector) -> dict[str, Any]:
    profiles = _as_object(value, path, issues)
    if profiles is None:
        return {}
    out: dict[str, Any] = {}
    for name in sorted(profiles):
        profile_path = _join(path, name)
        if not name.strip():
            issues.add(profile_path, "profile name must not be empty")
            continue
        overlay = _as_object(profiles[name], profile_path, issues)
        if overlay is None:
            continue
        out[name] = _validate_overlay_sections(overlay, profile_path, issues)
    return out


def _build_settings(section: str, values: Mapping[str, Any]) -> Any:
    settings_type = _SECTION_TYPES[section]
    return settings_type(**{_attr_name(key): value for key, value in values.items()})


def _attr_name(field_name: str) -> str:
    return field_name.replace("-", "_")


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    # Non-string keys are ignored like unknown keys.
    return {key: item for key, item in value.items() if isinstance(key, str)}


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    if maximum is not None and value > maximum:
        issues.add(path, f"must be <= {maximum}")
        return None
    return value


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    if value not in allowed_values:
        expected = ", ".join(allowed_values)
        issues.add(path, f"invalid value {value!r}; expected one of: {expected}")
        return None
    return value


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _copy_document(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: copy.deepcopy(item) for key, item in value.items()}


__all__ = [
    "DEFAULT_CONFIG",
    "EDITOR_CHOICES",
    "FIELDS_BY_PATH",
    "FIELD_SPECS",
    "OUTPUT_FORMAT_CHOICES",
    "SECTION_FIELDS",
    "SKIP_INSTALLED_CHOICES",
    "SOURCE_CHOICES",
    "UPDATE_CHECK_CHOICES",
    "BehaviorSettings",
    "ConfigDocument",
    "ConfigValidationError",
    "ConfigValidationResult",
    "EditorSettings",
    "FieldError",
    "FieldKind",
    "FieldSpec",
    "NetworkSettings",
    "OutputSettings",
    "PerformanceSettings",
    "ProfileOverlay",
    "ResolvedConfig",
    "SafetySettings",
    "assert_valid_config",
    "default_config",
    "merge_sections",
    "migration_guidance",
    "redact_document",
    "validate_config",
    "validate_partial",
]
