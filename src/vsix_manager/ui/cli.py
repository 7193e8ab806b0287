"""Command-line interface router for vsix-manager configuration commands."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Final

import yaml

from vsix_manager.config import (
    ConfigResolver,
    MigrationOptions,
    MigrationResult,
    auto_migrate_if_needed,
    create_sample_config,
    effective_config,
    validate_config_file,
)
from vsix_manager.config.migrator import find_legacy_document
from vsix_manager.config.schema import (
    EDITOR_CHOICES,
    OUTPUT_FORMAT_CHOICES,
    SKIP_INSTALLED_CHOICES,
    SOURCE_CHOICES,
    UPDATE_CHECK_CHOICES,
)
from vsix_manager.observability.logging import LoggingConfig, setup_logging, shutdown_logging
from vsix_manager.ui.render import CLIRenderer, create_renderer

LOG_LEVEL_CHOICES: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

# argparse destination -> config dot-path for `config show` override flags.
_OVERRIDE_FLAGS: Final[tuple[tuple[str, str], ...]] = (
    ("editor", "editor.prefer"),
    ("parallel_downloads", "performance.parallel-downloads"),
    ("parallel_installs", "performance.parallel-installs"),
    ("timeout", "performance.timeout"),
    ("retry", "performance.retry"),
    ("retry_delay", "performance.retry-delay"),
    ("skip_installed", "behavior.skip-installed"),
    ("update_check", "behavior.update-check"),
    ("download_dir", "behavior.download-dir"),
    ("source", "network.source"),
    ("output_format", "output.format"),
)


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for the config workflows."""

    parser = argparse.ArgumentParser(
        prog="vsix",
        description=(
            "vsix-manager — layered configuration for the VSIX extension manager.\n\n"
            "Common workflows:\n"
            "  vsix config show            Print the effective configuration\n"
            "  vsix config validate        Check the discovered config file\n"
            "  vsix config init            Write a commented sample config\n"
            "  vsix config migrate         Upgrade a legacy v1 config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVEL_CHOICES,
        default="WARNING",
        help="Diagnostic log level written to stderr (default: WARNING).",
    )
    common.add_argument(
        "--log-file",
        default=None,
        help="Also write diagnostics to this file.",
    )
    common.add_argument(
        "--log-format",
        choices=("text", "json"),
        default="text",
        help="Diagnostic log line format (default: text).",
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    config_parser = subparsers.add_parser(
        "config",
        help="Inspect, validate, create and migrate configuration",
    )
    actions = config_parser.add_subparsers(dest="action", required=True)

    # show ----------------------------------------------------------------
    show_parser = actions.add_parser(
        "show",
        parents=[common],
        help="Print the effective configuration",
        description=(
            "Resolve defaults, config file, profile, VSIX_* environment and flags.\n\n"
            "Examples:\n"
            "  vsix config show\n"
            "  vsix config show --profile ci --json\n"
            "  vsix config show --config ./team.vsix.yml --parallel-downloads 5\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    show_parser.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Config file to use instead of the discovered one.",
    )
    show_parser.add_argument("--profile", default=None, help="Profile overlay to apply.")
    show_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    _add_override_flags(show_parser)
    show_parser.set_defaults(handler=_cmd_show)

    # validate ------------------------------------------------------------
    validate_parser = actions.add_parser(
        "validate",
        parents=[common],
        help="Validate a config file",
        description=(
            "Validate a config file against the 2.0 schema and list every issue.\n\n"
            "Examples:\n"
            "  vsix config validate\n"
            "  vsix config validate ~/.vsix/config.yml --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    validate_parser.add_argument(
        "path",
        nargs="?",
        default=None,
        help="File to validate (default: the discovered config file).",
    )
    validate_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    validate_parser.set_defaults(handler=_cmd_validate)

    # init ----------------------------------------------------------------
    init_parser = actions.add_parser(
        "init",
        parents=[common],
        help="Write a commented sample config",
        description=(
            "Write a commented sample 2.0 config (default: ~/.vsix/config.yml).\n\n"
            "Examples:\n"
            "  vsix config init\n"
            "  vsix config init --path ./.vsix.yml --force\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    init_parser.add_argument("--path", default=None, help="Target file.")
    init_parser.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite the target if it already exists.",
    )
    init_parser.set_defaults(handler=_cmd_init)

    # migrate -------------------------------------------------------------
    migrate_parser = actions.add_parser(
        "migrate",
        parents=[common],
        help="Upgrade a legacy v1 config to 2.0",
        description=(
            "Convert ~/.vsixrc (or another legacy file) into ~/.vsix/config.yml.\n"
            "The legacy file is copied to <file>.v1.backup and left in place.\n\n"
            "Examples:\n"
            "  vsix config migrate --dry-run\n"
            "  vsix config migrate --yes\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    migrate_parser.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Print the migrated YAML without writing anything.",
    )
    migrate_parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        default=False,
        help="Do not ask for confirmation.",
    )
    migrate_parser.set_defaults(handler=_cmd_migrate)

    # paths ---------------------------------------------------------------
    paths_parser = actions.add_parser(
        "paths",
        parents=[common],
        help="List config search locations",
        description=(
            "List every location searched for a config file, in priority order.\n"
            "The file that would be used is marked with '*'.\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    paths_parser.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    paths_parser.set_defaults(handler=_cmd_paths)

    return parser


def _add_override_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("overrides")
    group.add_argument("--editor", choices=EDITOR_CHOICES, default=None)
    group.add_argument("--parallel-downloads", type=int, default=None)
    group.add_argument("--parallel-installs", type=int, default=None)
    group.add_argument("--timeout", type=int, default=None, help="Milliseconds.")
    group.add_argument("--retry", type=int, default=None)
    group.add_argument("--retry-delay", type=int, default=None, help="Milliseconds.")
    group.add_argument("--skip-installed", choices=SKIP_INSTALLED_CHOICES, default=None)
    group.add_argument("--update-check", choices=UPDATE_CHECK_CHOICES, default=None)
    group.add_argument("--download-dir", default=None)
    group.add_argument("--source", choices=SOURCE_CHOICES, default=None)
    group.add_argument(
        "--format",
        dest="output_format",
        choices=OUTPUT_FORMAT_CHOICES,
        default=None,
    )


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    handle = setup_logging(
        LoggingConfig(
            level=namespace.log_level,
            log_format=namespace.log_format,
            log_file=namespace.log_file,
        )
    )
    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    finally:
        shutdown_logging(handle)
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_show(args: argparse.Namespace) -> int:
    resolver = ConfigResolver()
    config_path: str | None = args.config_path
    config = resolver.load_config(_collect_overrides(args), config_path, profile=args.profile)

    source: Path | None
    if config_path is not None:
        source = Path(config_path).expanduser() if resolver.config_exists(config_path) else None
    else:
        source = resolver.find_config_file()
    redacted = effective_config(config)

    if args.json:
        _emit_json(
            {
                "command": "config show",
                "source": None if source is None else str(source),
                "active_profile": config.active_profile,
                "config": redacted,
            }
        )
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Config file", source if source is not None else "(defaults)")
    renderer.kv("Active profile", config.active_profile or "(none)")
    renderer.section("Effective configuration:")
    renderer.text(
        yaml.safe_dump(redacted, sort_keys=False, default_flow_style=False).rstrip("\n")
    )
    return 0


def _cmd_validate(args: argparse.Namespace) -> int:
    target: Path | None
    if args.path is not None:
        target = Path(args.path).expanduser()
    else:
        target = ConfigResolver().find_config_file()
    if target is None:
        raise CLIError("no config file found; run `vsix config init` to create one", exit_code=2)

    report = validate_config_file(target)
    if args.json:
        _emit_json(
            {
                "command": "config validate",
                "path": str(target),
                "valid": report.valid,
                "errors": list(report.errors),
            }
        )
    else:
        renderer = _get_renderer(args)
        if report.valid:
            renderer.ok(f"{target} is valid")
        else:
            renderer.fail(f"{target} has {len(report.errors)} issue(s)")
            renderer.items(report.errors)
    return 0 if report.valid else 1


def _cmd_init(args: argparse.Namespace) -> int:
    written = create_sample_config(args.path, force=args.force)
    renderer = _get_renderer(args)
    renderer.ok(f"wrote sample config to {written}")
    return 0


def _cmd_migrate(args: argparse.Namespace) -> int:
    home = Path.home()
    renderer = _get_renderer(args)
    legacy = find_legacy_document(home)
    if legacy is None:
        renderer.text("no legacy configuration found; nothing to migrate")
        return 0

    confirm = None if args.yes or args.dry_run else _prompt_confirm
    migrated = auto_migrate_if_needed(
        MigrationOptions(home=home, dry_run=args.dry_run, confirm=confirm, output=sys.stdout)
    )
    if migrated:
        renderer.ok(f"migrated {legacy}; a backup was kept next to it")
    elif not args.dry_run:
        renderer.text("migration skipped")
    return 0


def _cmd_paths(args: argparse.Namespace) -> int:
    resolver = ConfigResolver()
    candidates = resolver.search_candidates()
    active = resolver.find_config_file()

    if args.json:
        _emit_json(
            {
                "command": "config paths",
                "active": None if active is None else str(active),
                "candidates": [str(path) for path in candidates],
            }
        )
        return 0

    renderer = _get_renderer(args)
    renderer.heading("Config search order (first match wins):")
    for candidate in candidates:
        marker = "*" if candidate == active else " "
        renderer.text(f"{marker} {candidate}")
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _collect_overrides(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for dest, path in _OVERRIDE_FLAGS:
        value = getattr(args, dest, None)
        if value is not None:
            overrides[path] = value
    return overrides


def _prompt_confirm(legacy_path: Path, result: MigrationResult) -> bool:
    print(f"Planned changes for {legacy_path}:")
    for line in result.render_diff():
        print(f"  {line}")
    try:
        answer = input(f"Migrate {legacy_path} to the 2.0 format? [Y/n] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"", "y", "yes"}


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=bool(getattr(args, "no_color", False)))


__all__ = ["CLIError", "build_parser", "run_cli"]
