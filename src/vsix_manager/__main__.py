"""Module entrypoint for ``python -m vsix_manager``."""

from __future__ import annotations

from vsix_manager.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
