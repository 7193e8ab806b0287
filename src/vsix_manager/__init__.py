"""
vsix-manager — configuration engine for the VSIX extension manager.

File: src/vsix_manager/__init__.py
Last updated: 2026-10-18

Purpose
- Package root. Defines package-level metadata and import boundaries.

What should be included in this file
- Version export and a minimal public API surface.
- No heavy imports: submodules are imported where they are used.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "2.0.0"

__all__ = ["__version__"]
