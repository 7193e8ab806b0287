"""
vsix-manager — integration test package

File: tests/integration/__init__.py
Last updated: 2026-10-18

Purpose
- Test package marker for subprocess-level CLI tests.
"""
