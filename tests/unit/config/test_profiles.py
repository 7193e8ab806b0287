"""
vsix-manager — unit tests for profile overlays

File: tests/unit/config/test_profiles.py
Last updated: 2026-10-18

Purpose
- Validate per-field profile merging, fail-soft lookup, and idempotence.
"""

from __future__ import annotations

from typing import Any

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from vsix_manager.config.profiles import apply_profile, profile_names, select_profile
from vsix_manager.config.schema import (
    EDITOR_CHOICES,
    OUTPUT_FORMAT_CHOICES,
    SKIP_INSTALLED_CHOICES,
    FieldError,
)

_BASE: dict[str, Any] = {
    "version": "2.0",
    "editor": {"prefer": "cursor"},
    "performance": {"parallel-downloads": 3, "retry": 2},
    "output": {"format": "auto", "colors": True},
    "profiles": {
        "ci": {
            "performance": {"retry": 0},
            "output": {"format": "json"},
        },
        "dev": {"safety": {"check-compatibility": False}},
    },
}

_SECTION_OVERLAYS = st.fixed_dictionaries(
    {},
    optional={
        "editor": st.fixed_dictionaries({}, optional={"prefer": st.sampled_from(EDITOR_CHOICES)}),
        "performance": st.fixed_dictionaries(
            {},
            optional={
                "parallel-downloads": st.integers(min_value=1, max_value=10),
                "retry": st.integers(min_value=0, max_value=5),
            },
        ),
        "behavior": st.fixed_dictionaries(
            {}, optional={"skip-installed": st.sampled_from(SKIP_INSTALLED_CHOICES)}
        ),
        "output": st.fixed_dictionaries(
            {},
            optional={
                "format": st.sampled_from(OUTPUT_FORMAT_CHOICES),
                "colors": st.booleans(),
            },
        ),
    },
)


@pytest.mark.unit
def test_profile_merges_field_by_field() -> None:
    applied = apply_profile(_BASE, "ci")

    assert applied["performance"] == {"parallel-downloads": 3, "retry": 0}
    assert applied["output"] == {"format": "json", "colors": True}
    assert applied["editor"] == {"prefer": "cursor"}


@pytest.mark.unit
def test_profile_adds_sections_missing_from_base() -> None:
    applied = apply_profile(_BASE, "dev")

    assert applied["safety"] == {"check-compatibility": False}


@pytest.mark.unit
@pytest.mark.parametrize("name", [None, "", "   ", "staging"])
def test_absent_or_unknown_profile_returns_base(name: str | None) -> None:
    assert apply_profile(_BASE, name) == _BASE
    assert select_profile(_BASE, name).name is None


@pytest.mark.unit
def test_document_without_profiles_is_unchanged() -> None:
    document = {"performance": {"retry": 1}}

    assert apply_profile(document, "ci") == document


@pytest.mark.unit
def test_profile_names_are_sorted() -> None:
    assert profile_names(_BASE) == ("ci", "dev")
    assert profile_names({}) == ()


@pytest.mark.unit
def test_invalid_overlay_fields_are_reported_and_skipped() -> None:
    document = {
        "profiles": {
            "ci": {"performance": {"retry": 9, "parallel-downloads": 4}},
        }
    }

    selection = select_profile(document, "ci")

    assert selection.name == "ci"
    assert selection.overlay == {"performance": {"parallel-downloads": 4}}
    assert selection.issues == (FieldError("profiles.ci.performance.retry", "must be <= 5"),)


@pytest.mark.unit
def test_overlay_cannot_switch_profiles() -> None:
    document = {
        "active-profile": "ci",
        "profiles": {
            "ci": {
                "active-profile": "dev",
                "profiles": {"dev": {"output": {"format": "table"}}},
                "output": {"format": "json"},
            }
        },
    }

    applied = apply_profile(document, "ci")

    assert applied["active-profile"] == "ci"
    assert applied["profiles"] == document["profiles"]
    assert applied["output"] == {"format": "json"}


@pytest.mark.unit
@given(base=_SECTION_OVERLAYS, overlay=_SECTION_OVERLAYS)
@settings(max_examples=50, deadline=None, derandomize=True)
def test_applying_a_profile_twice_equals_applying_once(
    base: dict[str, Any], overlay: dict[str, Any]
) -> None:
    document = {**base, "profiles": {"p": overlay}}

    once = apply_profile(document, "p")
    twice = apply_profile(once, "p")

    assert twice == once
    for section, values in overlay.items():
        for key, value in values.items():
            assert once[section][key] == value
