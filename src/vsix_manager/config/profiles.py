"""Named profile overlays declared inside a config document."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from vsix_manager.config.schema import FieldError, merge_sections, validate_partial

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProfileSelection:
    """Outcome of looking up a profile: ``name`` is ``None`` when nothing applies."""

    name: str | None
    overlay: dict[str, Any]
    issues: tuple[FieldError, ...] = ()


def profile_names(document: Mapping[str, object]) -> tuple[str, ...]:
    profiles = document.get("profiles")
    if not isinstance(profiles, Mapping):
        return ()
    return tuple(sorted(name for name in profiles if isinstance(name, str)))


def select_profile(document: Mapping[str, object], profile_name: str | None) -> ProfileSelection:
    """Find and validate the overlay for ``profile_name``.

    An absent, blank or undeclared name is not an error: the selection is
    empty and the base document stays in effect. Invalid overlay fields are
    returned as issues under ``profiles.<name>``.
    """

    if profile_name is None or not profile_name.strip():
        return ProfileSelection(name=None, overlay={})
    selected = profile_name.strip()

    profiles = document.get("profiles")
    if not isinstance(profiles, Mapping) or selected not in profiles:
        logger.debug("profile %r is not declared; using base configuration", selected)
        return ProfileSelection(name=None, overlay={})

    overlay, issues = validate_partial(profiles[selected], path=f"profiles.{selected}")
    return ProfileSelection(name=selected, overlay=overlay, issues=issues)


def apply_profile(document: Mapping[str, object], profile_name: str | None) -> dict[str, Any]:
    """Return ``document`` with the named profile merged over its sections.

    The merge is per field and one level deep. Sections the overlay does not
    mention pass through. Applying the same profile again changes nothing.
    """

    selection = select_profile(document, profile_name)
    return merge_sections(document, selection.overlay)


__all__ = ["ProfileSelection", "apply_profile", "profile_names", "select_profile"]
