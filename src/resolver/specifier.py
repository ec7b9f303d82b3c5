"""Parsing of import specifiers and semver ranges."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import semantic_version

from common.errors import ValidationError
from constants import Constants

# /@scope/name[/rest] and /name[/rest], leading slash optional
_SCOPED_PATTERN = re.compile(r"^/?(@[^/]+/[^/]+)(?:/(.*))?$")
_UNSCOPED_PATTERN = re.compile(r"^/?([^/@][^/]*)(?:/(.*))?$")


class ResolutionMode(Enum):
    """How a semver string is interpreted by the CDN."""

    EXACT = "exact"
    RANGE = "range"
    LATEST = "latest"


@dataclass(frozen=True)
class SpecifierParts:
    """A specifier split into package name and sub-path."""

    package_name: str
    sub_path: Optional[str] = None


@dataclass(frozen=True)
class VersionSpec:
    """A semver string and how it will be resolved."""

    raw: str
    mode: ResolutionMode


def parse_specifier(specifier: str) -> SpecifierParts:
    """Split an import specifier into ``(package_name, sub_path)``.

    ``@scope/name/a/b`` -> (``@scope/name``, ``a/b``)
    ``name/a/b`` -> (``name``, ``a/b``)

    Raises:
        ValidationError: The specifier is empty or malformed.
    """
    raw = (specifier or "").strip()
    pattern = _SCOPED_PATTERN if raw.startswith(("@", "/@")) else _UNSCOPED_PATTERN
    match = pattern.match(raw)
    if not match:
        raise ValidationError(f"Invalid package specifier: {specifier!r}", specifier)
    sub_path = match.group(2) or None
    return SpecifierParts(package_name=match.group(1), sub_path=sub_path)


def classify_semver(semver: str) -> VersionSpec:
    """Classify a semver string as an exact version, a range or ``latest``."""
    raw = (semver or "").strip()
    if raw == Constants.LATEST:
        return VersionSpec(raw=raw, mode=ResolutionMode.LATEST)
    if semantic_version.validate(raw):
        return VersionSpec(raw=raw, mode=ResolutionMode.EXACT)
    return VersionSpec(raw=raw, mode=ResolutionMode.RANGE)


def validate_semver(specifier: str, semver: str) -> VersionSpec:
    """Reject semver strings the CDN lookup cannot serve.

    Raises:
        ValidationError: Deprecated workaround package, or a complex range
            (anything containing a space or a colon).
    """
    if semver.startswith(Constants.DEPRECATED_SEMVER_PREFIXES):
        raise ValidationError(
            f"{specifier}: React workaround packages are no longer needed. "
            "Revert to the official React & React-DOM packages.",
            specifier,
        )
    if " " in semver or ":" in semver:
        raise ValidationError(
            f"{specifier}: Can't fetch complex semver \"{semver}\" from remote CDN.",
            specifier,
        )
    return classify_semver(semver)


def build_lookup_path(specifier: str, semver: str) -> str:
    """Build the CDN lookup path ``/{package}@{semver}[/{sub_path}]``."""
    parts = parse_specifier(specifier)
    path = f"/{parts.package_name}@{semver}"
    if parts.sub_path:
        path = f"{path}/{parts.sub_path}"
    return path
