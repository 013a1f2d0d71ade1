"""Package → changelog lookup table and release-tag parsing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from relnotes.errors import PackageNotFoundError

# Every changelog starts with a fixed 8-line header; new entries go right after it.
DEFAULT_CHANGELOG_LINE = 9

TAG_VERSION_SEPARATOR = "_v"

CHANGELOG_PATHS: dict[str, str] = {
    "admin-portal": "changelogs/admin-portal.md",
    "aml-checklist": "changelogs/aml-checklist.md",
    "cognito-auth": "changelogs/cognito-auth.md",
    "connect-session": "changelogs/connect-session.md",
    "deploy-slack-bot": "changelogs/deploy-slack-bot.md",
    "developer-portal": "changelogs/developer-portal.md",
    "elements": "changelogs/elements.md",
    "foundations-ts-definitions": "changelogs/foundations-ts-definitions.md",
    "geo-diary": "changelogs/geo-diary.md",
    "lifetime-legal": "changelogs/lifetime-legal.md",
    "marketplace": "changelogs/marketplace.md",
    "react-app-scaffolder": "changelogs/react-app-scaffolder.md",
    "smb-onboarder": "changelogs/smb-onboarder.md",
    "web-components": "changelogs/web-components.md",
}


@dataclass(frozen=True)
class ChangelogTarget:
    """Where a package's release notes are inserted."""

    package: str
    path: str
    line: int = DEFAULT_CHANGELOG_LINE


@dataclass(frozen=True)
class ReleaseTag:
    """A release tag of the form ``<package>_v<version>``."""

    tag: str
    package: str
    version: str


def parse_release_tag(tag: str) -> ReleaseTag:
    """Split *tag* on its last ``_v``.

    >>> parse_release_tag("foundations-ts-definitions_v0.0.75").package
    'foundations-ts-definitions'
    """
    package, sep, version = tag.strip().rpartition(TAG_VERSION_SEPARATOR)
    if not sep or not package or not version:
        raise ValueError(f"Malformed release tag '{tag}': expected '<package>_v<version>'")
    return ReleaseTag(tag=tag.strip(), package=package, version=version)


def _target_from_override(package: str, value: Any) -> ChangelogTarget:
    if isinstance(value, str):
        return ChangelogTarget(package, value)
    if isinstance(value, dict) and "path" in value:
        line = int(value.get("line", DEFAULT_CHANGELOG_LINE))
        if line < 1:
            raise ValueError(f"Changelog line for '{package}' must be >= 1, got {line}")
        return ChangelogTarget(package, str(value["path"]), line)
    raise ValueError(f"Invalid changelog entry for '{package}': {value!r}")


def list_changelogs(overrides: dict[str, Any] | None = None) -> list[ChangelogTarget]:
    """All known targets, configured overrides winning over the built-in table."""
    targets = {name: ChangelogTarget(name, path) for name, path in CHANGELOG_PATHS.items()}
    for name, value in (overrides or {}).items():
        targets[name] = _target_from_override(name, value)
    return [targets[name] for name in sorted(targets)]


def lookup_changelog(
    package: str,
    overrides: dict[str, Any] | None = None,
) -> ChangelogTarget:
    """Return the changelog target for *package*.

    *overrides* is the ``packages`` section of ``.relnotes.yml``; values are
    either a path or a ``{path, line}`` mapping.

    Raises:
        PackageNotFoundError: *package* is not registered.
    """
    if overrides and package in overrides:
        return _target_from_override(package, overrides[package])
    path = CHANGELOG_PATHS.get(package)
    if path is None:
        raise PackageNotFoundError(package)
    return ChangelogTarget(package, path)


def resolve_target(name: str, overrides: dict[str, Any] | None = None) -> ChangelogTarget:
    """Look up *name* as a package, falling back to parsing it as a release tag."""
    try:
        return lookup_changelog(name, overrides)
    except PackageNotFoundError:
        if TAG_VERSION_SEPARATOR not in name:
            raise
    return lookup_changelog(parse_release_tag(name).package, overrides)
