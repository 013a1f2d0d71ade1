"""Format release metadata into changelog entries and PR text."""

from __future__ import annotations

import re

from relnotes.packages import ChangelogTarget
from relnotes.providers.github import Release
from relnotes.tools.line_split import LINE_TERMINATOR

EMPTY_BODY = "_No release notes provided._"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def format_release_notes(release: Release, newline: str = LINE_TERMINATOR) -> str:
    """Render *release* as a changelog block.

    The block is a heading line, the release body and a blank separator
    line. It carries no trailing terminator; the inserter adds one.
    """
    heading = f"## {release.name or release.tag}"
    if release.published_at is not None:
        heading += f" - {release.published_at.strftime('%Y-%m-%d')}"

    body = release.body.strip("\r\n")
    if not body.strip():
        body = EMPTY_BODY
    lines = [heading, *_LINE_BREAK.split(body), ""]
    return newline.join(lines)


def format_pr_title(tag: str) -> str:
    return f"docs: release notes for {tag}"


def format_pr_body(release: Release, target: ChangelogTarget) -> str:
    lines = [
        f"Adds the release notes for `{release.tag}` to `{target.path}`.",
        "",
    ]
    if release.html_url:
        lines.append(f"Release: {release.html_url}")
    if release.published_at is not None:
        lines.append(f"Published: {release.published_at.isoformat()}")
    return "\n".join(lines).rstrip() + "\n"
