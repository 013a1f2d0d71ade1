"""Run configuration dataclass and loaders."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from relnotes.errors import ConfigError
from relnotes.providers.github import DEFAULT_API_URL
from relnotes.tools.line_split import LINE_TERMINATOR

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".relnotes.yml"

# Environment variable → config field
ENV_VARS: dict[str, str] = {
    "GH_TOKEN": "token",
    "RELNOTES_OWNER": "owner",
    "RELNOTES_REPO": "repo",
    "RELNOTES_DOCS_OWNER": "docs_owner",
    "RELNOTES_DOCS_REPO": "docs_repo",
    "RELNOTES_BASE_BRANCH": "base_branch",
    "RELNOTES_API_URL": "api_url",
}

TAG_ENV_VAR = "GH_RELEASE"

LINE_TERMINATORS: dict[str, str] = {"crlf": "\r\n", "lf": "\n"}


def parse_line_terminator(value: Any) -> str:
    """Map ``crlf`` / ``lf`` (or the literal terminators) to a terminator.

    Raises:
        ConfigError: anything else, including non-strings.
    """
    if isinstance(value, str):
        if value in LINE_TERMINATORS.values():
            return value
        terminator = LINE_TERMINATORS.get(value.lower())
        if terminator is not None:
            return terminator
    raise ConfigError(f"Unknown line terminator {value!r} (use crlf or lf)")


@dataclass
class RelnotesConfig:
    """Configuration for a release-notes run."""

    cwd: str = field(default_factory=lambda: str(Path.cwd()))
    owner: str = ""  # repository that publishes the releases
    repo: str = ""
    docs_owner: str = ""  # documentation repository receiving the PR
    docs_repo: str = ""
    base_branch: str = "master"
    remote: str = "origin"
    api_url: str = DEFAULT_API_URL
    token: str | None = None
    timeout: float = 30.0
    line_terminator: str = LINE_TERMINATOR
    packages: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.cwd = str(Path(self.cwd).resolve())
        self.line_terminator = parse_line_terminator(self.line_terminator)
        self.timeout = float(self.timeout)
        if not self.docs_owner:
            self.docs_owner = self.owner

    def missing_repositories(self) -> list[str]:
        """Names of the repository settings still unset."""
        names = ("owner", "repo", "docs_owner", "docs_repo")
        return [name for name in names if not getattr(self, name)]


def load_config(cwd: str) -> dict[str, Any] | None:
    """Load config from .relnotes.yml if it exists, else return None."""
    import yaml

    config_path = Path(cwd) / CONFIG_FILENAME
    if not config_path.exists():
        return None
    with config_path.open() as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid {CONFIG_FILENAME}: {e}") from e
    return data if isinstance(data, dict) else None


def resolve_config(cwd: str = ".", **overrides: Any) -> RelnotesConfig:
    """Build a ``RelnotesConfig``.

    Precedence: keyword overrides (CLI flags) > environment > .relnotes.yml.
    ``None`` overrides are ignored so unset flags fall through.
    """
    known = {f.name for f in fields(RelnotesConfig)} - {"cwd"}
    values: dict[str, Any] = {}

    for key, value in (load_config(cwd) or {}).items():
        if key in known:
            values[key] = value
        else:
            logger.warning("Ignoring unknown key '%s' in %s", key, CONFIG_FILENAME)

    for env_var, key in ENV_VARS.items():
        env_value = os.environ.get(env_var)
        if env_value:
            values[key] = env_value

    for key, value in overrides.items():
        if key not in known:
            raise TypeError(f"Unknown config option '{key}'")
        if value is not None:
            values[key] = value

    return RelnotesConfig(cwd=cwd, **values)


def default_tag() -> str | None:
    """The release tag from ``GH_RELEASE``, if set."""
    return os.environ.get(TAG_ENV_VAR) or None
