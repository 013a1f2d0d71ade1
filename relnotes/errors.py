"""Error types raised by relnotes collaborators."""

from __future__ import annotations


class RelnotesError(Exception):
    """Base class for relnotes errors."""


class ExternalServiceError(RelnotesError):
    """The release-metadata or pull-request API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ShellCommandError(RelnotesError):
    """A version-control shell command exited unsuccessfully."""

    def __init__(self, cmd: list[str], returncode: int | None, stderr: str = "") -> None:
        self.cmd = cmd
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or "no output"
        super().__init__(f"`{' '.join(cmd)}` failed (exit {returncode}): {detail}")


class PackageNotFoundError(RelnotesError, LookupError):
    """No changelog is registered for a package name."""

    def __init__(self, package: str) -> None:
        super().__init__(f"No changelog registered for package '{package}'")
        self.package = package


class ConfigError(RelnotesError, ValueError):
    """.relnotes.yml or a configuration value is invalid."""
