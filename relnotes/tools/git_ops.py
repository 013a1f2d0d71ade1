"""Git integration — branch, stage, commit and push a changelog update."""

from __future__ import annotations

import asyncio
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from relnotes.errors import ShellCommandError

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 120


@dataclass
class GitResult:
    output: str
    error: str
    returncode: int


async def create_branch(cwd: str, branch: str) -> GitResult:
    """Create and switch to *branch* (``git checkout -b``)."""
    return await _run_git(["git", "checkout", "-b", branch], cwd)


async def stage_file(cwd: str, path: str | Path) -> GitResult:
    """Stage a single file."""
    return await _run_git(["git", "add", "--", str(path)], cwd)


async def commit(cwd: str, message: str) -> GitResult:
    """Commit the staged changes."""
    return await _run_git(["git", "commit", "-m", message], cwd)


async def push_branch(cwd: str, branch: str, remote: str = "origin") -> GitResult:
    """Push *branch* to *remote* and set it as upstream."""
    return await _run_git(["git", "push", "-u", remote, branch], cwd)


async def commit_and_push(
    cwd: str,
    path: str | Path,
    branch: str,
    message: str,
    remote: str = "origin",
) -> str:
    """Commit *path* on a new *branch* and push it.

    Args:
        cwd: Root of the documentation checkout.
        path: The changed file, relative to *cwd* or absolute.
        branch: New branch name, usually the release tag.
        message: Commit message.
        remote: Remote to push to.

    Returns:
        The pushed branch name.

    Raises:
        ShellCommandError: Any git command failed; later commands are not run.
    """
    await create_branch(cwd, branch)
    await stage_file(cwd, path)
    await commit(cwd, message)
    await push_branch(cwd, branch, remote)
    logger.info("Pushed branch %s to %s", branch, remote)
    return branch


async def _run_git(cmd: list[str], cwd: str) -> GitResult:
    """Execute a git command asynchronously; raise on failure."""

    def _run() -> GitResult:
        try:
            proc = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT_SECONDS,
            )
        except FileNotFoundError as e:
            raise ShellCommandError(cmd, None, "git not installed") from e
        except subprocess.TimeoutExpired as e:
            raise ShellCommandError(cmd, None, "git command timed out") from e
        return GitResult(output=proc.stdout, error=proc.stderr, returncode=proc.returncode)

    logger.debug("Running %s in %s", " ".join(cmd), cwd)
    result = await asyncio.get_event_loop().run_in_executor(None, _run)
    if result.returncode != 0:
        raise ShellCommandError(cmd, result.returncode, result.error or result.output)
    return result
