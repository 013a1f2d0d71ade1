"""Split a file into head/tail temporary artifacts around a line number.

The source is streamed one line at a time, so files of any size can be
split without being held in memory.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import IO

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\r\n"

# Round-trips bytes that are not valid UTF-8 unchanged.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


@dataclass
class InsertionRequest:
    """Insert *content* immediately before 1-indexed *line* of *path*."""

    path: Path
    line: int
    content: str

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        if self.line < 1:
            raise ValueError(f"Line numbers are 1-indexed, got {self.line}")


@dataclass
class SplitResult:
    """Temporary files holding the lines before / at-and-after the split line."""

    head_path: Path
    tail_path: Path
    # Set once the artifacts hold the only copy of the original content.
    preserved: bool = False

    def paths(self) -> tuple[Path, Path]:
        return self.head_path, self.tail_path

    def cleanup(self) -> None:
        """Delete both artifacts. Failures are logged, never raised."""
        _discard(list(self.paths()))


def _discard(paths: list[Path]) -> None:
    for p in paths:
        try:
            p.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove temporary file %s: %s", p, e)


def _open_artifact(source: Path, suffix: str, created: list[Path]) -> IO[str]:
    """Create a uniquely named artifact next to *source* and open it for writing."""
    fd, name = tempfile.mkstemp(prefix=f".{source.name}-", suffix=suffix, dir=source.parent)
    created.append(Path(name))
    return open(fd, "w", encoding=_ENCODING, errors=_ERRORS, newline="")


def split_lines(path: str | Path, line: int, *, newline: str = LINE_TERMINATOR) -> SplitResult:
    """Partition *path* into a head artifact (lines ``< line``) and a tail artifact.

    Line terminators are normalised to *newline* on write. A *line* of 1
    yields an empty head; a *line* past the end of the file yields an
    empty tail. The source is left untouched.

    Raises:
        ValueError: ``line < 1``.
        FileNotFoundError: *path* does not exist.
        IsADirectoryError: *path* is a directory.
        OSError: the source cannot be read or an artifact cannot be written.
    """
    if line < 1:
        raise ValueError(f"Line numbers are 1-indexed, got {line}")
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"File not found: {source}")
    if not source.is_file():
        raise IsADirectoryError(f"Path is a directory: {source}")

    created: list[Path] = []
    try:
        with contextlib.ExitStack() as stack:
            src = stack.enter_context(source.open(encoding=_ENCODING, errors=_ERRORS))
            head = stack.enter_context(_open_artifact(source, "-head", created))
            tail = stack.enter_context(_open_artifact(source, "-tail", created))

            for count, text in enumerate(src, start=1):
                if text.endswith("\n"):
                    text = text[:-1]
                target = head if count < line else tail
                target.write(text + newline)
    except BaseException:
        _discard(created)
        raise

    result = SplitResult(head_path=created[0], tail_path=created[1])
    logger.debug("Wrote temporary head content to: %s", result.head_path)
    logger.debug("Wrote temporary tail content to: %s", result.tail_path)
    return result


@contextlib.contextmanager
def split_artifacts(
    path: str | Path,
    line: int,
    *,
    newline: str = LINE_TERMINATOR,
) -> Iterator[SplitResult]:
    """Split *path* and delete the artifacts on exit unless marked ``preserved``."""
    result = split_lines(path, line, newline=newline)
    try:
        yield result
    finally:
        if not result.preserved:
            result.cleanup()


async def split_file(path: str | Path, line: int, newline: str = LINE_TERMINATOR) -> SplitResult:
    """Async ``split_lines``. The caller owns the returned artifacts."""

    def _split() -> SplitResult:
        return split_lines(path, line, newline=newline)

    return await asyncio.get_event_loop().run_in_executor(None, _split)
