"""Insert a block of text before a given line of a file, streaming.

The file is split into head/tail artifacts, then head, the new block, and
tail are copied back over the original path in that order.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Callable
from enum import StrEnum
from pathlib import Path

from relnotes.tools.line_split import LINE_TERMINATOR, InsertionRequest, split_artifacts

logger = logging.getLogger(__name__)


class InsertPhase(StrEnum):
    """Progress of a single insertion."""

    WRITING_HEAD = "writing_head"
    WRITING_CONTENT = "writing_content"
    WRITING_TAIL = "writing_tail"
    DONE = "done"
    FAILED = "failed"


PhaseCallback = Callable[[InsertPhase], None]


def _ignore_phase(phase: InsertPhase) -> None:
    pass


def insert_lines(
    path: str | Path,
    line: int,
    content: str,
    *,
    newline: str = LINE_TERMINATOR,
    on_phase: PhaseCallback | None = None,
) -> Path:
    """Insert *content* immediately before 1-indexed *line* of *path*.

    - ``line == 1``: *content* is prepended.
    - ``line`` past the last line: *content* is appended.
    - Otherwise the original line *line* follows *content*.

    *content* is written verbatim followed by one *newline*; every original
    line keeps its text with its terminator normalised to *newline*.
    The destination is overwritten in place and the temporary artifacts are
    removed afterwards. If the write fails after the destination has been
    truncated the artifacts are kept, and their paths logged, since they
    then hold the only copy of the original lines.

    Args:
        on_phase: Called with each ``InsertPhase`` as the write progresses,
            including ``FAILED`` before an error propagates.

    Returns:
        The rewritten path.
    """
    request = InsertionRequest(Path(path), line, content)
    notify = on_phase or _ignore_phase
    block = (request.content + newline).encode("utf-8", errors="surrogateescape")

    with split_artifacts(request.path, request.line, newline=newline) as split:
        phase = InsertPhase.WRITING_HEAD
        truncated = False
        try:
            with (
                split.head_path.open("rb") as head,
                split.tail_path.open("rb") as tail,
                request.path.open("wb") as dest,
            ):
                truncated = True
                notify(phase)
                shutil.copyfileobj(head, dest)

                phase = InsertPhase.WRITING_CONTENT
                notify(phase)
                dest.write(block)

                phase = InsertPhase.WRITING_TAIL
                notify(phase)
                shutil.copyfileobj(tail, dest)
        except BaseException:
            logger.error("Insertion into %s failed during %s", request.path, phase)
            if truncated:
                split.preserved = True
                logger.error(
                    "Original content of %s kept in %s (head) and %s (tail)",
                    request.path,
                    split.head_path,
                    split.tail_path,
                )
            notify(InsertPhase.FAILED)
            raise

    notify(InsertPhase.DONE)
    logger.info("Inserted %d chars before line %d of %s", len(content), line, request.path)
    return request.path


async def insert_into_line(
    path: str | Path,
    line: int,
    content: str,
    newline: str = LINE_TERMINATOR,
) -> Path:
    """Async ``insert_lines``, run in the default executor."""

    def _insert() -> Path:
        return insert_lines(path, line, content, newline=newline)

    return await asyncio.get_event_loop().run_in_executor(None, _insert)
