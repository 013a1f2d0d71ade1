"""File and version-control primitives."""

from relnotes.tools.line_insert import InsertPhase, insert_into_line, insert_lines
from relnotes.tools.line_split import (
    LINE_TERMINATOR,
    InsertionRequest,
    SplitResult,
    split_artifacts,
    split_file,
    split_lines,
)

__all__ = [
    "LINE_TERMINATOR",
    "InsertPhase",
    "InsertionRequest",
    "SplitResult",
    "insert_into_line",
    "insert_lines",
    "split_artifacts",
    "split_file",
    "split_lines",
]
