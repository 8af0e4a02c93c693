"""Line/column lookup for byte offsets in a datalist document."""

from __future__ import annotations

from bisect import bisect_right
from typing import Final


class LineIndex:
    """Maps byte offsets to 1-based line and column numbers.

    Newline offsets are collected once so every lookup after that is a
    binary search instead of a rescan of the document prefix.
    """

    def __init__(self, data: bytes) -> None:
        """Initialize the index for ``data``.

        Args:
            data: The document bytes, without any lexer sentinel
        """
        self.data: Final = data
        self.line_starts: list[int] = [0]

        self._build_line_starts()

    def _build_line_starts(self) -> None:
        """Record the offset following every LF byte."""
        find = self.data.find
        newline = find(b"\n")
        while newline != -1:
            self.line_starts.append(newline + 1)
            newline = find(b"\n", newline + 1)

    @property
    def line_count(self) -> int:
        return len(self.line_starts)

    def locate(self, pos: int) -> tuple[int, int]:
        """Convert a byte offset to a ``(lineno, colno)`` pair.

        Args:
            pos: Byte offset into the document; offsets past the end are
                reported on the last line

        Returns:
            Line number (LF bytes before ``pos`` plus one) and byte column,
            both 1-based
        """
        lineno = bisect_right(self.line_starts, pos)
        return lineno, pos - self.line_starts[lineno - 1] + 1
