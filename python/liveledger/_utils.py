"""A1 reference helpers: column letters, cell references and ranges.

Rows and columns are 0-based everywhere in liveledger; only the textual
form is 1-based (``rowcol_to_a1(0, 0) == "A1"``).
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

_A1_RE = re.compile(r"^\s*([A-Za-z]+)([0-9]+)\s*$")


def column_letter(index: int) -> str:
    """1-based column index to letters: 1 -> A, 26 -> Z, 27 -> AA."""
    if index < 1:
        raise ValueError(f"Column index must be >= 1, got {index}")
    letters = ""
    while index > 0:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def column_index(letters: str) -> int:
    """Column letters to a 1-based index: A -> 1, Z -> 26, AA -> 27."""
    if not letters or not letters.isalpha() or not letters.isascii():
        raise ValueError(f"Invalid column letters: {letters!r}")
    n = 0
    for ch in letters.upper():
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n


def rowcol_to_a1(row: int, col: int) -> str:
    """0-based (row, col) to an A1 reference string."""
    if row < 0 or col < 0:
        raise ValueError(f"Row and column must be >= 0, got ({row}, {col})")
    return f"{column_letter(col + 1)}{row + 1}"


def parse_a1(ref: str) -> tuple[int, int] | None:
    """Decode an A1 reference to 0-based (row, col), or None if malformed.

    Leading letters are the column (case-insensitive), followed by the row
    digits.  Surrounding whitespace is allowed; anything else is not.
    """
    m = _A1_RE.match(ref)
    if not m:
        return None
    row = int(m.group(2)) - 1
    col = column_index(m.group(1)) - 1
    return (row, col)


def a1_to_rowcol(ref: str) -> tuple[int, int]:
    """Like :func:`parse_a1` but raises ``ValueError`` on malformed input."""
    result = parse_a1(ref)
    if result is None:
        raise ValueError(f"Invalid A1 reference: {ref!r}")
    return result


@dataclass(frozen=True)
class CellRange:
    """A normalized rectangle of cells (inclusive bounds, 0-based)."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int

    @classmethod
    def from_corners(cls, r1: int, c1: int, r2: int, c2: int) -> CellRange:
        return cls(min(r1, r2), min(c1, c2), max(r1, r2), max(c1, c2))

    @property
    def n_rows(self) -> int:
        return self.end_row - self.start_row + 1

    @property
    def n_cols(self) -> int:
        return self.end_col - self.start_col + 1

    def __contains__(self, pos: object) -> bool:
        if not isinstance(pos, tuple) or len(pos) != 2:
            return False
        row, col = pos
        return (self.start_row <= row <= self.end_row
                and self.start_col <= col <= self.end_col)

    def cells(self) -> Iterator[tuple[int, int]]:
        """Yield every (row, col) in row-major order."""
        for r in range(self.start_row, self.end_row + 1):
            for c in range(self.start_col, self.end_col + 1):
                yield (r, c)

    def to_a1(self) -> str:
        return (f"{rowcol_to_a1(self.start_row, self.start_col)}:"
                f"{rowcol_to_a1(self.end_row, self.end_col)}")


def parse_range(text: str) -> CellRange | None:
    """Parse ``"A1:B5"`` into a normalized :class:`CellRange`.

    Exactly one colon is required and both endpoints must decode on their
    own.  Returns None otherwise.
    """
    parts = text.split(":")
    if len(parts) != 2:
        return None
    start = parse_a1(parts[0])
    end = parse_a1(parts[1])
    if start is None or end is None:
        return None
    return CellRange.from_corners(start[0], start[1], end[0], end[1])
