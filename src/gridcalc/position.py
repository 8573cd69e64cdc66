"""Grid coordinates and A1-style address conversion."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, NamedTuple

MAX_ROWS = 16384
MAX_COLS = 16384

# Column letters are capped at three (XFD is the last column at 16384).
_ADDR_RE = re.compile(r"^([A-Z]{1,3})([0-9]{1,5})$")


def col_letter_to_index(letters: str) -> int:
    """Convert column letter(s) to 0-based index.  A=0, B=1, ..., Z=25, AA=26."""
    idx = 0
    for ch in letters:
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def index_to_col_letter(idx: int) -> str:
    """Convert 0-based column index to letter(s).  0=A, 25=Z, 26=AA."""
    result = ""
    n = idx + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based (row, col) coordinate of a cell.

    Ordering is row-major.  ``Position.NONE`` is the sentinel for an
    address that could not be parsed or lies outside the grid.
    """

    row: int
    col: int

    NONE: ClassVar[Position]

    def is_valid(self) -> bool:
        return 0 <= self.row < MAX_ROWS and 0 <= self.col < MAX_COLS

    def to_string(self) -> str:
        """Render as an A1-style address, or ``""`` when invalid."""
        if not self.is_valid():
            return ""
        return f"{index_to_col_letter(self.col)}{self.row + 1}"

    def __str__(self) -> str:
        return self.to_string()

    @classmethod
    def from_string(cls, addr: str) -> Position:
        """Parse ``"B3"`` -> ``Position(row=2, col=1)``.

        Lowercase letters, missing parts and out-of-range coordinates all
        produce ``Position.NONE``.
        """
        m = _ADDR_RE.match(addr)
        if not m:
            return cls.NONE
        pos = cls(int(m.group(2)) - 1, col_letter_to_index(m.group(1)))
        if not pos.is_valid():
            return cls.NONE
        return pos


Position.NONE = Position(-1, -1)


class Size(NamedTuple):
    """Printable extent of a sheet."""

    rows: int
    cols: int
