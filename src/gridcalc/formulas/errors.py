"""Computed-value errors and structural exceptions for formulas and sheets."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from gridcalc.position import Position


class Category(str, Enum):
    REF = "ref"
    VALUE = "value"
    DIV0 = "div0"


_CATEGORY_CODES: dict[Category, str] = {
    Category.REF: "#REF!",
    Category.VALUE: "#VALUE!",
    Category.DIV0: "#DIV/0!",
}


@dataclass(frozen=True)
class FormulaError:
    """A categorical computation error, carried as an ordinary value.

    Two errors are equal when their categories are equal; ``detail`` is
    diagnostic text only and takes no part in comparison or hashing.

    Attributes:
        category: One of ``Category.REF``, ``Category.VALUE``, ``Category.DIV0``.
        detail: Optional human-readable cause.
    """

    category: Category
    detail: str = field(default="", compare=False)

    def get_category(self) -> Category:
        return self.category

    def to_string(self) -> str:
        """Return ``#REF!``, ``#VALUE!`` or ``#DIV/0!``; unknown categories give ``""``."""
        return _CATEGORY_CODES.get(self.category, "")

    def __str__(self) -> str:
        return self.to_string()


# A cell value: a number, a text, or a computed error.
Value = Union[float, str, FormulaError]


# ---------------------------------------------------------------------------
# Structural faults
# ---------------------------------------------------------------------------


class GridError(Exception):
    """Base class for faults that abort a sheet or formula operation."""


class InvalidPositionError(GridError):
    """A position outside the grid bounds was passed to a sheet API.

    Attributes:
        position: The offending position.
    """

    def __init__(self, position: Position) -> None:
        self.position = position
        super().__init__(f"Invalid position: ({position.row}, {position.col})")


class FormulaSyntaxError(GridError):
    """Formula text could not be parsed.

    The underlying parser error is chained as ``__cause__``.

    Attributes:
        expression: The text that failed to parse.
    """

    def __init__(self, message: str, expression: str = "") -> None:
        self.expression = expression
        super().__init__(f"Formula parse error: {message}")


class CircularDependencyError(GridError):
    """A write was rejected because it would close a reference cycle.

    Attributes:
        cycle_path: Positions along the cycle, starting and ending at the
            cell being written.
    """

    def __init__(self, cycle_path: list[Position]) -> None:
        self.cycle_path = cycle_path
        parts = [p.to_string() for p in cycle_path]
        super().__init__(f"Circular cell reference: {' -> '.join(parts)}")
