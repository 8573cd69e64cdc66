"""gridcalc -- formula evaluation and cell storage for a grid calculator."""

from gridcalc.cell import Cell
from gridcalc.formulas import (
    Category,
    CircularDependencyError,
    Formula,
    FormulaError,
    FormulaSyntaxError,
    GridError,
    InvalidPositionError,
    Value,
    parse_formula,
)
from gridcalc.position import MAX_COLS, MAX_ROWS, Position, Size
from gridcalc.sheet import Sheet, create_sheet

__version__ = "0.1.0"

__all__ = [
    "MAX_COLS",
    "MAX_ROWS",
    "Category",
    "Cell",
    "CircularDependencyError",
    "Formula",
    "FormulaError",
    "FormulaSyntaxError",
    "GridError",
    "InvalidPositionError",
    "Position",
    "Sheet",
    "Size",
    "Value",
    "create_sheet",
    "parse_formula",
]
