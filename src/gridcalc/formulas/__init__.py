"""Arithmetic cell formulas: parsing, evaluation and error values.

Public API::

    from gridcalc.formulas import Formula, FormulaError, Category, parse_formula
"""

from gridcalc.formulas.errors import (
    Category,
    CircularDependencyError,
    FormulaError,
    FormulaSyntaxError,
    GridError,
    InvalidPositionError,
    Value,
)
from gridcalc.formulas.evaluator import execute
from gridcalc.formulas.formula import Formula, parse_formula, text_to_number
from gridcalc.formulas.parser import (
    extract_cells,
    parse_expression,
    render_expression,
)

__all__ = [
    "Category",
    "CircularDependencyError",
    "Formula",
    "FormulaError",
    "FormulaSyntaxError",
    "GridError",
    "InvalidPositionError",
    "Value",
    "execute",
    "extract_cells",
    "parse_expression",
    "parse_formula",
    "render_expression",
    "text_to_number",
]
