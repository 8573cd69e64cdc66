"""Formula objects: a parsed expression bound to nothing but its own tree."""

from __future__ import annotations

import math
import re
from typing import TYPE_CHECKING, Protocol

from lark import Tree

from gridcalc.formulas.errors import Category, FormulaError, Value
from gridcalc.formulas.evaluator import Result, execute
from gridcalc.formulas.parser import extract_cells, parse_expression, render_expression
from gridcalc.position import Position

if TYPE_CHECKING:
    from gridcalc.cell import Cell


class SheetView(Protocol):
    """What a formula needs from a sheet while it evaluates."""

    def get_cell(self, pos: Position) -> Cell | None:
        ...


# Whole-string double: optional leading space and sign, digits with an
# optional fraction, optional exponent, nothing after.
_NUMBER_RE = re.compile(r"\s*[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def text_to_number(text: str) -> Result:
    """Coerce a text cell value to a number.

    ``""`` is 0; anything that is not entirely a decimal number is a
    ``#VALUE!`` error.
    """
    if not text:
        return 0.0
    if not _NUMBER_RE.fullmatch(text):
        return FormulaError(Category.VALUE, f"not a number: {text!r}")
    number = float(text)
    # Out-of-range text such as "1e999" is not a number either.
    if not math.isfinite(number):
        return FormulaError(Category.VALUE, f"number out of range: {text!r}")
    return number


class Formula:
    """A parsed arithmetic expression.

    The tree is built once in the constructor and never changes.  Nothing
    is cached between ``evaluate`` calls; the sheet passed in is read at
    call time.

    Raises:
        FormulaSyntaxError: From the constructor, if ``expression`` does
            not parse.
    """

    def __init__(self, expression: str) -> None:
        self._tree: Tree = parse_expression(expression)

    def evaluate(self, sheet: SheetView) -> Value:
        """Compute the formula against ``sheet``.

        Always returns a value; reference and arithmetic problems come
        back as a :class:`FormulaError`.

        The caller must guarantee that no reference cycle reaches this
        formula.  :class:`gridcalc.sheet.Sheet` rejects cycle-closing
        writes, so formulas stored in a sheet satisfy this.
        """

        def resolve(pos: Position) -> Result:
            if not pos.is_valid():
                return FormulaError(Category.REF, "reference outside the grid")
            cell = sheet.get_cell(pos)
            if cell is None:
                return 0.0
            value = cell.get_value()
            if isinstance(value, FormulaError):
                return value
            if isinstance(value, str):
                return text_to_number(value)
            return float(value)

        try:
            return execute(self._tree, resolve)
        except Exception as exc:
            # Faults while resolving or computing become a value, never escape.
            return FormulaError(Category.VALUE, str(exc))

    def get_referenced_cells(self) -> list[Position]:
        """Valid referenced positions, each once, in order of first use."""
        valid = (pos for pos in extract_cells(self._tree) if pos.is_valid())
        return list(dict.fromkeys(valid))

    def get_expression(self) -> str:
        return render_expression(self._tree)

    def __repr__(self) -> str:
        return f"Formula({self.get_expression()!r})"


def parse_formula(expression: str) -> Formula:
    """Build a :class:`Formula` from expression text (no leading ``=``)."""
    return Formula(expression)
