"""Cell contents: empty, plain text, or a formula with a cached result."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gridcalc.formulas.errors import Value
from gridcalc.formulas.formula import Formula
from gridcalc.position import Position

if TYPE_CHECKING:
    from gridcalc.sheet import Sheet

FORMULA_SIGN = "="
ESCAPE_SIGN = "'"


class _EmptyContent:
    def text(self) -> str:
        return ""

    def value(self, sheet: Sheet) -> Value:
        return ""

    def referenced_cells(self) -> list[Position]:
        return []


class _TextContent:
    def __init__(self, text: str) -> None:
        self._text = text

    def text(self) -> str:
        return self._text

    def value(self, sheet: Sheet) -> Value:
        if self._text.startswith(ESCAPE_SIGN):
            return self._text[1:]
        return self._text

    def referenced_cells(self) -> list[Position]:
        return []


class _FormulaContent:
    def __init__(self, expression: str) -> None:
        self._formula = Formula(expression)

    def text(self) -> str:
        return FORMULA_SIGN + self._formula.get_expression()

    def value(self, sheet: Sheet) -> Value:
        return self._formula.evaluate(sheet)

    def referenced_cells(self) -> list[Position]:
        return self._formula.get_referenced_cells()


def _make_content(text: str) -> _EmptyContent | _TextContent | _FormulaContent:
    if not text:
        return _EmptyContent()
    if text.startswith(FORMULA_SIGN) and len(text) > 1:
        return _FormulaContent(text[1:])
    return _TextContent(text)


class Cell:
    """One slot of a :class:`~gridcalc.sheet.Sheet`.

    Text starting with ``=`` (and longer than the sign alone) is a formula;
    a leading ``'`` escapes text that would otherwise look like one.  A
    formula's value is computed on first read and kept until the cell or
    one of its precedents changes.
    """

    def __init__(self, sheet: Sheet, position: Position) -> None:
        self._sheet = sheet
        self._position = position
        self._content: _EmptyContent | _TextContent | _FormulaContent = _EmptyContent()
        self._cache: Value | None = None

    @property
    def position(self) -> Position:
        return self._position

    def set(self, text: str) -> None:
        """Replace the content.

        Raises:
            FormulaSyntaxError: ``text`` is a formula that does not parse.
            CircularDependencyError: The formula would read itself,
                directly or through other cells.

        On either error the cell and the sheet's reference graph are left
        as they were.
        """
        if text == self.get_text():
            return
        content = _make_content(text)
        refs = content.referenced_cells()
        graph = self._sheet.dependencies
        graph.ensure_acyclic(self._position, refs)

        self._content = content
        dropped = graph.set_precedents(self._position, refs)
        self._sheet.invalidate(self._position)
        self._sheet.release_unused(dropped)

    def clear(self) -> None:
        self.set("")

    def get_value(self) -> Value:
        if self._cache is None:
            self._cache = self._content.value(self._sheet)
        return self._cache

    def get_text(self) -> str:
        return self._content.text()

    def get_referenced_cells(self) -> list[Position]:
        return self._content.referenced_cells()

    def is_referenced(self) -> bool:
        """True while at least one other cell's formula reads this one."""
        return self._sheet.dependencies.has_dependents(self._position)

    def invalidate_cache(self) -> None:
        self._cache = None

    def __repr__(self) -> str:
        return f"Cell({self._position.to_string()!r}, {self.get_text()!r})"
