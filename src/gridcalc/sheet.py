"""Position-indexed cell storage with reference-gated removal and text rendering."""

from __future__ import annotations

import io
import logging
from typing import Any, Iterable, TextIO

from gridcalc.cell import Cell
from gridcalc.config import DEFAULT_CONFIG
from gridcalc.dependencies import DependencyGraph
from gridcalc.formulas.errors import (
    CircularDependencyError,
    FormulaError,
    FormulaSyntaxError,
    InvalidPositionError,
    Value,
)
from gridcalc.logging.events import (
    CIRCULAR_REFERENCE,
    FORMULA_SYNTAX,
    POSITION_OUT_OF_RANGE,
    EventType,
    emit_info,
    emit_warning,
)
from gridcalc.position import Position, Size

logger = logging.getLogger(__name__)


class Sheet:
    """A grid of cells addressed by :class:`~gridcalc.position.Position`.

    Cells are created on first write.  Clearing empties a cell in place;
    the slot itself is dropped only when no other formula reads it, so a
    dependent formula keeps resolving the position (to 0) instead of
    finding a hole.

    Usage::

        sheet = Sheet()
        sheet.set_cell(Position.from_string("A1"), "2")
        sheet.set_cell(Position.from_string("B1"), "=A1*3")
        sheet.get_cell(Position.from_string("B1")).get_value()  # 6.0

    Parameters
    ----------
    config : dict[str, Any] | None
        Project configuration (see :mod:`gridcalc.config`).  Only
        ``value_precision`` is read here.
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        cfg = dict(DEFAULT_CONFIG)
        cfg.update(config or {})
        self._precision = int(cfg["value_precision"])
        self._cells: dict[Position, Cell] = {}
        self.dependencies = DependencyGraph()

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def set_cell(self, pos: Position, text: str) -> None:
        """Write ``text`` into the cell at ``pos``, creating it if needed.

        Raises:
            InvalidPositionError: ``pos`` is outside the grid.
            FormulaSyntaxError: ``text`` is a formula that does not parse.
            CircularDependencyError: The formula would read itself.
        """
        self._check_position(pos)
        cell = self._cells.get(pos)
        created = cell is None
        if cell is None:
            cell = Cell(self, pos)
            self._cells[pos] = cell
        try:
            cell.set(text)
        except FormulaSyntaxError as exc:
            self._discard_new(pos, created)
            emit_warning(
                EventType.formula_syntax_error,
                str(exc),
                {"position": pos.to_string(), "text": text},
                error_code=FORMULA_SYNTAX,
            )
            raise
        except CircularDependencyError as exc:
            self._discard_new(pos, created)
            emit_warning(
                EventType.circular_dependency,
                str(exc),
                {"position": pos.to_string(), "cycle": [p.to_string() for p in exc.cycle_path]},
                error_code=CIRCULAR_REFERENCE,
            )
            raise
        except Exception:
            self._discard_new(pos, created)
            raise
        logger.debug("set %s = %r", pos, text)
        emit_info(EventType.cell_set, "cell set", {"position": pos.to_string(), "text": text})
        # Empty text keeps the slot only while another formula reads it.
        self.release_unused([pos])

    def get_cell(self, pos: Position) -> Cell | None:
        """Return the cell at ``pos`` or ``None``; never creates one.

        Raises:
            InvalidPositionError: ``pos`` is outside the grid.
        """
        self._check_position(pos)
        return self._cells.get(pos)

    def clear_cell(self, pos: Position) -> None:
        """Empty the cell at ``pos`` and drop it unless another formula reads it.

        Raises:
            InvalidPositionError: ``pos`` is outside the grid.
        """
        self._check_position(pos)
        cell = self._cells.get(pos)
        if cell is None:
            return
        cell.clear()
        emit_info(EventType.cell_cleared, "cell cleared", {"position": pos.to_string()})
        if cell.is_referenced():
            logger.debug("cleared %s, kept: still referenced", pos)
            return
        self._release(pos)

    def __contains__(self, pos: Position) -> bool:
        return pos in self._cells

    def __len__(self) -> int:
        return len(self._cells)

    # ------------------------------------------------------------------
    # Hooks used by Cell
    # ------------------------------------------------------------------

    def invalidate(self, pos: Position) -> None:
        """Drop cached values of ``pos`` and of every cell that reads it."""
        for p in self.dependencies.invalidation_order(pos):
            cell = self._cells.get(p)
            if cell is not None:
                cell.invalidate_cache()

    def release_unused(self, positions: Iterable[Position]) -> None:
        """Drop slots among ``positions`` that are empty and no longer read."""
        for pos in positions:
            cell = self._cells.get(pos)
            if cell is not None and not cell.get_text() and not cell.is_referenced():
                self._release(pos)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def get_printable_size(self) -> Size:
        """Smallest rectangle from A1 covering every stored slot.

        Slots kept only because they are referenced count too.
        """
        if not self._cells:
            return Size(0, 0)
        return Size(
            max(pos.row for pos in self._cells) + 1,
            max(pos.col for pos in self._cells) + 1,
        )

    def print_values(self, output: TextIO) -> None:
        self._print(output, lambda cell: self.format_value(cell.get_value()))

    def print_texts(self, output: TextIO) -> None:
        self._print(output, lambda cell: cell.get_text())

    def render_values(self) -> str:
        buf = io.StringIO()
        self.print_values(buf)
        return buf.getvalue()

    def render_texts(self) -> str:
        buf = io.StringIO()
        self.print_texts(buf)
        return buf.getvalue()

    def format_value(self, value: Value) -> str:
        """Format a cell value for display."""
        if isinstance(value, FormulaError):
            return value.to_string()
        if isinstance(value, str):
            return value
        return f"{value:.{self._precision}g}"

    def _print(self, output: TextIO, render) -> None:
        size = self.get_printable_size()
        for row in range(size.rows):
            fields = []
            for col in range(size.cols):
                cell = self._cells.get(Position(row, col))
                if cell is None or not cell.get_text():
                    fields.append("")
                else:
                    fields.append(render(cell))
            output.write("\t".join(fields) + "\n")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_position(self, pos: Position) -> None:
        if not pos.is_valid():
            emit_warning(
                EventType.invalid_position,
                "position outside the grid",
                {"row": pos.row, "col": pos.col},
                error_code=POSITION_OUT_OF_RANGE,
            )
            raise InvalidPositionError(pos)

    def _discard_new(self, pos: Position, created: bool) -> None:
        if created:
            del self._cells[pos]

    def _release(self, pos: Position) -> None:
        del self._cells[pos]
        logger.debug("released %s", pos)
        emit_info(EventType.cell_released, "cell released", {"position": pos.to_string()})


def create_sheet(config: dict[str, Any] | None = None) -> Sheet:
    return Sheet(config)
