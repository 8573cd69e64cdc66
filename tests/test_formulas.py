"""Formula parsing, evaluation, reference extraction and canonical text."""

from __future__ import annotations

from typing import Any

import pytest
from lark.exceptions import LarkError

from gridcalc.formulas import (
    Category,
    Formula,
    FormulaError,
    FormulaSyntaxError,
    extract_cells,
    parse_expression,
    parse_formula,
    text_to_number,
)
from gridcalc.position import Position


# ────────────────────────────────────────────────────────────────
# Helpers
# ────────────────────────────────────────────────────────────────


class _FakeCell:
    def __init__(self, value: Any) -> None:
        self._value = value

    def get_value(self) -> Any:
        return self._value


class _RaisingCell:
    def __init__(self, exc: BaseException) -> None:
        self._exc = exc

    def get_value(self) -> Any:
        raise self._exc


class _FakeSheet:
    """Minimal sheet view: A1-address -> value."""

    def __init__(self, values: dict[str, Any] | None = None) -> None:
        self._cells = {
            Position.from_string(addr): _FakeCell(v) for addr, v in (values or {}).items()
        }

    def get_cell(self, pos: Position) -> _FakeCell | None:
        return self._cells.get(pos)


def _eval(expression: str, values: dict[str, Any] | None = None) -> Any:
    return Formula(expression).evaluate(_FakeSheet(values))


P = Position.from_string


# ────────────────────────────────────────────────────────────────
# Parser
# ────────────────────────────────────────────────────────────────


class TestParser:
    def test_number_literal(self) -> None:
        tree = parse_expression("42")
        assert tree.children[0].data == "number"

    def test_cell_ref(self) -> None:
        tree = parse_expression("AA10")
        assert tree.children[0].data == "cell_ref"

    def test_whitespace_ignored(self) -> None:
        assert parse_expression(" 1 +  2 ") is not None

    def test_syntax_error_trailing_operator(self) -> None:
        with pytest.raises(FormulaSyntaxError):
            parse_expression("1+")

    def test_syntax_error_empty(self) -> None:
        with pytest.raises(FormulaSyntaxError):
            parse_expression("")

    def test_lowercase_reference_rejected(self) -> None:
        with pytest.raises(FormulaSyntaxError):
            parse_expression("a1")

    def test_syntax_error_keeps_cause(self) -> None:
        with pytest.raises(FormulaSyntaxError) as exc_info:
            Formula("1 + * 2")
        assert isinstance(exc_info.value.__cause__, LarkError)
        assert str(exc_info.value.__cause__) in str(exc_info.value)
        assert exc_info.value.expression == "1 + * 2"

    def test_extract_cells_keeps_order_repeats_and_invalid(self) -> None:
        tree = parse_expression("B2 + A1 * B2 - ZZZZ1")
        assert extract_cells(tree) == [P("B2"), P("A1"), P("B2"), Position.NONE]


# ────────────────────────────────────────────────────────────────
# Evaluation
# ────────────────────────────────────────────────────────────────


class TestEvaluate:
    def test_numeric_literal(self) -> None:
        assert _eval("42") == 42.0

    def test_precedence(self) -> None:
        assert _eval("2 + 3 * 4") == 14.0

    def test_parentheses(self) -> None:
        assert _eval("(2 + 3) * 4") == 20.0

    def test_left_associative_subtraction(self) -> None:
        assert _eval("10 - 4 - 3") == 3.0

    def test_unary_minus(self) -> None:
        assert _eval("-(1 + 2)") == -3.0
        assert _eval("--2") == 2.0

    def test_missing_cell_is_zero(self) -> None:
        assert _eval("A1") == 0.0
        assert _eval("A1 + 5") == 5.0

    def test_numeric_cell(self) -> None:
        assert _eval("A1 * 2", {"A1": 4.0}) == 8.0

    def test_numeric_text_cell(self) -> None:
        assert _eval("A1", {"A1": "3.5"}) == 3.5

    def test_empty_text_cell_is_zero(self) -> None:
        assert _eval("A1 + 1", {"A1": ""}) == 1.0

    def test_partial_number_text_is_value_error(self) -> None:
        assert _eval("A1", {"A1": "3x"}) == FormulaError(Category.VALUE)

    def test_plain_text_is_value_error(self) -> None:
        assert _eval("A1 + 1", {"A1": "hello"}) == FormulaError(Category.VALUE)

    def test_error_cell_propagates_category(self) -> None:
        assert _eval("A1 + 1", {"A1": FormulaError(Category.DIV0)}) == FormulaError(Category.DIV0)
        assert _eval("A1 * 0", {"A1": FormulaError(Category.REF)}) == FormulaError(Category.REF)

    def test_out_of_bounds_reference_is_ref_error(self) -> None:
        assert _eval("ZZZZ1") == FormulaError(Category.REF)
        assert _eval("A99999 + 1") == FormulaError(Category.REF)

    def test_division_by_zero(self) -> None:
        result = _eval("1 / 0")
        assert isinstance(result, FormulaError)
        assert result.get_category() == Category.DIV0

    def test_division_by_empty_cell(self) -> None:
        assert _eval("1 / A1") == FormulaError(Category.DIV0)

    def test_independent_div0_errors_are_equal(self) -> None:
        assert _eval("1 / 0") == _eval("A1 / (B1 - B1)", {"A1": 5.0, "B1": 2.0})

    def test_overflow_is_div0(self) -> None:
        assert _eval("1e308 * 10") == FormulaError(Category.DIV0)

    def test_out_of_range_literal_is_div0(self) -> None:
        assert _eval("1e999") == FormulaError(Category.DIV0)
        assert _eval("-1e999") == FormulaError(Category.DIV0)
        assert _eval("0 * 1e999") == FormulaError(Category.DIV0)

    def test_out_of_range_text_cell_is_value_error(self) -> None:
        assert _eval("A1 + 1", {"A1": "1e999"}) == FormulaError(Category.VALUE)

    def test_long_sum(self) -> None:
        assert _eval("+".join(["1"] * 3000)) == 3000.0

    def test_long_unary_chain(self) -> None:
        assert _eval("-" * 3000 + "2") == 2.0

    def test_resolver_fault_becomes_value_error(self) -> None:
        sheet = _FakeSheet()
        sheet._cells[P("A1")] = _RaisingCell(RecursionError("maximum recursion depth exceeded"))
        assert Formula("A1 + 1").evaluate(sheet) == FormulaError(Category.VALUE)

    def test_first_error_wins(self) -> None:
        assert _eval("ZZZZ1 + 1 / 0") == FormulaError(Category.REF)
        assert _eval("1 / 0 + ZZZZ1") == FormulaError(Category.DIV0)

    def test_evaluate_reads_sheet_at_call_time(self) -> None:
        formula = Formula("A1 + 1")
        assert formula.evaluate(_FakeSheet({"A1": 1.0})) == 2.0
        assert formula.evaluate(_FakeSheet({"A1": 10.0})) == 11.0


class TestTextToNumber:
    @pytest.mark.parametrize(
        "text, expected",
        [("", 0.0), ("3.5", 3.5), ("-2", -2.0), ("1e3", 1000.0), (".5", 0.5), (" 7", 7.0)],
    )
    def test_numeric_text(self, text: str, expected: float) -> None:
        assert text_to_number(text) == expected

    @pytest.mark.parametrize(
        "text",
        ["3x", "abc", "3.5 ", "3\n", " 3 ", "3\t", "inf", "nan", "1_000", "1e", "1e999", "-1e999"],
    )
    def test_non_numeric_text(self, text: str) -> None:
        assert text_to_number(text) == FormulaError(Category.VALUE)


# ────────────────────────────────────────────────────────────────
# Referenced cells
# ────────────────────────────────────────────────────────────────


class TestReferencedCells:
    def test_no_references(self) -> None:
        assert Formula("1 + 2").get_referenced_cells() == []

    def test_consecutive_duplicate_collapsed(self) -> None:
        assert Formula("A1 + A1").get_referenced_cells() == [P("A1")]

    def test_distinct_positions_in_traversal_order(self) -> None:
        assert Formula("B2 + A1").get_referenced_cells() == [P("B2"), P("A1")]

    def test_non_adjacent_duplicate_collapsed(self) -> None:
        assert Formula("A1 + B1 + A1").get_referenced_cells() == [P("A1"), P("B1")]

    def test_invalid_position_excluded(self) -> None:
        assert Formula("A1 + ZZZZ1").get_referenced_cells() == [P("A1")]


# ────────────────────────────────────────────────────────────────
# Canonical expression
# ────────────────────────────────────────────────────────────────


class TestExpression:
    @pytest.mark.parametrize(
        "source, canonical",
        [
            ("1 + 2", "1+2"),
            ("((A1))", "A1"),
            ("1 + (2 * 3)", "1+2*3"),
            ("(1 + 2) * 3", "(1+2)*3"),
            ("(1 - 2) - 3", "1-2-3"),
            ("1 - (2 - 3)", "1-(2-3)"),
            ("1 + (2 - 3)", "1+2-3"),
            ("2 * (3 * 4)", "2*3*4"),
            ("8 / (4 / 2)", "8/(4/2)"),
            ("8 / (4 * 2)", "8/(4*2)"),
            ("-(1 + 2)", "-(1+2)"),
            ("-(A1)", "-A1"),
            ("+ 1", "+1"),
            ("1 - -2", "1--2"),
            ("2.50 * B3", "2.50*B3"),
        ],
    )
    def test_canonical_text(self, source: str, canonical: str) -> None:
        assert Formula(source).get_expression() == canonical

    @pytest.mark.parametrize(
        "source",
        ["1 - (2 - 3)", "(A1 + B1) / (C1 - 2)", "-(-(1 + 2)) * 3", "8 / (4 / 2) - 1e2"],
    )
    def test_reparse_evaluates_identically(self, source: str) -> None:
        values = {"A1": 3.0, "B1": "4", "C1": 7.0}
        original = Formula(source)
        reparsed = parse_formula(original.get_expression())
        assert reparsed.get_expression() == original.get_expression()
        assert reparsed.evaluate(_FakeSheet(values)) == original.evaluate(_FakeSheet(values))

    def test_invalid_reference_kept_as_written(self) -> None:
        assert Formula("ZZZZ1 + 1").get_expression() == "ZZZZ1+1"

    def test_long_sum_renders(self) -> None:
        source = " + ".join(["A1"] * 3000)
        formula = Formula(source)
        assert formula.get_expression() == "+".join(["A1"] * 3000)
        assert formula.get_referenced_cells() == [P("A1")]

    def test_long_unary_chain_renders(self) -> None:
        assert Formula("-" * 3000 + "A1").get_expression() == "-" * 3000 + "A1"
