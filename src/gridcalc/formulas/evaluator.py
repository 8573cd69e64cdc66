"""Tree-walking executor for parsed formula expressions.

Categorical errors travel as return values: every step yields either a
``float`` or a :class:`FormulaError`, and an operator whose operands
include an error passes on the leftmost one.

The walk is post-order over an explicit stack, so expression depth is
not bounded by the interpreter's recursion limit.
"""

from __future__ import annotations

import math
from typing import Callable, Union

from lark import Token, Tree

from gridcalc.formulas.errors import Category, FormulaError
from gridcalc.position import Position

Result = Union[float, FormulaError]

# Resolver callback: map a referenced position to a number or an error.
CellResolver = Callable[[Position], Result]


def execute(tree: Tree, resolver: CellResolver) -> Result:
    """Evaluate a parsed expression.

    Args:
        tree: Parse tree from ``parse_expression()``.
        resolver: Called once per cell reference in the expression.

    Returns:
        The computed number, or the leftmost error produced.
    """
    return _eval(tree, resolver)


def _finite(value: float) -> Result:
    # Overflow to inf/nan is reported the same way as division by zero.
    if not math.isfinite(value):
        return FormulaError(Category.DIV0, "arithmetic overflow")
    return value


def _eval(root: Tree | Token, resolver: CellResolver) -> Result:
    stack: list[tuple[Tree | Token, bool]] = [(root, False)]
    results: list[Result] = []

    while stack:
        node, expanded = stack.pop()

        if isinstance(node, Token):
            results.append(_finite(float(node)))
            continue

        rule = node.data
        if rule == "number":
            results.append(_finite(float(node.children[0])))
            continue
        if rule == "cell_ref":
            results.append(resolver(Position.from_string(str(node.children[0]))))
            continue

        if not expanded:
            stack.append((node, True))
            for child in reversed(node.children):
                stack.append((child, False))
            continue

        # Operands are on top of the results stack, leftmost deepest.
        arity = len(node.children)
        operands = results[-arity:]
        del results[-arity:]
        results.append(_apply(rule, operands))

    return results[0]


def _apply(rule: str, operands: list[Result]) -> Result:
    for operand in operands:
        if isinstance(operand, FormulaError):
            return operand

    # Start rule just wraps expr
    if rule == "start":
        return operands[0]
    if rule == "neg":
        return _finite(-operands[0])
    if rule == "pos":
        return _finite(operands[0])

    left, right = operands
    if rule == "add":
        return _finite(left + right)
    if rule == "sub":
        return _finite(left - right)
    if rule == "mul":
        return _finite(left * right)
    if rule == "div":
        if right == 0:
            return FormulaError(Category.DIV0, "division by zero")
        return _finite(left / right)
    raise ValueError(f"Unknown node type: {rule}")
