"""Lark-based parser for arithmetic cell formulas.

Supports:
- Numeric literals: ``1``, ``2.5``, ``.5``, ``1e-3``
- Cell references: ``A1``, ``AA10``, ``XFD16384`` (uppercase only)
- Binary ``+ - * /``, unary ``+ -``, parentheses

The formula text handed to this module excludes the leading ``=``; the
cell layer strips it.
"""

from __future__ import annotations

from lark import Lark, Tree
from lark.exceptions import LarkError

from gridcalc.formulas.errors import FormulaSyntaxError
from gridcalc.position import Position

# LALR(1) grammar.
# Operator precedence (lowest to highest):
#   1. Addition/subtraction: + -
#   2. Multiplication/division: * /
#   3. Unary plus/minus: + -
#   4. Atoms: number, cell reference, parenthesized expr
GRAMMAR = r"""
start: expr

?expr: addition

?addition: multiplication
    | addition "+" multiplication  -> add
    | addition "-" multiplication  -> sub

?multiplication: unary
    | multiplication "*" unary  -> mul
    | multiplication "/" unary  -> div

?unary: atom
    | "-" unary  -> neg
    | "+" unary  -> pos

?atom: NUMBER                   -> number
    | CELL_REF                  -> cell_ref
    | "(" addition ")"

CELL_REF: /[A-Z]+[0-9]+/

%import common.NUMBER
%import common.WS
%ignore WS
"""

_parser = Lark(GRAMMAR, parser="lalr", start="start")


def parse_expression(text: str) -> Tree:
    """Parse formula text (without the leading ``=``) into a Lark Tree.

    Args:
        text: The expression, e.g. ``"A1 + 2 * B3"``.

    Returns:
        A Lark parse tree rooted at ``start``.

    Raises:
        FormulaSyntaxError: If the expression has invalid syntax.
    """
    try:
        return _parser.parse(text)
    except LarkError as exc:
        raise FormulaSyntaxError(str(exc), expression=text) from exc


def extract_cells(tree: Tree) -> list[Position]:
    """Return every referenced position in left-to-right order.

    Repeats are kept, and references outside the grid come back as
    ``Position.NONE``; callers filter as they need.
    """
    # iter_subtrees_topdown walks with an explicit stack, left to right.
    return [
        Position.from_string(str(subtree.children[0]))
        for subtree in tree.iter_subtrees_topdown()
        if subtree.data == "cell_ref"
    ]


# ---------- Canonical rendering ----------

_BINARY_OPS = {"add": "+", "sub": "-", "mul": "*", "div": "/"}
_UNARY_OPS = {"neg": "-", "pos": "+"}

_PRECEDENCE = {
    "add": 1,
    "sub": 1,
    "mul": 2,
    "div": 2,
    "neg": 3,
    "pos": 3,
    "number": 4,
    "cell_ref": 4,
}


def render_expression(tree: Tree) -> str:
    """Render a parse tree as canonical text.

    Whitespace is dropped and only the parentheses needed to keep the
    evaluation order are emitted.  Number and reference tokens are kept
    as written, so re-parsing the output gives an equivalent tree.
    """
    if tree.data == "start":
        tree = tree.children[0]

    # Post-order over an explicit stack; ``rendered`` holds finished
    # operand texts, leftmost deepest.
    stack: list[tuple[Tree, bool]] = [(tree, False)]
    rendered: list[str] = []
    while stack:
        node, expanded = stack.pop()
        rule = node.data

        if rule in ("number", "cell_ref"):
            rendered.append(str(node.children[0]))
            continue
        if not expanded:
            stack.append((node, True))
            for child in reversed(node.children):
                stack.append((child, False))
            continue

        if rule in _UNARY_OPS:
            text = rendered.pop()
            if _PRECEDENCE[node.children[0].data] < _PRECEDENCE[rule]:
                text = f"({text})"
            rendered.append(_UNARY_OPS[rule] + text)
            continue

        left, right = node.children
        right_text = rendered.pop()
        left_text = rendered.pop()
        if _PRECEDENCE[left.data] < _PRECEDENCE[rule]:
            left_text = f"({left_text})"
        right_prec = _PRECEDENCE[right.data]
        if right_prec < _PRECEDENCE[rule] or (
            right_prec == _PRECEDENCE[rule] and rule in ("sub", "div")
        ):
            right_text = f"({right_text})"
        rendered.append(f"{left_text}{_BINARY_OPS[rule]}{right_text}")

    return rendered[0]
