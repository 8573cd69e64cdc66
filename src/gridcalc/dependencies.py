"""Reference graph between cells of one sheet.

Keeps forward edges (the cells a formula reads) and back-references (the
formulas that read a cell).  The back-references decide whether a cleared
cell may be dropped from storage; the forward edges drive cycle checks.
"""

from __future__ import annotations

from collections import deque
from typing import Iterable

from gridcalc.formulas.errors import CircularDependencyError
from gridcalc.position import Position


class DependencyGraph:
    """Precedent/dependent edges keyed by position."""

    def __init__(self) -> None:
        self._precedents: dict[Position, tuple[Position, ...]] = {}
        self._dependents: dict[Position, set[Position]] = {}

    def precedents(self, pos: Position) -> tuple[Position, ...]:
        """Positions that the formula at ``pos`` reads."""
        return self._precedents.get(pos, ())

    def dependents(self, pos: Position) -> set[Position]:
        """Positions whose formulas read ``pos``."""
        return set(self._dependents.get(pos, ()))

    def has_dependents(self, pos: Position) -> bool:
        return bool(self._dependents.get(pos))

    def ensure_acyclic(self, pos: Position, refs: Iterable[Position]) -> None:
        """Check that giving ``pos`` the precedents ``refs`` closes no cycle.

        Raises:
            CircularDependencyError: With the path ``pos -> ... -> pos``.
        """
        # Depth-first walk along existing precedent edges, remembering how
        # each position was reached so the cycle can be reported.
        came_from: dict[Position, Position] = {}
        stack: list[Position] = []
        for ref in refs:
            if ref not in came_from:
                came_from[ref] = pos
                stack.append(ref)

        while stack:
            current = stack.pop()
            if current == pos:
                path = [pos]
                step = came_from[pos]
                while step != pos:
                    path.append(step)
                    step = came_from[step]
                path.append(pos)
                path.reverse()
                raise CircularDependencyError(path)
            for nxt in self._precedents.get(current, ()):
                if nxt not in came_from:
                    came_from[nxt] = current
                    stack.append(nxt)

    def set_precedents(self, pos: Position, refs: Iterable[Position]) -> set[Position]:
        """Replace the forward edges of ``pos``.

        Returns:
            Positions that were read by ``pos`` before and no longer are.
        """
        new = tuple(dict.fromkeys(refs))
        old = self._precedents.pop(pos, ())
        if new:
            self._precedents[pos] = new

        dropped = set(old) - set(new)
        for ref in dropped:
            readers = self._dependents.get(ref)
            if readers is not None:
                readers.discard(pos)
                if not readers:
                    del self._dependents[ref]
        for ref in new:
            self._dependents.setdefault(ref, set()).add(pos)
        return dropped

    def invalidation_order(self, pos: Position) -> list[Position]:
        """``pos`` followed by every transitive dependent, each once."""
        order = [pos]
        seen = {pos}
        queue = deque([pos])
        while queue:
            current = queue.popleft()
            for dep in sorted(self._dependents.get(current, ())):
                if dep not in seen:
                    seen.add(dep)
                    order.append(dep)
                    queue.append(dep)
        return order
