"""Dependency graph for formula cells with topological ordering."""

from __future__ import annotations

import heapq
import logging
from typing import TYPE_CHECKING

from liveledger.calc._parser import all_references

if TYPE_CHECKING:
    from liveledger._sheet import Sheet

logger = logging.getLogger(__name__)

Pos = tuple[int, int]


class DependencyGraph:
    """Tracks which cells each formula reads, keyed by 0-based (row, col)."""

    __slots__ = ("bounds", "dependencies", "dependents", "formulas")

    def __init__(self, bounds: Pos | None = None) -> None:
        # (rows, cols) of the grid; ranges are clipped to it
        self.bounds = bounds
        # cell -> set of cells it reads from
        self.dependencies: dict[Pos, set[Pos]] = {}
        # cell -> set of cells that read from it (reverse edges)
        self.dependents: dict[Pos, set[Pos]] = {}
        # cell -> formula string
        self.formulas: dict[Pos, str] = {}

    def add_formula(self, pos: Pos, formula: str) -> None:
        """Register a formula cell and its dependencies."""
        self.formulas[pos] = formula
        refs = all_references(formula, self.bounds)
        self.dependencies[pos] = set(refs)
        for ref in refs:
            self.dependents.setdefault(ref, set()).add(pos)

    def topological_order(self) -> tuple[list[Pos], list[Pos]]:
        """Return ``(order, cyclic)`` for all formula cells.

        ``order`` lists formula cells so that every formula comes after the
        formulas it reads (Kahn's algorithm; among ready cells, row-major
        order wins).  Cells on or behind a reference cycle cannot be
        ordered; they are returned separately in row-major order and are
        not an error.
        """
        formula_cells = set(self.formulas)
        if not formula_cells:
            return [], []

        # Only count deps that are themselves formula cells
        in_degree: dict[Pos, int] = {}
        for cell in formula_cells:
            deps = self.dependencies.get(cell, set())
            in_degree[cell] = len(deps & formula_cells)

        ready = [cell for cell in formula_cells if in_degree[cell] == 0]
        heapq.heapify(ready)

        order: list[Pos] = []
        while ready:
            cell = heapq.heappop(ready)
            order.append(cell)
            for dep in self.dependents.get(cell, ()):
                if dep in formula_cells:
                    in_degree[dep] -= 1
                    if in_degree[dep] == 0:
                        heapq.heappush(ready, dep)

        cyclic: list[Pos] = []
        if len(order) != len(formula_cells):
            cyclic = sorted(formula_cells - set(order))
            logger.debug("Reference cycle involving %d cell(s): %s", len(cyclic), cyclic)
        return order, cyclic

    @classmethod
    def from_sheet(cls, sheet: Sheet) -> DependencyGraph:
        """Build a dependency graph from every formula cell of *sheet*."""
        graph = cls((sheet.rows, sheet.cols))
        for cell, formula in sheet.iter_formula_cells():
            graph.add_formula((cell.row, cell.col), formula.source)
        return graph
