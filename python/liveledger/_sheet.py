"""Sheet: a fixed-size grid of lazily created cells with formula recalculation."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

from liveledger._cell import Cell, Empty, Formula, Number, Text
from liveledger._format import format_cell_value
from liveledger._utils import CellRange, a1_to_rowcol
from liveledger.calc._evaluator import FormulaEvaluator
from liveledger.calc._graph import DependencyGraph
from liveledger.calc._protocol import EvalResult, RecalcMode, RecalcResult

logger = logging.getLogger(__name__)

DEFAULT_COLUMN_WIDTH = 10
MIN_COLUMN_WIDTH = 1
MAX_COLUMN_WIDTH = 50

DEFAULT_ROW_HEIGHT = 1
MIN_ROW_HEIGHT = 1
MAX_ROW_HEIGHT = 10


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


class Sheet:
    """A ``rows x cols`` grid.

    Cells are created on first write and keyed by 0-based ``(row, col)``; a
    position without a cell reads as empty.  Setting a number or formula,
    clearing a cell and structural edits mark the sheet dirty, and
    :meth:`recalculate` refreshes every formula cache.  Setting text leaves
    the dirty flag alone.

    Usage::

        sheet = Sheet(100, 26)
        sheet["A1"] = 10
        sheet["A2"] = "=A1*2"
        sheet.recalculate()
        sheet.get_display_value(1, 0)   # "20"
    """

    __slots__ = (
        "_rows", "_cols", "name", "recalc_mode", "_cells", "_needs_recalc",
        "_col_widths", "_row_heights", "_selection_anchor", "_selection_end",
        "_range_clipboard", "_evaluator",
    )

    def __init__(
        self,
        rows: int,
        cols: int,
        name: str = "Sheet1",
        recalc_mode: RecalcMode = RecalcMode.DEPENDENCY,
    ) -> None:
        if rows < 1 or cols < 1:
            raise ValueError(f"Sheet dimensions must be positive, got {rows}x{cols}")
        self._rows = rows
        self._cols = cols
        self.name = name
        self.recalc_mode = recalc_mode
        self._cells: dict[tuple[int, int], Cell] = {}
        self._needs_recalc = False
        self._col_widths = [DEFAULT_COLUMN_WIDTH] * cols
        self._row_heights = [DEFAULT_ROW_HEIGHT] * rows
        self._selection_anchor: tuple[int, int] | None = None
        self._selection_end: tuple[int, int] = (0, 0)
        self._range_clipboard: list[list[Cell | None]] | None = None
        self._evaluator = FormulaEvaluator(self)

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def needs_recalc(self) -> bool:
        return self._needs_recalc

    @property
    def evaluator(self) -> FormulaEvaluator:
        return self._evaluator

    def __repr__(self) -> str:
        return f"<Sheet {self.name!r} {self._rows}x{self._cols}>"

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self._rows and 0 <= col < self._cols

    def get_cell(self, row: int, col: int) -> Cell | None:
        """The cell at (row, col), or None if never written or out of bounds."""
        if not self.in_bounds(row, col):
            return None
        return self._cells.get((row, col))

    def get_or_create_cell(self, row: int, col: int) -> Cell | None:
        if not self.in_bounds(row, col):
            return None
        key = (row, col)
        if key not in self._cells:
            self._cells[key] = Cell(row, col)
        return self._cells[key]

    def __getitem__(self, key: str) -> Cell:
        """``sheet['A1']`` -> Cell (created on demand)."""
        row, col = a1_to_rowcol(key)
        cell = self.get_or_create_cell(row, col)
        if cell is None:
            raise KeyError(f"{key!r} is outside the {self._rows}x{self._cols} sheet")
        return cell

    def __setitem__(self, key: str, value: Any) -> None:
        """``sheet['A1'] = 42`` / ``"text"`` / ``"=A1+1"`` / ``None`` (clear)."""
        row, col = a1_to_rowcol(key)
        if not self.in_bounds(row, col):
            raise KeyError(f"{key!r} is outside the {self._rows}x{self._cols} sheet")
        if value is None:
            self.clear_cell(row, col)
        elif isinstance(value, bool):
            raise TypeError(f"Unsupported cell value type: {type(value).__name__}")
        elif isinstance(value, (int, float)):
            self.set_number(row, col, value)
        elif isinstance(value, str):
            if value.startswith("="):
                self.set_formula(row, col, value)
            else:
                self.set_text(row, col, value)
        else:
            raise TypeError(f"Unsupported cell value type: {type(value).__name__}")

    def set_number(self, row: int, col: int, value: float) -> None:
        cell = self.get_or_create_cell(row, col)
        if cell is None:
            return
        cell.set_number(value)
        self._needs_recalc = True

    def set_text(self, row: int, col: int, value: str) -> None:
        cell = self.get_or_create_cell(row, col)
        if cell is None:
            return
        cell.set_text(value)

    def set_formula(self, row: int, col: int, source: str) -> None:
        cell = self.get_or_create_cell(row, col)
        if cell is None:
            return
        cell.set_formula(source)
        self._needs_recalc = True

    def clear_cell(self, row: int, col: int) -> None:
        """Empty the cell's value; its formatting is kept."""
        cell = self.get_cell(row, col)
        if cell is None:
            return
        cell.clear()
        self._needs_recalc = True

    def get_display_value(self, row: int, col: int) -> str:
        cell = self.get_cell(row, col)
        if cell is None:
            return ""
        return format_cell_value(cell)

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def iter_cells(self) -> Iterator[Cell]:
        """Every allocated cell, row-major."""
        for key in sorted(self._cells):
            yield self._cells[key]

    def iter_formula_cells(self) -> Iterator[tuple[Cell, Formula]]:
        """``(cell, formula)`` for every formula cell, row-major."""
        for cell in self.iter_cells():
            if isinstance(cell.kind, Formula):
                yield cell, cell.kind

    def used_range(self) -> CellRange | None:
        """Rectangle from A1 to the last non-empty row and column, or None."""
        last_row = last_col = -1
        for (row, col), cell in self._cells.items():
            if cell.is_empty:
                continue
            last_row = max(last_row, row)
            last_col = max(last_col, col)
        if last_row < 0:
            return None
        return CellRange(0, 0, last_row, last_col)

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, formula: str) -> EvalResult:
        """Evaluate *formula* against the current grid without storing it."""
        return self._evaluator.evaluate(formula)

    def recalculate(self) -> RecalcResult | None:
        """Re-evaluate every formula cell once if the sheet is dirty.

        Returns None when there was nothing to do.
        """
        if not self._needs_recalc:
            return None

        cyclic: list[tuple[int, int]] = []
        if self.recalc_mode is RecalcMode.DEPENDENCY:
            order, cyclic = DependencyGraph.from_sheet(self).topological_order()
            positions = order + cyclic
        else:
            positions = [(cell.row, cell.col) for cell, _ in self.iter_formula_cells()]

        errors = 0
        for pos in positions:
            formula = self._cells[pos].kind
            result = self._evaluator.evaluate(formula.source)
            formula.cached_value = result.value
            formula.cached_text = result.text
            formula.error = result.error
            if result.error:
                errors += 1

        self._needs_recalc = False
        logger.debug(
            "Recalculated %d formula cell(s) on %s: %d in error, %d cyclic",
            len(positions), self.name, errors, len(cyclic),
        )
        return RecalcResult(
            evaluated=len(positions),
            error_cells=errors,
            cyclic_cells=len(cyclic),
        )

    # ------------------------------------------------------------------
    # Selection and range clipboard
    # ------------------------------------------------------------------

    def start_selection(self, row: int, col: int) -> None:
        self._selection_anchor = (row, col)
        self._selection_end = (row, col)

    def extend_selection(self, row: int, col: int) -> None:
        """Move the free corner; ignored while no selection is active."""
        if self._selection_anchor is not None:
            self._selection_end = (row, col)

    def clear_selection(self) -> None:
        self._selection_anchor = None

    @property
    def selection(self) -> CellRange | None:
        if self._selection_anchor is None:
            return None
        r1, c1 = self._selection_anchor
        r2, c2 = self._selection_end
        return CellRange.from_corners(r1, c1, r2, c2)

    def is_in_selection(self, row: int, col: int) -> bool:
        sel = self.selection
        return sel is not None and (row, col) in sel

    @property
    def has_range_clipboard(self) -> bool:
        return self._range_clipboard is not None

    def copy_range(self) -> bool:
        """Snapshot the selected rectangle; False when nothing is selected."""
        sel = self.selection
        if sel is None:
            return False
        snapshot: list[list[Cell | None]] = []
        for r in range(sel.start_row, sel.end_row + 1):
            line: list[Cell | None] = []
            for c in range(sel.start_col, sel.end_col + 1):
                src = self.get_cell(r, c)
                line.append(None if src is None else src.copy())
            snapshot.append(line)
        self._range_clipboard = snapshot
        return True

    def paste_range(self, row: int, col: int) -> bool:
        """Write the range clipboard with its top-left at (row, col).

        Targets past the grid are skipped; positions that were empty in the
        snapshot are cleared.  Recalculates afterwards.
        """
        if self._range_clipboard is None:
            return False
        for i, line in enumerate(self._range_clipboard):
            for j, src in enumerate(line):
                dest_row, dest_col = row + i, col + j
                if not self.in_bounds(dest_row, dest_col):
                    continue
                if src is None:
                    self.clear_cell(dest_row, dest_col)
                    continue
                dest = self.get_or_create_cell(dest_row, dest_col)
                self._write_kind(dest, src)
                dest.width = src.width
                dest.precision = src.precision
                dest.align = src.align
                dest.format = src.format
                dest.format_style = src.format_style
        self._needs_recalc = True
        self.recalculate()
        return True

    def copy_cell(self, src_row: int, src_col: int, dest_row: int, dest_col: int) -> None:
        """Copy value and display properties from one cell to another."""
        src = self.get_cell(src_row, src_col)
        if src is None:
            self.clear_cell(dest_row, dest_col)
            return
        dest = self.get_or_create_cell(dest_row, dest_col)
        if dest is None:
            return
        self._write_kind(dest, src)
        dest.copy_display_from(src)
        self._needs_recalc = True
        self.recalculate()

    def paste_cell(self, src: Cell | None, row: int, col: int) -> None:
        """Write a detached cell's value and display properties at (row, col)."""
        if src is None:
            self.clear_cell(row, col)
            self.recalculate()
            return
        dest = self.get_or_create_cell(row, col)
        if dest is None:
            return
        self._write_kind(dest, src)
        dest.copy_display_from(src)
        dest.format = src.format
        dest.format_style = src.format_style
        self._needs_recalc = True
        self.recalculate()

    @staticmethod
    def _write_kind(dest: Cell, src: Cell) -> None:
        kind = src.kind
        if isinstance(kind, Number):
            dest.set_number(kind.value)
        elif isinstance(kind, Text):
            dest.set_text(kind.value)
        elif isinstance(kind, Formula):
            dest.set_formula(kind.source)
        elif isinstance(kind, Empty):
            dest.clear()

    # ------------------------------------------------------------------
    # Column widths and row heights
    # ------------------------------------------------------------------

    def get_column_width(self, col: int) -> int:
        if 0 <= col < self._cols:
            return self._col_widths[col]
        return DEFAULT_COLUMN_WIDTH

    def set_column_width(self, col: int, width: int) -> None:
        if 0 <= col < self._cols:
            self._col_widths[col] = _clamp(width, MIN_COLUMN_WIDTH, MAX_COLUMN_WIDTH)

    def get_row_height(self, row: int) -> int:
        if 0 <= row < self._rows:
            return self._row_heights[row]
        return DEFAULT_ROW_HEIGHT

    def set_row_height(self, row: int, height: int) -> None:
        if 0 <= row < self._rows:
            self._row_heights[row] = _clamp(height, MIN_ROW_HEIGHT, MAX_ROW_HEIGHT)

    def resize_columns(self, start_col: int, end_col: int, delta: int) -> None:
        """Add *delta* to every width in ``start_col..end_col`` (inclusive)."""
        if start_col < 0 or end_col >= self._cols or start_col > end_col:
            return
        for col in range(start_col, end_col + 1):
            self._col_widths[col] = _clamp(
                self._col_widths[col] + delta, MIN_COLUMN_WIDTH, MAX_COLUMN_WIDTH,
            )

    def resize_rows(self, start_row: int, end_row: int, delta: int) -> None:
        """Add *delta* to every height in ``start_row..end_row`` (inclusive)."""
        if start_row < 0 or end_row >= self._rows or start_row > end_row:
            return
        for row in range(start_row, end_row + 1):
            self._row_heights[row] = _clamp(
                self._row_heights[row] + delta, MIN_ROW_HEIGHT, MAX_ROW_HEIGHT,
            )

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------

    def _remap(self, move: Any) -> None:
        """Rebuild the cell map; *move* returns a cell's new key or None to drop it."""
        moved: dict[tuple[int, int], Cell] = {}
        for (row, col), cell in self._cells.items():
            target = move(row, col)
            if target is None or not self.in_bounds(*target):
                continue
            cell.row, cell.col = target
            moved[target] = cell
        self._cells = moved
        self._needs_recalc = True

    def insert_row(self, row: int) -> None:
        """Shift rows ``row..`` down by one; the last row falls off the grid."""
        if not 0 <= row < self._rows:
            return
        self._remap(lambda r, c: (r + 1, c) if r >= row else (r, c))
        self._row_heights.insert(row, DEFAULT_ROW_HEIGHT)
        self._row_heights.pop()

    def delete_row(self, row: int) -> None:
        """Drop *row* and shift the rows below it up by one."""
        if not 0 <= row < self._rows:
            return
        self._remap(lambda r, c: None if r == row else ((r - 1, c) if r > row else (r, c)))
        del self._row_heights[row]
        self._row_heights.append(DEFAULT_ROW_HEIGHT)

    def insert_column(self, col: int) -> None:
        """Shift columns ``col..`` right by one; the last column falls off."""
        if not 0 <= col < self._cols:
            return
        self._remap(lambda r, c: (r, c + 1) if c >= col else (r, c))
        self._col_widths.insert(col, DEFAULT_COLUMN_WIDTH)
        self._col_widths.pop()

    def delete_column(self, col: int) -> None:
        """Drop *col* and shift the columns to its right left by one."""
        if not 0 <= col < self._cols:
            return
        self._remap(lambda r, c: None if c == col else ((r, c - 1) if c > col else (r, c)))
        del self._col_widths[col]
        self._col_widths.append(DEFAULT_COLUMN_WIDTH)

    def clear_all(self) -> None:
        """Empty every cell; records and their formatting are kept."""
        for cell in self._cells.values():
            cell.clear()
        self._needs_recalc = True
