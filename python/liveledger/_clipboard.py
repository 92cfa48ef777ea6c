"""Single-cell clipboard, owned by whoever mediates copy/paste."""

from __future__ import annotations

from typing import TYPE_CHECKING

from liveledger._cell import Cell

if TYPE_CHECKING:
    from liveledger._sheet import Sheet


class Clipboard:
    """Holds at most one detached cell.

    Each copy replaces the previous content.  Pasting writes the held
    cell's value and display properties and recalculates the target sheet.
    """

    __slots__ = ("_cell", "_has_content")

    def __init__(self) -> None:
        self._cell: Cell | None = None
        self._has_content = False

    @property
    def cell(self) -> Cell | None:
        return self._cell

    @property
    def has_content(self) -> bool:
        """True after a copy, even when the copied position was empty."""
        return self._has_content

    def copy(self, sheet: Sheet, row: int, col: int) -> None:
        src = sheet.get_cell(row, col)
        self._cell = None if src is None else src.copy()
        self._has_content = True

    def cut(self, sheet: Sheet, row: int, col: int) -> None:
        self.copy(sheet, row, col)
        sheet.clear_cell(row, col)

    def paste(self, sheet: Sheet, row: int, col: int) -> bool:
        """Paste into (row, col).  False when nothing has been copied."""
        if not self._has_content:
            return False
        sheet.paste_cell(self._cell, row, col)
        return True

    def clear(self) -> None:
        self._cell = None
        self._has_content = False
