"""CSV import/export for a :class:`Sheet`.

Value mode writes what the grid displays and reads numbers back as
numbers.  Formula mode writes formula sources instead and turns ``=``
fields back into formulas on load.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterator
from typing import TYPE_CHECKING

from liveledger._cell import Formula

if TYPE_CHECKING:
    from liveledger._sheet import Sheet

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

# One field plus its terminator.  A quoted field keeps its text verbatim
# (anything between the closing quote and the next comma is dropped); an
# unquoted field runs to the next comma or line break.
_FIELD_RE = re.compile(
    r'[ \t]*(?:"((?:[^"]|"")*)"[^,\r\n]*|([^,\r\n]*))(,|\r\n|\n|\r|\Z)'
)
_NEEDS_QUOTES = frozenset(',"\r\n')


def _escape_field(field: str) -> str:
    """Quote *field* if it holds a separator, a quote or edge whitespace."""
    if field != field.strip(" \t") or any(ch in _NEEDS_QUOTES for ch in field):
        return '"' + field.replace('"', '""') + '"'
    return field


def _split_rows(text: str) -> Iterator[list[tuple[str, bool]]]:
    """Yield each CSV row as ``(field, quoted)`` pairs."""
    pos = 0
    row: list[tuple[str, bool]] = []
    while pos < len(text):
        m = _FIELD_RE.match(text, pos)
        quoted = m.group(1) is not None
        field = m.group(1).replace('""', '"') if quoted else m.group(2)
        row.append((field, quoted))
        pos = m.end()
        if m.group(3) != ",":
            yield row
            row = []
    if row:
        yield row


def dumps_csv(sheet: Sheet, preserve_formulas: bool = False) -> str:
    """Render the used part of *sheet* (from A1 to the last non-empty cell)."""
    used = sheet.used_range()
    if used is None:
        return ""
    lines: list[str] = []
    for row in range(used.end_row + 1):
        fields: list[str] = []
        for col in range(used.end_col + 1):
            cell = sheet.get_cell(row, col)
            if cell is None or cell.is_empty:
                fields.append("")
            elif preserve_formulas and isinstance(cell.kind, Formula):
                fields.append(cell.kind.source)
            else:
                fields.append(sheet.get_display_value(row, col))
        lines.append(",".join(_escape_field(f) for f in fields) + "\n")
    return "".join(lines)


def loads_csv(sheet: Sheet, text: str, preserve_formulas: bool = False) -> None:
    """Replace the contents of *sheet* with the CSV in *text*.

    Rows and columns past the grid are dropped and empty fields leave the
    cell empty.  Unquoted fields lose their edge blanks; quoted ones are
    taken verbatim.  In formula mode the sheet is recalculated once at the end.
    """
    sheet.clear_all()
    for row, fields in enumerate(_split_rows(text)):
        if row >= sheet.rows:
            break
        for col, (field, quoted) in enumerate(fields[:sheet.cols]):
            if not quoted:
                field = field.rstrip(" \t")
            if not field:
                continue
            if preserve_formulas and field.startswith("="):
                sheet.set_formula(row, col, field)
            elif _NUMBER_RE.match(field):
                sheet.set_number(row, col, float(field))
            else:
                sheet.set_text(row, col, field)
    if preserve_formulas:
        sheet.recalculate()


def save_csv(sheet: Sheet, path: str | os.PathLike[str], preserve_formulas: bool = False) -> bool:
    """Write *sheet* to *path*.  Returns False if the file can't be written."""
    text = dumps_csv(sheet, preserve_formulas)
    try:
        with open(path, "w", newline="", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        logger.debug("Cannot save CSV to %s: %s", path, e)
        return False
    return True


def load_csv(sheet: Sheet, path: str | os.PathLike[str], preserve_formulas: bool = False) -> bool:
    """Load *path* into *sheet*.  Returns False if the file can't be read."""
    try:
        with open(path, newline="", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Cannot load CSV from %s: %s", path, e)
        return False
    loads_csv(sheet, text, preserve_formulas)
    return True
