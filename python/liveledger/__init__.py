"""liveledger: an in-memory spreadsheet grid with live formula recalculation.

Usage::

    from liveledger import Sheet, save_csv

    sheet = Sheet(100, 26)
    sheet["A1"] = 10
    sheet["A2"] = 20
    sheet["A3"] = "=SUM(A1:A2)"
    sheet.recalculate()
    sheet.get_display_value(2, 0)   # "30"
    save_csv(sheet, "out.csv", preserve_formulas=True)
"""

from liveledger._cell import (
    Align,
    Cell,
    Color,
    DataFormat,
    Empty,
    ErrorKind,
    FormatStyle,
    Formula,
    Number,
    Text,
    parse_color,
)
from liveledger._clipboard import Clipboard
from liveledger._csv import dumps_csv, load_csv, loads_csv, save_csv
from liveledger._format import (
    format_cell_value,
    format_currency,
    format_date,
    format_datetime,
    format_general,
    format_percentage,
    format_time,
)
from liveledger._sheet import Sheet
from liveledger._utils import (
    CellRange,
    a1_to_rowcol,
    column_index,
    column_letter,
    parse_a1,
    parse_range,
    rowcol_to_a1,
)
from liveledger.calc import EvalResult, RecalcMode, RecalcResult

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Align",
    "Cell",
    "CellRange",
    "Clipboard",
    "Color",
    "DataFormat",
    "Empty",
    "ErrorKind",
    "EvalResult",
    "FormatStyle",
    "Formula",
    "Number",
    "RecalcMode",
    "RecalcResult",
    "Sheet",
    "Text",
    "a1_to_rowcol",
    "column_index",
    "column_letter",
    "dumps_csv",
    "format_cell_value",
    "format_currency",
    "format_date",
    "format_datetime",
    "format_general",
    "format_percentage",
    "format_time",
    "load_csv",
    "loads_csv",
    "parse_a1",
    "parse_color",
    "parse_range",
    "rowcol_to_a1",
    "save_csv",
]
