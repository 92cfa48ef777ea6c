"""Display formatting: render a cell's value as the text shown in the grid.

Every function returns a new string.  Dates and times are serial day
numbers counted from 1899-12-30 (serial 1.0 is 1899-12-31 00:00, the
fraction is the time of day).
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

from liveledger._cell import Cell, DataFormat, Empty, Formula, FormatStyle, Number, Text

SERIAL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)
SECONDS_PER_DAY = 86400
DATE_ERROR = "#DATE!"

# Fixed English abbreviations; output must not depend on the locale
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_DATETIME_STYLES = frozenset({
    FormatStyle.DATETIME_SHORT,
    FormatStyle.DATETIME_LONG,
    FormatStyle.DATETIME_ISO,
})


def format_cell_value(cell: Cell | None) -> str:
    """Text for *cell* as the grid shows it.

    Errors render as their token, text results as the cached text, and
    numbers according to the cell's format and precision.
    """
    if cell is None:
        return ""
    kind = cell.kind
    if isinstance(kind, Empty):
        return ""
    if isinstance(kind, Text):
        return kind.value
    if isinstance(kind, Formula):
        if kind.error:
            return kind.error.token
        if kind.cached_text is not None:
            return kind.cached_text
        value = kind.cached_value
    elif isinstance(kind, Number):
        value = kind.value
    else:
        return ""

    fmt = cell.format
    if fmt == DataFormat.PERCENTAGE:
        return format_percentage(value, cell.precision)
    if fmt == DataFormat.CURRENCY:
        return format_currency(value)
    if fmt == DataFormat.DATE:
        return format_date(value, cell.format_style)
    if fmt == DataFormat.TIME:
        return format_time(value, cell.format_style)
    if fmt == DataFormat.DATETIME:
        return format_datetime(value, cell.format_style)
    return format_general(value, cell.precision)


def format_general(value: float, precision: int = 2) -> str:
    """Fixed precision with trailing zeros (and a bare trailing dot) removed."""
    text = f"{value:.{max(precision, 0)}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_percentage(value: float, precision: int = 2) -> str:
    return f"{value * 100.0:.{max(precision, 0)}f}%"


def format_currency(value: float) -> str:
    """``1234.5 -> "$1234.50"``; negatives put the sign first: ``-$500.00``."""
    if value < 0:
        return f"-${-value:.2f}"
    return f"${value:.2f}"


# ---------------------------------------------------------------------------
# Serial date/time helpers
# ---------------------------------------------------------------------------


def serial_to_datetime(value: float) -> datetime | None:
    """UTC datetime for a serial day number, or None if it can't be represented.

    Seconds are truncated toward zero.
    """
    try:
        return SERIAL_EPOCH + timedelta(seconds=int(value * SECONDS_PER_DAY))
    except (OverflowError, ValueError):
        return None


def _time_parts(value: float) -> tuple[int, int, int]:
    fraction = value - math.floor(value)
    total_seconds = int(fraction * SECONDS_PER_DAY)
    return total_seconds // 3600, (total_seconds % 3600) // 60, total_seconds % 60


def _twelve_hour(hours: int) -> tuple[int, str]:
    if hours == 0:
        return 12, "AM"
    if hours == 12:
        return 12, "PM"
    if hours > 12:
        return hours - 12, "PM"
    return hours, "AM"


def format_date(value: float, style: FormatStyle = FormatStyle.MM_DD_YYYY) -> str:
    """Date part of a serial in one of the date styles (ISO for anything else)."""
    dt = serial_to_datetime(value)
    if dt is None:
        return DATE_ERROR
    y, m, d = dt.year, dt.month, dt.day
    mon = _MONTHS[m - 1]
    if style == FormatStyle.MM_DD_YYYY:
        return f"{m:02d}/{d:02d}/{y:04d}"
    if style == FormatStyle.DD_MM_YYYY:
        return f"{d:02d}/{m:02d}/{y:04d}"
    if style == FormatStyle.MON_DD_YYYY:
        return f"{mon} {d:02d}, {y:04d}"
    if style == FormatStyle.DD_MON_YYYY:
        return f"{d:02d} {mon} {y:04d}"
    if style == FormatStyle.YYYY_MON_DD:
        return f"{y:04d} {mon} {d:02d}"
    if style == FormatStyle.SHORT_DATE:
        return f"{m:02d}/{d:02d}/{y % 100:02d}"
    return f"{y:04d}-{m:02d}-{d:02d}"


def format_time(value: float, style: FormatStyle = FormatStyle.TIME_24HR) -> str:
    """Time-of-day part of a serial (24-hour ``HH:MM`` for non-time styles)."""
    if not math.isfinite(value):
        return DATE_ERROR
    hours, minutes, seconds = _time_parts(value)
    if style == FormatStyle.TIME_12HR:
        h, am_pm = _twelve_hour(hours)
        return f"{h}:{minutes:02d} {am_pm}"
    if style == FormatStyle.TIME_12HR_SECONDS:
        h, am_pm = _twelve_hour(hours)
        return f"{h}:{minutes:02d}:{seconds:02d} {am_pm}"
    if style == FormatStyle.TIME_SECONDS:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{hours:02d}:{minutes:02d}"


def format_datetime(value: float, style: FormatStyle = FormatStyle.DATETIME_SHORT) -> str:
    """Date and time together.

    Styles other than the three datetime styles render as
    ``MM/DD/YYYY h:mm AM``.
    """
    if style not in _DATETIME_STYLES:
        date_part = format_date(value, FormatStyle.MM_DD_YYYY)
        if date_part == DATE_ERROR:
            return DATE_ERROR
        return f"{date_part} {format_time(value, FormatStyle.TIME_12HR)}"

    dt = serial_to_datetime(value)
    if dt is None:
        return DATE_ERROR
    hours, minutes, seconds = _time_parts(value)
    if style == FormatStyle.DATETIME_SHORT:
        h, am_pm = _twelve_hour(hours)
        return f"{dt.month}/{dt.day}/{dt.year % 100:02d} {h}:{minutes:02d} {am_pm}"
    if style == FormatStyle.DATETIME_LONG:
        h, am_pm = _twelve_hour(hours)
        return (f"{_MONTHS[dt.month - 1]} {dt.day:02d}, {dt.year:04d} "
                f"{h}:{minutes:02d}:{seconds:02d} {am_pm}")
    return (f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
            f"T{hours:02d}:{minutes:02d}:{seconds:02d}")
