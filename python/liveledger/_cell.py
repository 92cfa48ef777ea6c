"""Cell record: a tagged value plus display attributes."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum, IntEnum


# ---------------------------------------------------------------------------
# Error kinds
# ---------------------------------------------------------------------------


class ErrorKind(Enum):
    """Outcome of a formula evaluation.  ``NONE`` means the value is valid."""

    NONE = ""
    DIV_ZERO = "#DIV/0!"
    REF = "#REF!"
    VALUE = "#VALUE!"
    PARSE = "#PARSE!"
    NA = "#N/A!"

    @property
    def token(self) -> str:
        """Text shown in place of the value."""
        return self.value

    def __bool__(self) -> bool:
        return self is not ErrorKind.NONE


# ---------------------------------------------------------------------------
# Display attribute enums (integer codes match the saved/UI representation)
# ---------------------------------------------------------------------------


class Align(IntEnum):
    LEFT = 0
    CENTER = 1
    RIGHT = 2


class DataFormat(IntEnum):
    GENERAL = 0
    NUMBER = 1
    PERCENTAGE = 2
    CURRENCY = 3
    DATE = 4
    TIME = 5
    DATETIME = 6


class FormatStyle(IntEnum):
    MM_DD_YYYY = 0        # 12/25/2023
    DD_MM_YYYY = 1        # 25/12/2023
    YYYY_MM_DD = 2        # 2023-12-25
    MON_DD_YYYY = 3       # Dec 25, 2023
    DD_MON_YYYY = 4       # 25 Dec 2023
    YYYY_MON_DD = 5       # 2023 Dec 25
    SHORT_DATE = 6        # 12/25/23
    TIME_12HR = 7         # 2:30 PM
    TIME_24HR = 8         # 14:30
    TIME_SECONDS = 9      # 14:30:45
    TIME_12HR_SECONDS = 10  # 2:30:45 PM
    DATETIME_SHORT = 11   # 12/25/23 2:30 PM
    DATETIME_LONG = 12    # Dec 25, 2023 2:30:45 PM
    DATETIME_ISO = 13     # 2023-12-25T14:30:45


class Color(IntEnum):
    """The 16 console colors; OR with ``BRIGHT`` for the light variants."""

    BLACK = 0
    BLUE = 1
    GREEN = 2
    CYAN = 3
    RED = 4
    MAGENTA = 5
    YELLOW = 6
    WHITE = 7
    BRIGHT = 8


_COLOR_NAMES = {
    "black": Color.BLACK,
    "blue": Color.BLUE,
    "green": Color.GREEN,
    "cyan": Color.CYAN,
    "red": Color.RED,
    "magenta": Color.MAGENTA,
    "yellow": Color.YELLOW,
    "white": Color.WHITE,
}


def parse_color(text: str | None) -> int | None:
    """Map a color name or ``#RRGGBB`` to a console color code.

    Returns None for anything unrecognized.
    """
    if not text:
        return None
    if text.startswith("#") and len(text) == 7:
        try:
            hex_value = int(text[1:], 16)
        except ValueError:
            return None
        r = (hex_value >> 16) & 0xFF
        g = (hex_value >> 8) & 0xFF
        b = hex_value & 0xFF
        if r < 128 and g < 128 and b < 128:
            if r < 64 and g < 64 and b < 64:
                return Color.BLACK
            if b > r and b > g:
                return Color.BLUE
            if g > r and g > b:
                return Color.GREEN
            if r > g and r > b:
                return Color.RED
            return Color.WHITE
        bright = Color.BRIGHT
        if b > r and b > g:
            return Color.BLUE | bright
        if g > r and g > b:
            return Color.GREEN | bright
        if r > g and r > b:
            return Color.RED | bright
        if r > 200 and g > 200:
            return Color.YELLOW | bright
        if r > 200 and b > 200:
            return Color.MAGENTA | bright
        if g > 200 and b > 200:
            return Color.CYAN | bright
        return Color.WHITE | bright
    return _COLOR_NAMES.get(text)


# ---------------------------------------------------------------------------
# Cell kinds
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Text:
    value: str


@dataclass
class Formula:
    """Formula source plus the cache written by the last recalculation.

    The cache is stale between an edit and the next recalculation.
    """

    source: str
    cached_value: float = 0.0
    cached_text: str | None = None
    error: ErrorKind = ErrorKind.NONE

    @property
    def is_text_result(self) -> bool:
        return self.cached_text is not None

    def reset_cache(self) -> None:
        self.cached_value = 0.0
        self.cached_text = None
        self.error = ErrorKind.NONE


CellKind = Empty | Number | Text | Formula

EMPTY = Empty()

DEFAULT_CELL_WIDTH = 10
DEFAULT_PRECISION = 2


# ---------------------------------------------------------------------------
# Cell
# ---------------------------------------------------------------------------


@dataclass
class Cell:
    """One grid position.

    ``kind`` is the single source of truth for the value.  Display
    attributes survive re-typing and clearing, except that alignment flips
    to left for text and right for numbers.
    """

    row: int
    col: int
    kind: CellKind = EMPTY
    width: int = DEFAULT_CELL_WIDTH
    precision: int = DEFAULT_PRECISION
    align: Align = Align.RIGHT
    format: DataFormat = DataFormat.GENERAL
    format_style: FormatStyle = FormatStyle.MM_DD_YYYY
    text_color: int | None = None
    background_color: int | None = None
    row_height: int | None = None

    # -- value setters --------------------------------------------------

    def set_number(self, value: float) -> None:
        self.kind = Number(float(value))
        self.align = Align.RIGHT

    def set_text(self, value: str) -> None:
        self.kind = Text(value)
        self.align = Align.LEFT

    def set_formula(self, source: str) -> None:
        self.kind = Formula(source)

    def clear(self) -> None:
        """Drop the value; formatting is kept."""
        self.kind = EMPTY

    # -- formatting -----------------------------------------------------

    def set_format(self, fmt: DataFormat, style: FormatStyle = FormatStyle.MM_DD_YYYY) -> None:
        self.format = fmt
        self.format_style = style

    def set_text_color(self, color: int | None) -> None:
        self.text_color = color

    def set_background_color(self, color: int | None) -> None:
        self.background_color = color

    def copy_display_from(self, other: Cell) -> None:
        """Copy width, precision, alignment, colors and row height."""
        self.width = other.width
        self.precision = other.precision
        self.align = other.align
        self.text_color = other.text_color
        self.background_color = other.background_color
        self.row_height = other.row_height

    # -- readers --------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return isinstance(self.kind, Empty)

    @property
    def is_formula(self) -> bool:
        return isinstance(self.kind, Formula)

    def text_value(self) -> str | None:
        """The text a textual comparison sees, or None for non-text cells."""
        kind = self.kind
        if isinstance(kind, Text):
            return kind.value
        if isinstance(kind, Formula) and kind.is_text_result:
            return kind.cached_text
        return None

    def copy(self) -> Cell:
        """Independent copy; a formula's cache is copied too."""
        return copy.deepcopy(self)

    def __repr__(self) -> str:
        return f"<Cell ({self.row}, {self.col}) {self.kind!r}>"
