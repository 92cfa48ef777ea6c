"""FormulaEvaluator: recursive descent evaluation of cell formulas.

Grammar, loosest binding first::

    comparison  := operand [("=" | "<>" | "<" | "<=" | ">" | ">=") operand]
    arithmetic  := term (("+" | "-") term)*
    term        := unary (("*" | "/") unary)*
    unary       := "-" unary | primary
    primary     := number | "(" comparison ")" | NAME "(" args ")"
                 | REF ":" REF | REF

Values travel as ``float`` or ``str`` (text results of IF); errors are
raised as :class:`FormulaError` and turned into an :class:`EvalResult` at
:meth:`FormulaEvaluator.evaluate`, so nothing escapes to the caller.
"""

from __future__ import annotations

import logging
import operator
import re
from typing import TYPE_CHECKING, Callable

from liveledger._cell import Empty, ErrorKind, Formula, Number, Text
from liveledger._utils import parse_a1, parse_range
from liveledger.calc._functions import (
    FLOAT_COMPARISON_EPSILON,
    FunctionRegistry,
    power,
    range_numbers,
    select_branch,
    xlookup,
)
from liveledger.calc._protocol import EvalResult, FormulaError

if TYPE_CHECKING:
    from liveledger._sheet import Sheet

logger = logging.getLogger(__name__)

Value = float | str

# ---------------------------------------------------------------------------
# Token patterns (matched at the cursor position)
# ---------------------------------------------------------------------------

_NUMBER_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_NAME_RE = re.compile(r"[A-Za-z]+")
_REF_TOKEN_RE = re.compile(r"[A-Za-z0-9:]+")
_CMP_OP_RE = re.compile(r"\s*(<>|<=|>=|=|<|>)")
# REF op "text": textual comparison against the referenced cell
_TEXT_CMP_RE = re.compile(r'\s*([A-Za-z]+[0-9]+)\s*(<>|<=|>=|=|<|>)\s*"((?:[^"]|"")*)"')
_RANGE_ARG_RE = re.compile(r"\s*([A-Za-z]+[0-9]+\s*:\s*[A-Za-z]+[0-9]+)\s*\)")

# Functions with structured arguments, dispatched outside the registry
_STRUCTURED_FUNCTIONS = frozenset({"POWER", "IF", "XLOOKUP"})

_NUMERIC_CMP: dict[str, Callable[[float, float], bool]] = {
    "=": lambda a, b: abs(a - b) < FLOAT_COMPARISON_EPSILON,
    "<>": lambda a, b: abs(a - b) >= FLOAT_COMPARISON_EPSILON,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_TEXT_CMP: dict[str, Callable[[str, str], bool]] = {
    "=": operator.eq,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


def _compare(left: Value, op: str, right: Value) -> float:
    """Compare two operands of the same type, giving 1.0 or 0.0."""
    if isinstance(left, str) and isinstance(right, str):
        return 1.0 if _TEXT_CMP[op](left, right) else 0.0
    if isinstance(left, str) or isinstance(right, str):
        raise FormulaError(ErrorKind.VALUE, "comparison of text with a number")
    return 1.0 if _NUMERIC_CMP[op](left, right) else 0.0


def _number(value: Value) -> float:
    if isinstance(value, str):
        raise FormulaError(ErrorKind.VALUE, f"text operand {value!r} in arithmetic")
    return value


class _Cursor:
    """Read position over one formula body."""

    __slots__ = ("text", "pos")

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def peek(self) -> str:
        self.skip_ws()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def at_end(self) -> bool:
        return self.peek() == ""

    def match(self, pattern: re.Pattern[str]) -> re.Match[str] | None:
        m = pattern.match(self.text, self.pos)
        if m:
            self.pos = m.end()
        return m

    def expect(self, ch: str) -> None:
        if self.peek() != ch:
            found = self.peek() or "end of formula"
            raise FormulaError(ErrorKind.PARSE, f"expected {ch!r}, found {found!r}")
        self.pos += 1

    def read_until(self, stops: str) -> str:
        """Raw text up to (not including) the first character in *stops*."""
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in stops:
            self.pos += 1
        return self.text[start:self.pos].strip()


class FormulaEvaluator:
    """Evaluates formulas against the current contents of a :class:`Sheet`.

    Formula cells referenced by the formula contribute their cached
    results; ordering those caches is the recalculation driver's job.

    Usage::

        evaluator = FormulaEvaluator(sheet)
        result = evaluator.evaluate("=SUM(A1:A5)*2")
    """

    def __init__(self, sheet: Sheet, functions: FunctionRegistry | None = None) -> None:
        self._sheet = sheet
        self._functions = functions if functions is not None else FunctionRegistry()

    @property
    def functions(self) -> FunctionRegistry:
        return self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        """Every function name this evaluator accepts (upper-case)."""
        return self._functions.supported_functions | _STRUCTURED_FUNCTIONS

    def evaluate(self, formula: str) -> EvalResult:
        """Evaluate *formula* (a single leading ``=`` is optional)."""
        body = formula.strip()
        if body.startswith("="):
            body = body[1:]
        cursor = _Cursor(body)
        try:
            value = self._comparison(cursor)
            if not cursor.at_end():
                raise FormulaError(
                    ErrorKind.PARSE, f"unexpected {body[cursor.pos:]!r}",
                )
        except FormulaError as e:
            logger.debug("Formula %r evaluated to %s: %s", formula, e.kind.token, e)
            return EvalResult.failed(e.kind)
        if isinstance(value, str):
            return EvalResult(0.0, value)
        return EvalResult(value)

    # ------------------------------------------------------------------
    # Grammar layers
    # ------------------------------------------------------------------

    def _comparison(self, cur: _Cursor, allow_text: bool = False) -> Value:
        """Comparison layer.

        A string literal may stand as an operand of a comparison; on its own
        it is only accepted where *allow_text* is set (IF branches).
        """
        m = cur.match(_TEXT_CMP_RE)
        if m:
            cell_text = self._cell_text(m.group(1))
            return _compare(cell_text, m.group(2), m.group(3).replace('""', '"'))

        left_literal = cur.peek() == '"'
        left = self._operand(cur)
        m = cur.match(_CMP_OP_RE)
        if m is None:
            if left_literal and not allow_text:
                raise FormulaError(ErrorKind.PARSE, "string literal outside a comparison")
            return left
        right = self._operand(cur)
        return _compare(left, m.group(1), right)

    def _operand(self, cur: _Cursor) -> Value:
        if cur.peek() == '"':
            return self._string_literal(cur)
        return self._arithmetic(cur)

    def _arithmetic(self, cur: _Cursor) -> Value:
        left = self._term(cur)
        while cur.peek() in ("+", "-"):
            op = cur.text[cur.pos]
            cur.pos += 1
            right = self._term(cur)
            if op == "+":
                left = _number(left) + _number(right)
            else:
                left = _number(left) - _number(right)
        return left

    def _term(self, cur: _Cursor) -> Value:
        left = self._unary(cur)
        while cur.peek() in ("*", "/"):
            op = cur.text[cur.pos]
            cur.pos += 1
            right = _number(self._unary(cur))
            if op == "*":
                left = _number(left) * right
            else:
                if right == 0.0:
                    raise FormulaError(ErrorKind.DIV_ZERO, "division by zero")
                left = _number(left) / right
        return left

    def _unary(self, cur: _Cursor) -> Value:
        if cur.peek() == "-":
            cur.pos += 1
            return -_number(self._unary(cur))
        return self._primary(cur)

    def _primary(self, cur: _Cursor) -> Value:
        ch = cur.peek()
        if not ch:
            raise FormulaError(ErrorKind.PARSE, "missing operand")

        if ch == "(":
            cur.pos += 1
            value = self._comparison(cur)
            cur.expect(")")
            return value

        if ch.isdigit() or ch == ".":
            m = cur.match(_NUMBER_RE)
            if m is None:
                raise FormulaError(ErrorKind.PARSE, "malformed number")
            return float(m.group(0))

        if ch.isascii() and ch.isalpha():
            name = _NAME_RE.match(cur.text, cur.pos)
            after = name.end()
            while after < len(cur.text) and cur.text[after].isspace():
                after += 1
            if after < len(cur.text) and cur.text[after] == "(":
                cur.pos = after + 1
                return self._function(cur, name.group(0).upper())
            token = cur.match(_REF_TOKEN_RE).group(0)
            return self._reference(token)

        if ch == '"':
            raise FormulaError(ErrorKind.PARSE, "unexpected string literal")
        raise FormulaError(ErrorKind.PARSE, f"unexpected {ch!r}")

    def _string_literal(self, cur: _Cursor) -> str:
        """Read ``"..."`` at the cursor; ``""`` inside stands for one quote."""
        cur.expect('"')
        parts: list[str] = []
        text = cur.text
        while True:
            end = text.find('"', cur.pos)
            if end < 0:
                raise FormulaError(ErrorKind.PARSE, "unterminated string literal")
            parts.append(text[cur.pos:end])
            cur.pos = end + 1
            if cur.pos < len(text) and text[cur.pos] == '"':
                parts.append('"')
                cur.pos += 1
                continue
            return "".join(parts)

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def _reference(self, token: str) -> float:
        """A single reference, or a range used as a value (its sum)."""
        if ":" in token:
            rng = parse_range(token)
            if rng is None:
                raise FormulaError(ErrorKind.PARSE, f"bad range {token!r}")
            return self._functions.get("SUM")(range_numbers(self._sheet, rng))
        rc = parse_a1(token)
        if rc is None:
            raise FormulaError(ErrorKind.PARSE, f"bad reference {token!r}")
        return self._cell_number(*rc)

    def _cell_number(self, row: int, col: int) -> float:
        # Positions outside the grid read as empty
        cell = self._sheet.get_cell(row, col)
        if cell is None:
            return 0.0
        kind = cell.kind
        if isinstance(kind, Empty):
            return 0.0
        if isinstance(kind, Number):
            return kind.value
        if isinstance(kind, Formula):
            if kind.error:
                raise FormulaError(kind.error, f"referenced cell {cell.row},{cell.col} is in error")
            if kind.is_text_result:
                raise FormulaError(ErrorKind.VALUE, "referenced formula has a text result")
            return kind.cached_value
        if isinstance(kind, Text):
            raise FormulaError(ErrorKind.VALUE, "referenced cell holds text")
        raise FormulaError(ErrorKind.VALUE, f"unknown cell kind {kind!r}")

    def _cell_text(self, ref: str) -> str:
        rc = parse_a1(ref)
        if rc is None:
            return ""
        cell = self._sheet.get_cell(*rc)
        if cell is None:
            return ""
        return cell.text_value() or ""

    # ------------------------------------------------------------------
    # Function dispatch
    # ------------------------------------------------------------------

    def _function(self, cur: _Cursor, name: str) -> Value:
        """Evaluate ``NAME(...)``; the cursor sits just past ``(``."""
        if name not in self.supported_functions:
            logger.debug("Unsupported function: %s", name)
            raise FormulaError(ErrorKind.PARSE, f"unknown function {name}")
        if self._functions.has(name):
            return self._aggregate(cur, name)
        if name == "POWER":
            base = _number(self._comparison(cur))
            cur.expect(",")
            exponent = _number(self._comparison(cur))
            cur.expect(")")
            return power(base, exponent)
        if name == "IF":
            return self._if(cur)
        return self._xlookup(cur)

    def _aggregate(self, cur: _Cursor, name: str) -> float:
        func = self._functions.get(name)
        m = cur.match(_RANGE_ARG_RE)
        if m:
            rng = parse_range("".join(m.group(1).split()))
            if rng is None:
                raise FormulaError(ErrorKind.PARSE, f"bad range {m.group(1)!r}")
            return func(range_numbers(self._sheet, rng))
        value = _number(self._comparison(cur))
        cur.expect(")")
        return func([value])

    def _if(self, cur: _Cursor) -> Value:
        condition = _number(self._comparison(cur))
        cur.expect(",")
        when_true = self._comparison(cur, allow_text=True)
        cur.expect(",")
        when_false = self._comparison(cur, allow_text=True)
        cur.expect(")")
        return select_branch(condition, when_true, when_false)

    def _xlookup(self, cur: _Cursor) -> float:
        if cur.peek() == '"':
            lookup_value: Value = self._string_literal(cur)
        else:
            lookup_value = _number(self._comparison(cur))
        cur.expect(",")
        lookup_text = cur.read_until(",)")
        cur.expect(",")
        return_text = cur.read_until(",)")
        exact = True
        if cur.peek() == ",":
            cur.pos += 1
            exact = _number(self._comparison(cur)) == 0.0
        cur.expect(")")

        lookup_range = parse_range(lookup_text)
        return_range = parse_range(return_text)
        if lookup_range is None or return_range is None:
            raise FormulaError(ErrorKind.REF, f"bad XLOOKUP range {lookup_text!r} / {return_text!r}")
        return xlookup(self._sheet, lookup_value, lookup_range, return_range, exact)
