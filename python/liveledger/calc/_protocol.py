"""Evaluation/recalculation result dataclasses and the internal error signal."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from liveledger._cell import ErrorKind


class FormulaError(Exception):
    """Raised inside the evaluator to abort with an error kind.

    Never escapes :meth:`FormulaEvaluator.evaluate`; callers see an
    :class:`EvalResult` instead.
    """

    def __init__(self, kind: ErrorKind, message: str = "") -> None:
        super().__init__(message or kind.name)
        self.kind = kind


@dataclass(frozen=True)
class EvalResult:
    """Outcome of evaluating one formula.

    When ``error`` is set, ``value`` is 0.0 and ``text`` is None and neither
    means anything.
    """

    value: float = 0.0
    text: str | None = None
    error: ErrorKind = ErrorKind.NONE

    @property
    def is_text(self) -> bool:
        return self.text is not None

    @property
    def ok(self) -> bool:
        return self.error is ErrorKind.NONE

    @classmethod
    def failed(cls, kind: ErrorKind) -> EvalResult:
        return cls(0.0, None, kind)


class RecalcMode(Enum):
    """Order in which a recalculation sweep visits formula cells."""

    DEPENDENCY = "dependency"  # referenced formulas first, then storage order
    STORAGE = "storage"        # plain row-major sweep


@dataclass(frozen=True)
class RecalcResult:
    """Summary of one recalculation sweep."""

    evaluated: int = 0
    error_cells: int = 0
    cyclic_cells: int = 0  # formulas on a reference cycle (read stale caches)
