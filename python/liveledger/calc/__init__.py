"""liveledger.calc - Formula evaluation engine for liveledger sheets."""

from liveledger.calc._evaluator import FormulaEvaluator
from liveledger.calc._functions import (
    FLOAT_COMPARISON_EPSILON,
    MAX_RANGE_VALUES,
    FunctionRegistry,
)
from liveledger.calc._graph import DependencyGraph
from liveledger.calc._parser import all_references, expand_range
from liveledger.calc._protocol import EvalResult, FormulaError, RecalcMode, RecalcResult

__all__ = [
    "DependencyGraph",
    "EvalResult",
    "FLOAT_COMPARISON_EPSILON",
    "FormulaError",
    "FormulaEvaluator",
    "FunctionRegistry",
    "MAX_RANGE_VALUES",
    "RecalcMode",
    "RecalcResult",
    "all_references",
    "expand_range",
]
