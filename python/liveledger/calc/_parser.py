"""Formula reference extraction (regex-based, no evaluation)."""

from __future__ import annotations

import re

from liveledger._utils import CellRange, parse_a1, parse_range

# ---------------------------------------------------------------------------
# Regex patterns for reference extraction
# ---------------------------------------------------------------------------

# A reference must not be glued to a preceding letter/digit/dot (so "1E5"
# and "SUM" are not references).
_CELL_REF = r"[A-Za-z]+[0-9]+"
_SINGLE_REF_RE = re.compile(rf"(?<![A-Za-z0-9.])({_CELL_REF})(?![A-Za-z0-9(])")
_RANGE_REF_RE = re.compile(
    rf"(?<![A-Za-z0-9.])({_CELL_REF})\s*:\s*({_CELL_REF})(?![A-Za-z0-9(])"
)

# Strings in formulas (to skip refs inside string literals)
_STRING_RE = re.compile(r'"(?:[^"]|"")*"')


def _strip_strings(formula: str) -> str:
    """Blank out string literals so refs inside quotes aren't matched."""
    return _STRING_RE.sub(lambda m: " " * len(m.group(0)), formula)


# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------


def parse_references(formula: str) -> list[tuple[int, int]]:
    """Single cell references in *formula*, as 0-based (row, col).

    References that are range endpoints are not included; use
    :func:`parse_range_references` for those.
    """
    clean = _strip_strings(formula)
    range_spans = [(m.start(), m.end()) for m in _RANGE_REF_RE.finditer(clean)]

    refs: list[tuple[int, int]] = []
    seen: set[tuple[int, int]] = set()
    for m in _SINGLE_REF_RE.finditer(clean):
        pos = m.start()
        if any(s <= pos < e for s, e in range_spans):
            continue
        rc = parse_a1(m.group(1))
        if rc is not None and rc not in seen:
            refs.append(rc)
            seen.add(rc)
    return refs


def parse_range_references(formula: str) -> list[str]:
    """Range references in *formula*, as canonical upper-case ``"A1:B5"``."""
    clean = _strip_strings(formula)
    ranges: list[str] = []
    seen: set[str] = set()
    for m in _RANGE_REF_RE.finditer(clean):
        canonical = f"{m.group(1).upper()}:{m.group(2).upper()}"
        if canonical not in seen:
            ranges.append(canonical)
            seen.add(canonical)
    return ranges


def expand_range(
    range_ref: str, bounds: tuple[int, int] | None = None,
) -> list[tuple[int, int]]:
    """Expand ``"A1:B2"`` into its cells in row-major order.

    With *bounds* ``(rows, cols)`` only the part inside the grid is returned.
    """
    rng = parse_range(range_ref)
    if rng is None:
        raise ValueError(f"Invalid range: {range_ref!r}")
    if bounds is not None:
        rows, cols = bounds
        if rng.start_row >= rows or rng.start_col >= cols:
            return []
        rng = CellRange(
            rng.start_row, rng.start_col,
            min(rng.end_row, rows - 1), min(rng.end_col, cols - 1),
        )
    return list(rng.cells())


def all_references(
    formula: str, bounds: tuple[int, int] | None = None,
) -> list[tuple[int, int]]:
    """Every cell *formula* reads: single refs plus expanded ranges.

    *bounds* clips range expansion to a ``(rows, cols)`` grid.
    """
    refs: list[tuple[int, int]] = []
    seen: set[tuple[int, int]] = set()
    for rc in parse_references(formula):
        if rc not in seen:
            refs.append(rc)
            seen.add(rc)
    for rng in parse_range_references(formula):
        for rc in expand_range(rng, bounds):
            if rc not in seen:
                refs.append(rc)
                seen.add(rc)
    return refs
