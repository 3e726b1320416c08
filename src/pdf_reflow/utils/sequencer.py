"""
Reading-order and row sequencing for positioned text fragments.

Provides:
- Geometric comparator and sort (top-to-bottom, left-to-right)
- One clustering routine shared by line and row grouping
- Line grouping with inferred spaces and tabs
- Row grouping with discrete cells tagged by page number
"""

import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Callable, List, Optional, Sequence, TypeVar

from .fragments import Fragment

logger = logging.getLogger(__name__)

DEFAULT_LINE_THRESHOLD = 5.0
DEFAULT_GAP_THRESHOLD = 5.0
DEFAULT_TAB_THRESHOLD = 20.0


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class Line:
    """Fragments judged to sit on one visual text line."""
    fragments: List[Fragment] = field(default_factory=list)
    text: str = ""
    right_edge: Optional[float] = None

    def __bool__(self) -> bool:
        return bool(self.text.strip())


@dataclass
class Row:
    """Cells sharing an approximate baseline, tagged with a 1-based page number."""
    page_number: int
    cells: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return len(self.cells) > 0

    def to_record(self) -> List[str]:
        """Page-prefixed row as strings, e.g. ``["1", "Name", "Amount"]``."""
        return [str(self.page_number)] + list(self.cells)


Unit = TypeVar("Unit")


# ============================================================================
# Geometric Sort
# ============================================================================

def make_comparator(line_threshold: float = DEFAULT_LINE_THRESHOLD) -> Callable[[Fragment, Fragment], float]:
    """
    Build the reading-order comparator.

    Fragments whose baselines differ by more than ``line_threshold`` are
    ordered by descending y; otherwise by ascending x. This is a single
    comparator, not a two-key sort, so chains of fragments near the
    threshold may order inconsistently.
    """
    def compare(a: Fragment, b: Fragment) -> float:
        dy = b.y - a.y
        if abs(dy) > line_threshold:
            return dy
        return a.x - b.x

    return compare


def sort_fragments(
    fragments: Sequence[Fragment],
    line_threshold: float = DEFAULT_LINE_THRESHOLD
) -> List[Fragment]:
    """Return the fragments of one page in reading order."""
    return sorted(fragments, key=cmp_to_key(make_comparator(line_threshold)))


# ============================================================================
# Shared Clustering
# ============================================================================

def group_fragments(
    fragments: Sequence[Fragment],
    new_unit: Callable[[], Unit],
    merge: Callable[[Unit, Fragment, str, bool], None],
    flush: Callable[[Unit], None],
    line_threshold: float = DEFAULT_LINE_THRESHOLD
) -> None:
    """
    Cluster sorted fragments into units by baseline proximity.

    Args:
        fragments: Fragments already in reading order
        new_unit: Factory for an empty unit
        merge: Adds ``(unit, fragment, trimmed_text, continuing)`` to the unit;
            ``continuing`` is True when the fragment extends the current unit
        flush: Receives each finished, non-empty unit in scan order
        line_threshold: Max vertical delta for two fragments to share a unit
    """
    unit = new_unit()
    last_y: Optional[float] = None

    for fragment in fragments:
        text = fragment.text.strip()
        if not text:
            continue

        continuing = last_y is not None and abs(fragment.y - last_y) <= line_threshold
        if last_y is not None and not continuing:
            if unit:
                flush(unit)
            unit = new_unit()

        merge(unit, fragment, text, continuing)
        last_y = fragment.y

    if unit:
        flush(unit)


# ============================================================================
# Line Grouping
# ============================================================================

def group_lines(
    fragments: Sequence[Fragment],
    line_threshold: float = DEFAULT_LINE_THRESHOLD,
    gap_threshold: float = DEFAULT_GAP_THRESHOLD,
    tab_threshold: float = DEFAULT_TAB_THRESHOLD
) -> List[Line]:
    """Group sorted fragments into lines, inferring separators from x-gaps."""
    lines: List[Line] = []

    def merge(line: Line, fragment: Fragment, text: str, continuing: bool) -> None:
        if continuing and line.right_edge is not None:
            x_gap = fragment.x - line.right_edge
            if x_gap > tab_threshold:
                line.text += "\t"
            elif x_gap > gap_threshold and line.text and not line.text.endswith(" "):
                line.text += " "
        line.text += text
        line.fragments.append(fragment)
        line.right_edge = fragment.right_edge

    group_fragments(fragments, Line, merge, lines.append, line_threshold)
    return lines


def reconstruct_page_text(
    fragments: Sequence[Fragment],
    line_threshold: float = DEFAULT_LINE_THRESHOLD,
    gap_threshold: float = DEFAULT_GAP_THRESHOLD,
    tab_threshold: float = DEFAULT_TAB_THRESHOLD
) -> str:
    """
    Rebuild one page's text in reading order.

    Every line is terminated by a newline, e.g. ``"Name\\tAmount\\nAlice\\t10\\n"``.
    """
    ordered = sort_fragments(fragments, line_threshold)
    lines = group_lines(ordered, line_threshold, gap_threshold, tab_threshold)
    logger.debug(f"Reconstructed {len(lines)} lines from {len(fragments)} fragments")
    return "".join(line.text.strip() + "\n" for line in lines)


# ============================================================================
# Row Grouping
# ============================================================================

def group_rows(
    fragments: Sequence[Fragment],
    page_number: int,
    line_threshold: float = DEFAULT_LINE_THRESHOLD
) -> List[Row]:
    """Group sorted fragments into rows of discrete cells."""
    rows: List[Row] = []

    def merge(row: Row, fragment: Fragment, text: str, continuing: bool) -> None:
        row.cells.append(text)

    group_fragments(
        fragments,
        lambda: Row(page_number=page_number),
        merge,
        rows.append,
        line_threshold
    )
    return rows


def extract_page_rows(
    fragments: Sequence[Fragment],
    page_number: int,
    line_threshold: float = DEFAULT_LINE_THRESHOLD
) -> List[Row]:
    """Sort one page's fragments and group them into page-tagged rows."""
    ordered = sort_fragments(fragments, line_threshold)
    rows = group_rows(ordered, page_number, line_threshold)
    logger.debug(f"Page {page_number}: {len(rows)} rows from {len(fragments)} fragments")
    return rows
