"""
Tabular assembly for the spreadsheet pipeline.

Provides:
- TabularDataset of page-tagged rows
- Structured path: fixed "Page, Column 1..5" header over grouped rows
- Re-parse path: page-marked text block to "Page, Content Type, Text Content, Line Number"
- Quoted CSV encoding/decoding and the metadata preamble
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator, List, Optional, Sequence

from .classify import classify_content
from .grid import Worksheet
from .sequencer import Row
from ..config import TabularConfig, UTF8_BOM

logger = logging.getLogger(__name__)

STRUCTURED_HEADER = ["Page", "Column 1", "Column 2", "Column 3", "Column 4", "Column 5"]
REPORT_HEADER = ["Page", "Content Type", "Text Content", "Line Number"]

_DIGITS = re.compile(r"([0-9]+)")


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class TabularDataset:
    """Rows across all pages, in page order."""
    rows: List[Row] = field(default_factory=list)

    def extend(self, rows: Iterable[Row]) -> None:
        self.rows.extend(rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def records(self) -> List[List[str]]:
        return [row.to_record() for row in self.rows]

    @property
    def page_numbers(self) -> List[int]:
        return sorted({row.page_number for row in self.rows})


# ============================================================================
# CSV
# ============================================================================

def _csv_value(value: Any) -> str:
    return "" if value is None else str(value)


def encode_csv(rows: Iterable[Sequence[Any]]) -> str:
    """Quote every field, doubling embedded quotes; one ``\\n`` per row."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow([_csv_value(v) for v in row])
    return output.getvalue()


def decode_csv(content: str) -> List[List[str]]:
    """Parse quoted CSV produced by :func:`encode_csv`; a leading BOM is dropped."""
    if content.startswith(UTF8_BOM):
        content = content[len(UTF8_BOM):]
    return [row for row in csv.reader(io.StringIO(content))]


def worksheet_to_csv(worksheet: Worksheet, trim_trailing: bool = False) -> str:
    """Encode every grid row; absent cells become empty quoted fields."""
    return encode_csv(worksheet.iter_rows(trim_trailing=trim_trailing))


# ============================================================================
# Structured Path
# ============================================================================

def build_structured_worksheet(
    dataset: TabularDataset,
    config: Optional[TabularConfig] = None
) -> Worksheet:
    config = config or TabularConfig()
    return Worksheet.from_rows(
        STRUCTURED_HEADER,
        dataset.records,
        column_widths=config.structured_widths,
        config=config,
    )


def build_structured_csv(
    dataset: TabularDataset,
    config: Optional[TabularConfig] = None
) -> str:
    """BOM-prefixed CSV with the fixed six-column header."""
    worksheet = build_structured_worksheet(dataset, config)
    # rows keep their own length; the header stays six columns wide
    return UTF8_BOM + worksheet_to_csv(worksheet, trim_trailing=True)


# ============================================================================
# Re-parse Path
# ============================================================================

def parse_text_block(content: str) -> List[List[Any]]:
    """
    Classify every non-marker line of a page-marked text block.

    A line containing ``=== Page`` or ``Page `` plus a number switches the
    current page and restarts line numbering; other lines containing
    ``===`` are dropped.

    Returns:
        Data rows ``[page, content_type, text, line_number]`` without header
    """
    rows: List[List[Any]] = []
    current_page = 1
    line_number = 1

    for line in content.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue

        if "=== Page" in trimmed or "Page " in trimmed:
            match = _DIGITS.search(trimmed)
            if match:
                current_page = int(match.group(1))
                line_number = 1
                continue

        if "===" in trimmed:
            continue

        content_type = classify_content(trimmed)
        rows.append([current_page, content_type.value, trimmed, line_number])
        line_number += 1

    logger.debug(f"Parsed {len(rows)} content lines")
    return rows


def build_report_worksheet(
    content: str,
    title: Optional[str] = None,
    created_at: Optional[datetime] = None,
    config: Optional[TabularConfig] = None
) -> Worksheet:
    config = config or TabularConfig()
    created_at = created_at or datetime.now(timezone.utc)
    return Worksheet.from_rows(
        REPORT_HEADER,
        parse_text_block(content),
        column_widths=config.report_widths,
        config=config,
        properties={
            "Title": title,
            "Subject": config.subject,
            "Author": config.generator,
            "CreatedDate": created_at,
        },
    )


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with milliseconds and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def metadata_preamble(
    created_at: datetime,
    config: Optional[TabularConfig] = None
) -> str:
    config = config or TabularConfig()
    return encode_csv([
        ["Generated by", config.generator],
        ["Creation Date", format_timestamp(created_at)],
        ["Format", config.format_label],
        ["", ""],
    ])


def build_report_csv(worksheet: Worksheet) -> str:
    """
    Serialise a report worksheet: BOM, metadata preamble, then the grid.

    The grid is taken through its sparse form and decoded again, so the
    written rows are exactly what the ``!ref`` range covers.
    """
    created_at = worksheet.properties.get("CreatedDate") or datetime.now(timezone.utc)
    decoded = Worksheet.from_sparse(worksheet.to_sparse(), worksheet.config)
    return UTF8_BOM + metadata_preamble(created_at, worksheet.config) + worksheet_to_csv(decoded)
