"""
Worksheet grid for the spreadsheet pipelines.

Provides:
- A1-style cell addressing and range encoding/decoding
- Dense Worksheet grid backed by a numpy object array
- Presentation styles derived from (row index, is-header)
- Conversion to and from the address-keyed sparse representation
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .classify import ContentType, classify_content
from ..config import TabularConfig

logger = logging.getLogger(__name__)

CELL_ADDRESS_PATTERN = re.compile(r"([A-Z]+)([0-9]+)")


class CellAddressError(ValueError):
    """Raised when a cell address or range string cannot be decoded."""


# ============================================================================
# Cell Addressing
# ============================================================================

def encode_column(col: int) -> str:
    """0 -> "A", 25 -> "Z", 26 -> "AA"."""
    if col < 0:
        raise ValueError(f"Column index must be non-negative, got {col}")
    letters = ""
    col += 1
    while col:
        col, rem = divmod(col - 1, 26)
        letters = chr(65 + rem) + letters
    return letters


def decode_column(letters: str) -> int:
    col = 0
    for ch in letters:
        col = col * 26 + (ord(ch) - 64)
    return col - 1


def encode_cell_address(row: int, col: int) -> str:
    """Zero-based (row, col) to an A1 address."""
    return f"{encode_column(col)}{row + 1}"


def decode_cell_address(address: str) -> Tuple[int, int]:
    """
    A1 address to zero-based (row, col).

    Raises:
        CellAddressError: If the address is not letters followed by digits
    """
    match = CELL_ADDRESS_PATTERN.fullmatch(address or "")
    if not match or int(match.group(2)) < 1:
        raise CellAddressError(f"Invalid cell address: {address!r}")
    return int(match.group(2)) - 1, decode_column(match.group(1))


def encode_range(start: Tuple[int, int], end: Tuple[int, int]) -> str:
    return f"{encode_cell_address(*start)}:{encode_cell_address(*end)}"


def decode_range(ref: str) -> Tuple[Tuple[int, int], Tuple[int, int]]:
    parts = (ref or "").split(":")
    if len(parts) != 2:
        raise CellAddressError(f"Invalid range: {ref!r}")
    return decode_cell_address(parts[0]), decode_cell_address(parts[1])


# ============================================================================
# Presentation
# ============================================================================

@dataclass(frozen=True)
class CellStyle:
    """Presentation attributes of one cell. Colors are RGB hex strings."""
    bold: bool = False
    font_color: Optional[str] = None
    fill: Optional[str] = None
    horizontal: str = "left"
    vertical: str = "top"
    wrap_text: bool = False
    border_color: str = "000000"
    border_style: str = "thin"

    def to_dict(self) -> Dict[str, Any]:
        side = {"style": self.border_style, "color": {"rgb": self.border_color}}
        style: Dict[str, Any] = {
            "alignment": {"horizontal": self.horizontal, "vertical": self.vertical},
            "border": {edge: dict(side) for edge in ("top", "bottom", "left", "right")},
        }
        if self.wrap_text:
            style["alignment"]["wrapText"] = True
        if self.bold or self.font_color:
            style["font"] = {"bold": self.bold}
            if self.font_color:
                style["font"]["color"] = {"rgb": self.font_color}
        if self.fill:
            style["fill"] = {"fgColor": {"rgb": self.fill}}
        return style


def derive_style(row: int, config: Optional[TabularConfig] = None) -> CellStyle:
    """Style of a cell in grid row ``row``; row 0 is the header."""
    config = config or TabularConfig()
    if row == 0:
        return CellStyle(
            bold=True,
            font_color=config.header_font_color,
            fill=config.header_fill,
            horizontal="center",
            vertical="center",
            border_color=config.header_border,
        )
    # zebra striping counts data rows from 0: 1st, 3rd, 5th ... are filled
    data_index = row - 1
    return CellStyle(
        fill=config.stripe_fill if data_index % 2 == 0 else None,
        horizontal="left",
        vertical="top",
        wrap_text=True,
        border_color=config.data_border,
    )


@dataclass
class Cell:
    """A grid value with its derived content type and presentation."""
    value: Any
    row: int
    col: int
    content_type: ContentType
    style: CellStyle

    @property
    def address(self) -> str:
        return encode_cell_address(self.row, self.col)

    @property
    def is_header(self) -> bool:
        return self.row == 0

    @property
    def value_type(self) -> str:
        return "n" if _is_number(self.value) else "s"


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool)


# ============================================================================
# Worksheet
# ============================================================================

@dataclass
class Worksheet:
    """
    Dense grid of cell values, header row first.

    Absent cells hold ``None``. Styles are not stored; they are derived from
    the row index whenever a cell is read.
    """
    values: np.ndarray
    column_widths: List[int] = field(default_factory=list)
    row_height: int = 20
    name: str = "PDF_Data"
    properties: Dict[str, Any] = field(default_factory=dict)
    config: TabularConfig = field(default_factory=TabularConfig)

    @classmethod
    def from_rows(
        cls,
        header: Sequence[Any],
        rows: Sequence[Sequence[Any]],
        column_widths: Optional[Sequence[int]] = None,
        config: Optional[TabularConfig] = None,
        **kwargs
    ) -> 'Worksheet':
        """Build a worksheet from a header and ragged data rows."""
        config = config or TabularConfig()
        num_cols = max([len(header)] + [len(r) for r in rows])
        values = np.full((len(rows) + 1, num_cols), None, dtype=object)
        for c, v in enumerate(header):
            values[0, c] = v
        for r, row in enumerate(rows, start=1):
            for c, v in enumerate(row):
                values[r, c] = v
        return cls(
            values=values,
            column_widths=list(column_widths or []),
            row_height=config.row_height,
            config=config,
            **kwargs
        )

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    @property
    def num_rows(self) -> int:
        return self.values.shape[0]

    @property
    def num_cols(self) -> int:
        return self.values.shape[1]

    @property
    def ref(self) -> str:
        """Range spanning the full grid, e.g. ``"A1:D9"``."""
        return encode_range((0, 0), (max(self.num_rows, 1) - 1, max(self.num_cols, 1) - 1))

    def style_at(self, row: int) -> CellStyle:
        return derive_style(row, self.config)

    def cell(self, row: int, col: int) -> Optional[Cell]:
        value = self.values[row, col]
        if value is None:
            return None
        return Cell(
            value=value,
            row=row,
            col=col,
            content_type=classify_content(str(value)),
            style=self.style_at(row),
        )

    def iter_cells(self) -> Iterator[Cell]:
        for r in range(self.num_rows):
            for c in range(self.num_cols):
                cell = self.cell(r, c)
                if cell is not None:
                    yield cell

    def iter_rows(self, trim_trailing: bool = False) -> Iterator[List[Any]]:
        """Yield each grid row; absent cells are ``None``."""
        for r in range(self.num_rows):
            row = list(self.values[r])
            if trim_trailing:
                while row and row[-1] is None:
                    row.pop()
            yield row

    # ------------------------------------------------------------------
    # Sparse representation
    # ------------------------------------------------------------------

    def to_sparse(self) -> Dict[str, Any]:
        """Address-keyed mapping with ``!ref``, ``!cols`` and ``!rows`` entries."""
        sheet: Dict[str, Any] = {}
        for cell in self.iter_cells():
            sheet[cell.address] = {
                "v": cell.value,
                "t": cell.value_type,
                "s": cell.style.to_dict(),
            }
        sheet["!ref"] = self.ref
        sheet["!cols"] = [{"wch": w} for w in self.column_widths]
        sheet["!rows"] = [{"hpt": self.row_height} for _ in range(self.num_rows)]
        return sheet

    @classmethod
    def from_sparse(
        cls,
        sheet: Dict[str, Any],
        config: Optional[TabularConfig] = None
    ) -> 'Worksheet':
        """
        Decode an address-keyed mapping back into a dense worksheet.

        Raises:
            CellAddressError: On a malformed ``!ref`` or cell key
        """
        config = config or TabularConfig()
        (r0, c0), (r1, c1) = decode_range(sheet["!ref"])
        values = np.full((r1 - r0 + 1, c1 - c0 + 1), None, dtype=object)

        for key, record in sheet.items():
            if key.startswith("!"):
                continue
            row, col = decode_cell_address(key)
            if not (r0 <= row <= r1 and c0 <= col <= c1):
                logger.warning(f"Cell {key} lies outside range {sheet['!ref']}, ignored")
                continue
            values[row - r0, col - c0] = record.get("v")

        widths = [c.get("wch") for c in sheet.get("!cols", [])]
        heights = [r.get("hpt") for r in sheet.get("!rows", [])]
        return cls(
            values=values,
            column_widths=widths,
            row_height=heights[0] if heights else config.row_height,
            config=config,
        )
