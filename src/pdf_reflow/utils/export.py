"""
Export module for reconstructed documents and worksheets.

Provides:
- Payload value object (bytes + MIME type)
- RTF and CSV payload writers
- DOCX export (using python-docx)
- Styled XLSX export (using openpyxl)
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from .grid import CellStyle, Worksheet, encode_column
from .text_assembler import ReconstructedDocument

logger = logging.getLogger(__name__)


# ============================================================================
# Payload
# ============================================================================

@dataclass(frozen=True)
class Payload:
    """A self-contained conversion result."""
    data: bytes
    mime_type: str
    extension: str

    @property
    def text(self) -> str:
        return self.data.decode("utf-8")

    def __len__(self) -> int:
        return len(self.data)

    def save(self, output_path: Union[str, Path]) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(self.data)
        logger.info(f"Wrote {len(self.data)} bytes to: {output_path}")
        return output_path


# ============================================================================
# DOCX Exporter
# ============================================================================

class DocxExporter:
    """Export a reconstructed document to DOCX using python-docx."""

    def __init__(
        self,
        template_path: Optional[str] = None,
        font_name: str = "Times New Roman",
        font_size_pt: float = 12.0
    ):
        self.template_path = template_path
        self.font_name = font_name
        self.font_size_pt = font_size_pt

    def export(
        self,
        document: ReconstructedDocument,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Export document to DOCX file.

        Each page starts with a bold "Page N" paragraph; every reconstructed
        line becomes its own paragraph with tabs kept as tab stops.

        Returns:
            Path to the generated DOCX file
        """
        try:
            from docx import Document as DocxDocument
            from docx.shared import Pt
        except ImportError:
            raise ImportError(
                "python-docx is required for DOCX export. "
                "Install with: pip install python-docx"
            )

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        if self.template_path and Path(self.template_path).exists():
            doc = DocxDocument(self.template_path)
        else:
            doc = DocxDocument()

        style = doc.styles["Normal"]
        style.font.name = self.font_name
        style.font.size = Pt(self.font_size_pt)

        for page in document:
            heading = doc.add_paragraph()
            heading.add_run(f"Page {page.page_number}").bold = True
            for line in page.lines:
                doc.add_paragraph().add_run(line)

        doc.save(str(output_path))
        logger.info(f"Exported DOCX to: {output_path}")
        return output_path


# ============================================================================
# XLSX Exporter
# ============================================================================

class XlsxExporter:
    """Export a worksheet to a styled XLSX workbook using openpyxl."""

    def __init__(self, freeze_header: bool = True):
        self.freeze_header = freeze_header

    def export(
        self,
        worksheet: Worksheet,
        output_path: Union[str, Path]
    ) -> Path:
        try:
            import openpyxl
        except ImportError:
            raise ImportError(
                "openpyxl is required for XLSX export. "
                "Install with: pip install openpyxl"
            )

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = worksheet.name[:31]  # Excel sheet names max 31 chars

        for cell in worksheet.iter_cells():
            target = ws.cell(row=cell.row + 1, column=cell.col + 1, value=cell.value)
            self._apply_style(target, cell.style)

        for col, width in enumerate(worksheet.column_widths):
            ws.column_dimensions[encode_column(col)].width = width
        for row in range(1, worksheet.num_rows + 1):
            ws.row_dimensions[row].height = worksheet.row_height

        if self.freeze_header:
            ws.freeze_panes = "A2"

        props = worksheet.properties
        if props.get("Title"):
            wb.properties.title = str(props["Title"])
        if props.get("Subject"):
            wb.properties.subject = str(props["Subject"])
        if props.get("Author"):
            wb.properties.creator = str(props["Author"])
        if props.get("CreatedDate"):
            wb.properties.created = _naive_utc(props["CreatedDate"])

        wb.save(str(output_path))
        logger.info(f"Exported XLSX to: {output_path}")
        return output_path

    @staticmethod
    def _apply_style(target, style: CellStyle) -> None:
        from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

        side = Side(style=style.border_style, color=style.border_color)
        target.border = Border(top=side, bottom=side, left=side, right=side)
        target.alignment = Alignment(
            horizontal=style.horizontal,
            vertical=style.vertical,
            wrap_text=style.wrap_text,
        )
        if style.bold or style.font_color:
            target.font = Font(bold=style.bold, color=style.font_color)
        if style.fill:
            target.fill = PatternFill(
                start_color=style.fill, end_color=style.fill, fill_type="solid"
            )


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment


# ============================================================================
# Multi-Format Exporter
# ============================================================================

class DocumentExporter:
    """Convenience class for writing conversion results to a directory."""

    def __init__(
        self,
        output_dir: Union[str, Path],
        base_name: str = "document"
    ):
        self.output_dir = Path(output_dir)
        self.base_name = base_name

        self.docx_exporter = DocxExporter()
        self.xlsx_exporter = XlsxExporter()

    def write_payload(self, payload: Payload, suffix: str = "") -> Path:
        return payload.save(self.output_dir / f"{self.base_name}{suffix}{payload.extension}")

    def export_docx(self, document: ReconstructedDocument) -> Path:
        return self.docx_exporter.export(document, self.output_dir / f"{self.base_name}.docx")

    def export_xlsx(self, worksheet: Worksheet) -> Path:
        return self.xlsx_exporter.export(worksheet, self.output_dir / f"{self.base_name}.xlsx")

    def export_all(
        self,
        payloads: Dict[str, Payload],
        document: Optional[ReconstructedDocument] = None,
        worksheet: Optional[Worksheet] = None
    ) -> Dict[str, Path]:
        """
        Write every payload plus the optional DOCX/XLSX renderings.

        Returns:
            Dictionary mapping format to output path
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        results: Dict[str, Path] = {}

        for fmt, payload in payloads.items():
            suffix = "" if fmt in ("word", "excel") else f".{fmt}"
            results[fmt] = self.write_payload(payload, suffix)

        if document is not None:
            results["docx"] = self.export_docx(document)
        if worksheet is not None:
            results["xlsx"] = self.export_xlsx(worksheet)

        return results
