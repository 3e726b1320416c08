"""
Utility modules for the PDF reflow pipelines.
"""

from .fragments import Fragment, normalize_page
from .sequencer import Line, Row, sort_fragments, group_fragments, group_lines, group_rows
from .sequencer import reconstruct_page_text, extract_page_rows
from .classify import ContentType, classify_content
from .grid import Worksheet, Cell, CellStyle, CellAddressError
from .grid import encode_cell_address, decode_cell_address, encode_range, decode_range
from .text_assembler import ReconstructedDocument, PageSection, build_rtf
from .tabular import TabularDataset, encode_csv, decode_csv, parse_text_block
from .export import Payload, DocxExporter, XlsxExporter, DocumentExporter
from .io import PdfFragmentSource, load_fragments_json, ensure_dir

__all__ = [
    # Fragments
    "Fragment", "normalize_page",
    # Sequencing
    "Line", "Row", "sort_fragments", "group_fragments", "group_lines", "group_rows",
    "reconstruct_page_text", "extract_page_rows",
    # Classification
    "ContentType", "classify_content",
    # Grid
    "Worksheet", "Cell", "CellStyle", "CellAddressError",
    "encode_cell_address", "decode_cell_address", "encode_range", "decode_range",
    # Assembly
    "ReconstructedDocument", "PageSection", "build_rtf",
    "TabularDataset", "encode_csv", "decode_csv", "parse_text_block",
    # Export
    "Payload", "DocxExporter", "XlsxExporter", "DocumentExporter",
    # IO
    "PdfFragmentSource", "load_fragments_json", "ensure_dir",
]
