"""
I/O utilities for the PDF reflow pipelines.

Handles:
- Reading positioned text fragments from PDFs (PyMuPDF)
- Synchronous and asynchronous page iteration
- JSON fragment files
- Directory management
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, AsyncIterator, Iterator, List, Optional, Sequence, Union

from .fragments import Fragment, normalize_page

logger = logging.getLogger(__name__)


# ============================================================================
# PDF Fragment Source
# ============================================================================

class PdfFragmentSource:
    """
    Page-by-page fragment reader for a PDF file.

    Each text span becomes one fragment: x is the span's baseline origin,
    y is measured from the page bottom so it grows upward, and width is the
    span's bounding-box width.
    """

    def __init__(
        self,
        pdf_path: Union[str, Path],
        pages: Optional[Sequence[int]] = None
    ):
        """
        Args:
            pdf_path: Path to the PDF file
            pages: 1-based page numbers to read (None = all, ascending)
        """
        self.pdf_path = Path(pdf_path)
        self.pages = sorted(set(pages)) if pages is not None else None
        self._doc = None

    def open(self) -> 'PdfFragmentSource':
        """
        Raises:
            FileNotFoundError: If the PDF file doesn't exist
            ImportError: If PyMuPDF is not installed
        """
        if not self.pdf_path.exists():
            raise FileNotFoundError(f"PDF file not found: {self.pdf_path}")

        try:
            import fitz  # PyMuPDF
        except ImportError:
            raise ImportError("PyMuPDF (fitz) is required. Install with: pip install pymupdf")

        self._doc = fitz.open(str(self.pdf_path))
        logger.info(f"Opened PDF: {self.pdf_path} ({self._doc.page_count} pages)")
        return self

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None

    def __enter__(self) -> 'PdfFragmentSource':
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def page_count(self) -> int:
        if self._doc is None:
            self.open()
        return self._doc.page_count

    def page_numbers(self) -> List[int]:
        count = self.page_count
        if self.pages is None:
            return list(range(1, count + 1))
        return [p for p in self.pages if 1 <= p <= count]

    def read_page(self, page_number: int) -> List[Fragment]:
        """Read the fragments of one 1-based page."""
        if self._doc is None:
            self.open()
        page = self._doc[page_number - 1]
        height = page.rect.height
        fragments = []

        text_dict = page.get_text("dict")
        for block in text_dict.get("blocks", []):
            if block.get("type") != 0:
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    text = span.get("text", "")
                    if not text.strip():
                        continue
                    origin_x, origin_y = span["origin"]
                    x0, _, x1, _ = span["bbox"]
                    fragments.append(Fragment(
                        text=text,
                        x=float(origin_x),
                        y=float(height - origin_y),
                        width=float(x1 - x0),
                    ))

        logger.debug(f"Page {page_number}: {len(fragments)} fragments")
        return fragments

    def iter_pages(self) -> Iterator[List[Fragment]]:
        """
        Yield fragment lists in ascending page order.

        A document opened by the iterator itself is closed when iteration
        ends; one opened by the caller stays open.
        """
        opened_here = self._doc is None
        try:
            for page_number in self.page_numbers():
                yield self.read_page(page_number)
        finally:
            if opened_here:
                self.close()

    async def aiter_pages(self) -> AsyncIterator[List[Fragment]]:
        """Async variant of :meth:`iter_pages`; each page is read off the event loop."""
        opened_here = self._doc is None
        try:
            for page_number in await asyncio.to_thread(self.page_numbers):
                yield await asyncio.to_thread(self.read_page, page_number)
        finally:
            if opened_here:
                self.close()


# ============================================================================
# JSON Fragment Files
# ============================================================================

def load_fragments_json(json_path: Union[str, Path]) -> List[List[Fragment]]:
    """
    Load pages of page items from a JSON file.

    The file holds either a list of pages or ``{"pages": [...]}``; each page
    is a list of items with ``text`` (or ``str``), ``transform`` or ``x``/``y``,
    and an optional ``width``.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the structure is not a list of pages
    """
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("pages")
    if not isinstance(data, list) or not all(isinstance(p, list) for p in data):
        raise ValueError(f"Expected a list of pages in {json_path}")

    pages = [normalize_page(items) for items in data]
    logger.info(f"Loaded {len(pages)} page(s) from {json_path}")
    return pages


def save_fragments_json(
    pages: Sequence[Sequence[Fragment]],
    output_path: Union[str, Path],
    indent: int = 2
) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data: Any = {"pages": [[f.to_dict() for f in page] for page in pages]}
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)
    logger.debug(f"Saved JSON: {output_path}")
    return output_path


# ============================================================================
# Utility Functions
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Create the directory if needed and return it as a Path."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def detect_input_type(input_path: Union[str, Path]) -> str:
    """Return ``"pdf"``, ``"json"`` or ``"unknown"`` for an input path."""
    input_path = Path(input_path)
    suffix = input_path.suffix.lower()
    if suffix == ".pdf":
        return "pdf"
    if suffix == ".json":
        return "json"
    return "unknown"
