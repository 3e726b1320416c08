"""
Conversion pipelines.

Two pipelines share the geometric sequencing step:
- Word: pages -> reading-order text -> RTF payload
- Excel: pages -> page-tagged rows -> quoted CSV payload

A third entry point re-parses the flat text stream into a classified
report grid with a metadata preamble.

Pages are consumed strictly in order, one at a time. Any failure aborts
the whole conversion and is re-raised as a ConversionError.
"""

import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterable, Iterable, Optional, Sequence

from .config import PipelineConfig, SPREADSHEET_MIME_TYPE, WORD_MIME_TYPE, get_config
from .utils.export import Payload
from .utils.fragments import normalize_page
from .utils.grid import Worksheet
from .utils.sequencer import extract_page_rows, reconstruct_page_text
from .utils.tabular import (
    TabularDataset,
    build_report_csv,
    build_report_worksheet,
    build_structured_csv,
)
from .utils.text_assembler import ReconstructedDocument, render_document

logger = logging.getLogger(__name__)

PageItems = Sequence[Any]


class ConversionError(RuntimeError):
    """A conversion failed; the message names the pipeline."""


class Converter:
    """
    Short-lived converter for one call.

    Holds only configuration; every method builds its result from scratch.
    """

    def __init__(self, config: Optional[PipelineConfig] = None):
        self.config = config or get_config()

    # ------------------------------------------------------------------
    # Per-page steps
    # ------------------------------------------------------------------

    def page_text(self, items: PageItems) -> str:
        seq = self.config.sequencer
        return reconstruct_page_text(
            normalize_page(items),
            line_threshold=seq.line_threshold,
            gap_threshold=seq.gap_threshold,
            tab_threshold=seq.tab_threshold,
        )

    def page_rows(self, items: PageItems, page_number: int):
        return extract_page_rows(
            normalize_page(items),
            page_number,
            line_threshold=self.config.sequencer.line_threshold,
        )

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def reconstruct(self, pages: Iterable[PageItems], source_file: Optional[str] = None) -> ReconstructedDocument:
        """Rebuild the text of every page, in order."""
        document = ReconstructedDocument(source_file=source_file)
        for page_number, items in enumerate(pages, start=1):
            document.add_page(page_number, self.page_text(items))
        logger.info(f"Reconstructed text for {len(document)} page(s)")
        return document

    def tabulate(self, pages: Iterable[PageItems]) -> TabularDataset:
        """Group every page into page-tagged rows, in order."""
        dataset = TabularDataset()
        page_count = 0
        for page_number, items in enumerate(pages, start=1):
            dataset.extend(self.page_rows(items, page_number))
            page_count = page_number
        logger.info(f"Extracted {len(dataset)} row(s) from {page_count} page(s)")
        return dataset

    def report_worksheet(
        self,
        text: str,
        title: Optional[str] = None,
        created_at: Optional[datetime] = None
    ) -> Worksheet:
        return build_report_worksheet(
            text,
            title=title,
            created_at=created_at or datetime.now(timezone.utc),
            config=self.config.tabular,
        )

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------

    def word_payload(self, document: ReconstructedDocument) -> Payload:
        rtf = render_document(document, self.config.text)
        return Payload(data=rtf.encode("utf-8"), mime_type=WORD_MIME_TYPE, extension=".rtf")

    def excel_payload(self, dataset: TabularDataset) -> Payload:
        content = build_structured_csv(dataset, self.config.tabular)
        return Payload(data=content.encode("utf-8"), mime_type=SPREADSHEET_MIME_TYPE, extension=".csv")

    def report_payload(self, worksheet: Worksheet) -> Payload:
        content = build_report_csv(worksheet)
        return Payload(data=content.encode("utf-8"), mime_type=SPREADSHEET_MIME_TYPE, extension=".csv")


# ============================================================================
# Pipelines
# ============================================================================

def _fail(pipeline: str, exc: Exception) -> ConversionError:
    logger.error(f"{pipeline} conversion failed: {exc}")
    return ConversionError(f"{pipeline} conversion failed: {exc}")


def convert_to_word(
    pages: Iterable[PageItems],
    config: Optional[PipelineConfig] = None
) -> Payload:
    """
    Convert pages of page items into an RTF word-processor payload.

    Raises:
        ConversionError: If reading or processing any page fails
    """
    try:
        converter = Converter(config)
        return converter.word_payload(converter.reconstruct(pages))
    except Exception as e:
        raise _fail("Word", e) from e


def convert_to_excel(
    pages: Iterable[PageItems],
    config: Optional[PipelineConfig] = None
) -> Payload:
    """
    Convert pages of page items into a quoted-CSV spreadsheet payload.

    Raises:
        ConversionError: If reading or processing any page fails
    """
    try:
        converter = Converter(config)
        return converter.excel_payload(converter.tabulate(pages))
    except Exception as e:
        raise _fail("Excel", e) from e


def convert_text_to_report(
    text: str,
    title: Optional[str] = None,
    created_at: Optional[datetime] = None,
    config: Optional[PipelineConfig] = None
) -> Payload:
    """
    Re-parse a page-marked text stream into the classified report payload.

    Raises:
        ConversionError: If the report cannot be built
    """
    try:
        converter = Converter(config)
        worksheet = converter.report_worksheet(text, title=title, created_at=created_at)
        return converter.report_payload(worksheet)
    except Exception as e:
        raise _fail("Excel", e) from e


def convert_to_report(
    pages: Iterable[PageItems],
    title: Optional[str] = None,
    created_at: Optional[datetime] = None,
    config: Optional[PipelineConfig] = None
) -> Payload:
    """Reconstruct page text, then re-parse it into the classified report payload."""
    try:
        converter = Converter(config)
        text = converter.reconstruct(pages).to_text()
        worksheet = converter.report_worksheet(text, title=title, created_at=created_at)
        return converter.report_payload(worksheet)
    except Exception as e:
        raise _fail("Excel", e) from e


# ============================================================================
# Async Pipelines
# ============================================================================

async def aconvert_to_word(
    pages: AsyncIterable[PageItems],
    config: Optional[PipelineConfig] = None
) -> Payload:
    try:
        converter = Converter(config)
        document = ReconstructedDocument()
        page_number = 0
        async for items in pages:
            page_number += 1
            document.add_page(page_number, converter.page_text(items))
        logger.info(f"Reconstructed text for {len(document)} page(s)")
        return converter.word_payload(document)
    except Exception as e:
        raise _fail("Word", e) from e


async def aconvert_to_excel(
    pages: AsyncIterable[PageItems],
    config: Optional[PipelineConfig] = None
) -> Payload:
    try:
        converter = Converter(config)
        dataset = TabularDataset()
        page_number = 0
        async for items in pages:
            page_number += 1
            dataset.extend(converter.page_rows(items, page_number))
        logger.info(f"Extracted {len(dataset)} row(s) from {page_number} page(s)")
        return converter.excel_payload(dataset)
    except Exception as e:
        raise _fail("Excel", e) from e


async def aconvert_to_report(
    pages: AsyncIterable[PageItems],
    title: Optional[str] = None,
    created_at: Optional[datetime] = None,
    config: Optional[PipelineConfig] = None
) -> Payload:
    try:
        converter = Converter(config)
        document = ReconstructedDocument()
        page_number = 0
        async for items in pages:
            page_number += 1
            document.add_page(page_number, converter.page_text(items))
        worksheet = converter.report_worksheet(document.to_text(), title=title, created_at=created_at)
        return converter.report_payload(worksheet)
    except Exception as e:
        raise _fail("Excel", e) from e
