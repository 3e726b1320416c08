"""
End-to-end integration tests for the PDF reflow pipelines.
"""

import pytest
import asyncio
import json
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pdf_reflow.config import SPREADSHEET_MIME_TYPE, WORD_MIME_TYPE, PipelineConfig
from pdf_reflow.converter import (
    ConversionError,
    Converter,
    aconvert_to_excel,
    aconvert_to_report,
    aconvert_to_word,
    convert_text_to_report,
    convert_to_excel,
    convert_to_report,
    convert_to_word,
)
from pdf_reflow.utils.tabular import decode_csv

CREATED = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def item(text, x, y, width=None):
    entry = {"str": text, "transform": [1, 0, 0, 1, x, y]}
    if width is not None:
        entry["width"] = width
    return entry


@pytest.fixture
def invoice_pages():
    """A one-page invoice in the shape a PDF text extractor returns."""
    return [[
        item("Amount", 200, 100),
        item("Alice", 0, 80),
        item("Name", 0, 100),
        item("10", 200, 80),
    ]]


@pytest.fixture
def two_pages():
    return [
        [item("INVOICE SUMMARY", 0, 700, width=120)],
        [item("Contact", 0, 700, width=40), item("a@b.com", 48, 701, width=40)],
    ]


@pytest.fixture
def temp_output_dir():
    """Create a temporary output directory."""
    with tempfile.TemporaryDirectory(prefix="pdf_reflow_test_") as tmp_dir:
        yield Path(tmp_dir)


async def _aiter(pages):
    for page in pages:
        await asyncio.sleep(0)
        yield page


class TestWordPipeline:
    """Tests for the reading-order text pipeline."""

    def test_payload(self, invoice_pages):
        payload = convert_to_word(invoice_pages)

        assert payload.mime_type == WORD_MIME_TYPE
        assert payload.extension == ".rtf"
        rtf = payload.text
        assert rtf.startswith("{\\rtf1\\ansi\\deff0 {\\fonttbl {\\f0 Times New Roman;}}\\f0\\fs24 ")
        assert "\\par\\b Page 1 \\b0\\par" in rtf
        assert "Name\\tab Amount\\par Alice\\tab 10\\par " in rtf

    def test_reconstructed_document(self, invoice_pages):
        document = Converter(PipelineConfig()).reconstruct(invoice_pages)
        assert document.pages[0].text == "Name\tAmount\nAlice\t10\n"

    def test_pages_in_order(self, two_pages):
        rtf = convert_to_word(two_pages).text
        assert rtf.index("Page 1") < rtf.index("INVOICE SUMMARY") < rtf.index("Page 2")
        # gap 8 between "Contact" and the address inserts a space
        assert "Contact a@b.com" in rtf

    def test_thresholds_from_config(self, invoice_pages):
        config = PipelineConfig()
        config.sequencer.line_threshold = 25
        document = Converter(config).reconstruct(invoice_pages)
        # both baselines now fall on one line
        assert document.pages[0].text.count("\n") == 1

    def test_async_matches_sync(self, two_pages):
        sync_payload = convert_to_word(two_pages)
        async_payload = asyncio.run(aconvert_to_word(_aiter(two_pages)))
        assert async_payload == sync_payload


class TestExcelPipeline:
    """Tests for the row/column pipeline."""

    def test_payload(self, invoice_pages):
        payload = convert_to_excel(invoice_pages)

        assert payload.mime_type == SPREADSHEET_MIME_TYPE
        assert payload.text == (
            "\ufeff"
            '"Page","Column 1","Column 2","Column 3","Column 4","Column 5"\n'
            '"1","Name","Amount"\n'
            '"1","Alice","10"\n'
        )

    def test_rows_carry_page_numbers(self, two_pages):
        rows = decode_csv(convert_to_excel(two_pages).text)
        assert rows[1:] == [
            ["1", "INVOICE SUMMARY"],
            ["2", "Contact", "a@b.com"],
        ]

    def test_empty_pages(self):
        rows = decode_csv(convert_to_excel([[], [item("  ", 0, 0)]]).text)
        assert len(rows) == 1

    def test_async_matches_sync(self, two_pages):
        sync_payload = convert_to_excel(two_pages)
        async_payload = asyncio.run(aconvert_to_excel(_aiter(two_pages)))
        assert async_payload == sync_payload


class TestReportPipeline:
    """Tests for the classified line report."""

    def test_report_from_pages(self, two_pages):
        payload = convert_to_report(two_pages, title="x.pdf", created_at=CREATED)
        rows = decode_csv(payload.text)

        assert payload.mime_type == SPREADSHEET_MIME_TYPE
        assert rows[0] == ["Generated by", "PDF Reflow"]
        assert rows[1] == ["Creation Date", "2024-03-15T12:00:00.000Z"]
        assert rows[2] == ["Format", "Professional Excel Spreadsheet"]
        assert rows[3] == ["", ""]
        assert rows[4] == ["Page", "Content Type", "Text Content", "Line Number"]
        assert rows[5:] == [
            ["1", "Header", "INVOICE SUMMARY", "1"],
            ["2", "Email", "Contact a@b.com", "1"],
        ]

    def test_report_from_text(self):
        payload = convert_text_to_report("=== Page 4 ===\n03/15/2024\nhttps://x.com\n", created_at=CREATED)
        rows = decode_csv(payload.text)
        assert rows[5:] == [
            ["4", "Date", "03/15/2024", "1"],
            ["4", "URL", "https://x.com", "2"],
        ]

    def test_async_matches_sync(self, two_pages):
        sync_payload = convert_to_report(two_pages, created_at=CREATED)
        async_payload = asyncio.run(aconvert_to_report(_aiter(two_pages), created_at=CREATED))
        assert async_payload == sync_payload


class TestFailures:
    """Failures abort the whole conversion with a pipeline prefix."""

    @staticmethod
    def _broken_pages(good_page):
        yield good_page
        raise OSError("page 2 unreadable")

    def test_word_failure(self, invoice_pages):
        with pytest.raises(ConversionError) as excinfo:
            convert_to_word(self._broken_pages(invoice_pages[0]))

        assert str(excinfo.value) == "Word conversion failed: page 2 unreadable"
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_excel_failure(self, invoice_pages):
        with pytest.raises(ConversionError) as excinfo:
            convert_to_excel(self._broken_pages(invoice_pages[0]))

        assert str(excinfo.value).startswith("Excel conversion failed: ")

    def test_malformed_item(self):
        with pytest.raises(ConversionError, match="^Excel conversion failed: "):
            convert_to_excel([[{"str": "no position"}]])

    def test_async_failure(self):
        async def broken():
            yield [item("ok", 0, 0)]
            raise OSError("gone")

        with pytest.raises(ConversionError, match="^Word conversion failed: gone$"):
            asyncio.run(aconvert_to_word(broken()))


class TestExporters:
    """Tests for file exporters."""

    def test_docx(self, invoice_pages, temp_output_dir):
        from docx import Document as DocxDocument
        from pdf_reflow.utils.export import DocxExporter

        document = Converter(PipelineConfig()).reconstruct(invoice_pages)
        path = DocxExporter().export(document, temp_output_dir / "out.docx")

        paragraphs = DocxDocument(str(path)).paragraphs
        assert [p.text for p in paragraphs] == ["Page 1", "Name\tAmount", "Alice\t10"]
        assert paragraphs[0].runs[0].bold is True

    def test_xlsx(self, two_pages, temp_output_dir):
        import openpyxl
        from pdf_reflow.utils.export import XlsxExporter

        converter = Converter(PipelineConfig())
        text = converter.reconstruct(two_pages).to_text()
        worksheet = converter.report_worksheet(text, title="x.pdf", created_at=CREATED)
        path = XlsxExporter().export(worksheet, temp_output_dir / "out.xlsx")

        wb = openpyxl.load_workbook(str(path))
        ws = wb.active
        assert ws.title == "PDF_Data"
        assert ws["A1"].value == "Page"
        assert ws["A1"].font.bold is True
        assert ws["A1"].fill.fgColor.rgb.endswith("366092")
        assert ws["A1"].alignment.horizontal == "center"
        assert ws["C2"].value == "INVOICE SUMMARY"
        assert ws["C2"].alignment.wrap_text is True
        assert ws["C2"].fill.fgColor.rgb.endswith("F8F9FA")
        assert ws["C3"].fill.fill_type is None
        assert ws.column_dimensions["C"].width == 50
        assert ws.freeze_panes == "A2"
        assert wb.properties.title == "x.pdf"

    def test_document_exporter(self, invoice_pages, temp_output_dir):
        from pdf_reflow.utils.export import DocumentExporter

        exporter = DocumentExporter(temp_output_dir, "invoice")
        results = exporter.export_all({
            "word": convert_to_word(invoice_pages),
            "excel": convert_to_excel(invoice_pages),
            "report": convert_to_report(invoice_pages, created_at=CREATED),
        })

        assert results["word"].name == "invoice.rtf"
        assert results["excel"].name == "invoice.csv"
        assert results["report"].name == "invoice.report.csv"
        assert results["excel"].read_bytes().startswith(b"\xef\xbb\xbf")


class TestFragmentSources:
    """Tests for JSON and PDF fragment input."""

    def test_json_round_trip(self, invoice_pages, temp_output_dir):
        from pdf_reflow.utils.fragments import normalize_page
        from pdf_reflow.utils.io import load_fragments_json, save_fragments_json

        pages = [normalize_page(p) for p in invoice_pages]
        path = save_fragments_json(pages, temp_output_dir / "fragments.json")
        assert load_fragments_json(path) == pages

    def test_json_list_of_pages(self, invoice_pages, temp_output_dir):
        from pdf_reflow.utils.io import load_fragments_json

        path = temp_output_dir / "pages.json"
        path.write_text(json.dumps(invoice_pages), encoding="utf-8")
        pages = load_fragments_json(path)

        assert len(pages) == 1
        assert convert_to_excel(pages).text == convert_to_excel(invoice_pages).text

    def test_json_rejects_bad_structure(self, temp_output_dir):
        from pdf_reflow.utils.io import load_fragments_json

        path = temp_output_dir / "bad.json"
        path.write_text(json.dumps({"pages": "nope"}), encoding="utf-8")
        with pytest.raises(ValueError):
            load_fragments_json(path)

    def test_json_missing_file(self, temp_output_dir):
        from pdf_reflow.utils.io import load_fragments_json

        with pytest.raises(FileNotFoundError):
            load_fragments_json(temp_output_dir / "missing.json")

    @pytest.fixture
    def sample_pdf(self, temp_output_dir):
        """Two-page PDF: two lines on page 1, one on page 2."""
        import fitz

        doc = fitz.open()
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 100), "Name")
        page.insert_text((72, 130), "Alice")
        page = doc.new_page(width=595, height=842)
        page.insert_text((72, 100), "Total")
        path = temp_output_dir / "sample.pdf"
        doc.save(str(path))
        doc.close()
        return path

    def test_pdf_source(self, sample_pdf):
        from pdf_reflow.utils.io import PdfFragmentSource

        with PdfFragmentSource(sample_pdf) as source:
            pages = list(source.iter_pages())

        assert len(pages) == 2
        name = pages[0][0]
        assert name.text == "Name"
        assert name.x == pytest.approx(72, abs=1)
        assert name.y == pytest.approx(842 - 100, abs=1)
        assert name.width > 0

    def test_pdf_to_excel(self, sample_pdf):
        from pdf_reflow.utils.io import PdfFragmentSource

        with PdfFragmentSource(sample_pdf) as source:
            rows = decode_csv(convert_to_excel(source.iter_pages()).text)

        assert rows[1:] == [["1", "Name"], ["1", "Alice"], ["2", "Total"]]

    def test_pdf_page_selection_async(self, sample_pdf):
        from pdf_reflow.utils.io import PdfFragmentSource

        with PdfFragmentSource(sample_pdf, pages=[2]) as source:
            payload = asyncio.run(aconvert_to_excel(source.aiter_pages()))

        # selected pages are renumbered from 1 in the output
        assert decode_csv(payload.text)[1:] == [["1", "Total"]]

    def test_iteration_closes_document_it_opened(self, sample_pdf):
        from pdf_reflow.utils.io import PdfFragmentSource

        source = PdfFragmentSource(sample_pdf)
        assert len(list(source.iter_pages())) == 2
        assert source._doc is None

        payload = asyncio.run(aconvert_to_excel(source.aiter_pages()))
        assert len(decode_csv(payload.text)) == 4
        assert source._doc is None

    def test_iteration_keeps_caller_document_open(self, sample_pdf):
        from pdf_reflow.utils.io import PdfFragmentSource

        with PdfFragmentSource(sample_pdf) as source:
            list(source.iter_pages())
            assert source._doc is not None
            assert source.page_count == 2

    def test_missing_pdf_is_wrapped(self, temp_output_dir):
        from pdf_reflow.utils.io import PdfFragmentSource

        source = PdfFragmentSource(temp_output_dir / "missing.pdf")
        with pytest.raises(ConversionError, match="^Word conversion failed: PDF file not found"):
            convert_to_word(source.iter_pages())
