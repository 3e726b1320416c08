"""
Tests for the word-processor text assembly.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pdf_reflow.config import TextConfig
from pdf_reflow.utils.text_assembler import (
    ReconstructedDocument,
    build_rtf,
    escape_rtf,
    escape_rtf_text,
    page_marker,
    render_document,
)


@pytest.fixture
def document():
    doc = ReconstructedDocument()
    doc.add_page(1, "Name\tAmount\nAlice\t10\n")
    doc.add_page(2, "Total\n")
    return doc


class TestReconstructedDocument:
    """Tests for the page-marked text stream."""

    def test_page_marker(self):
        assert page_marker(7) == "=== Page 7 ==="

    def test_to_text(self, document):
        assert document.to_text() == (
            "\n=== Page 1 ===\nName\tAmount\nAlice\t10\n\n"
            "\n=== Page 2 ===\nTotal\n\n"
        )

    def test_sections(self, document):
        assert len(document) == 2
        assert [p.page_number for p in document] == [1, 2]
        assert document.pages[0].lines == ["Name\tAmount", "Alice\t10"]

    def test_empty_document(self):
        assert ReconstructedDocument().to_text() == ""


class TestRtf:
    """Tests for RTF escaping and the envelope."""

    def test_newlines_tabs_and_markers(self):
        assert escape_rtf("\n=== Page 1 ===\nA\tB\n") == (
            "\\par \\par\\b Page 1 \\b0\\par\\par A\\tab B\\par "
        )

    def test_specials_are_escaped(self):
        assert escape_rtf_text("a{b}\\c") == "a\\{b\\}\\\\c"

    def test_non_ascii(self):
        assert escape_rtf_text("é") == "\\u233?"
        assert escape_rtf_text("€") == "\\u8364?"
        assert escape_rtf_text("￥") == "\\u-27?"

    def test_astral_characters_use_surrogates(self):
        assert escape_rtf_text("\U0001F600") == "\\u-10179?\\u-8704?"

    def test_envelope(self):
        assert build_rtf("A") == (
            "{\\rtf1\\ansi\\deff0 {\\fonttbl {\\f0 Times New Roman;}}\\f0\\fs24 A}"
        )

    def test_envelope_font(self):
        rtf = build_rtf("A", TextConfig(font_name="Arial", font_size=20))
        assert "{\\f0 Arial;}" in rtf
        assert "\\fs20 A}" in rtf

    def test_render_document(self, document):
        rtf = render_document(document)
        assert rtf.startswith("{\\rtf1\\ansi")
        assert rtf.endswith("}")
        assert "\\b Page 1 \\b0" in rtf
        assert "\\b Page 2 \\b0" in rtf
        assert "Name\\tab Amount\\par Alice\\tab 10\\par " in rtf
        assert "\n" not in rtf
        assert "\t" not in rtf
