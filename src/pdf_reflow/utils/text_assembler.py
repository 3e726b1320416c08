"""
Text-stream assembly for the word-processor pipeline.

Provides:
- ReconstructedDocument / PageSection data model
- Page-marked flat text stream
- RTF escaping and a minimal RTF envelope
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from ..config import TextConfig

logger = logging.getLogger(__name__)

PAGE_MARKER_TEMPLATE = "=== Page {page} ==="
PAGE_MARKER_PATTERN = re.compile(r"=== Page ([0-9]+) ===")


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class PageSection:
    """Reconstructed text of one page."""
    page_number: int
    text: str

    @property
    def lines(self) -> List[str]:
        return self.text.splitlines()

    def to_dict(self) -> Dict[str, Any]:
        return {"page_number": self.page_number, "text": self.text}


@dataclass
class ReconstructedDocument:
    """Ordered page sections produced by the text pipeline."""
    pages: List[PageSection] = field(default_factory=list)
    source_file: Optional[str] = None

    def add_page(self, page_number: int, text: str) -> PageSection:
        section = PageSection(page_number=page_number, text=text)
        self.pages.append(section)
        return section

    def __iter__(self) -> Iterator[PageSection]:
        return iter(self.pages)

    def __len__(self) -> int:
        return len(self.pages)

    def to_text(self) -> str:
        """Flat stream with a page marker ahead of every page."""
        return "".join(
            f"\n{page_marker(p.page_number)}\n{p.text}\n" for p in self.pages
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_file": self.source_file,
            "pages": [p.to_dict() for p in self.pages],
        }


def page_marker(page_number: int) -> str:
    return PAGE_MARKER_TEMPLATE.format(page=page_number)


# ============================================================================
# RTF
# ============================================================================

def escape_rtf_text(text: str) -> str:
    """Escape RTF specials and non-ASCII characters, leaving newlines and tabs."""
    out = []
    for ch in text:
        if ch in "\\{}":
            out.append("\\" + ch)
        elif ord(ch) > 127:
            code = ord(ch)
            if code > 0xFFFF:
                # RTF \u takes a signed 16-bit value; emit a surrogate pair
                code -= 0x10000
                for unit in (0xD800 + (code >> 10), 0xDC00 + (code & 0x3FF)):
                    out.append(f"\\u{unit - 0x10000}?")
            else:
                out.append(f"\\u{code if code < 0x8000 else code - 0x10000}?")
        else:
            out.append(ch)
    return "".join(out)


def escape_rtf(content: str) -> str:
    """
    Turn a page-marked text stream into an RTF body.

    Newlines become paragraph breaks, tabs become tab markers and page
    markers become bold page headings.
    """
    body = escape_rtf_text(content)
    body = body.replace("\n", "\\par ").replace("\t", "\\tab ")
    return PAGE_MARKER_PATTERN.sub(r"\\par\\b Page \1 \\b0\\par", body)


def build_rtf(content: str, config: Optional[TextConfig] = None) -> str:
    """Wrap a page-marked text stream in a minimal RTF envelope."""
    config = config or TextConfig()
    header = f"{{\\rtf1\\ansi\\deff0 {{\\fonttbl {{\\f0 {config.font_name};}}}}"
    return f"{header}\\f0\\fs{config.font_size} {escape_rtf(content)}}}"


def render_document(document: ReconstructedDocument, config: Optional[TextConfig] = None) -> str:
    """Render a reconstructed document as an RTF string."""
    rtf = build_rtf(document.to_text(), config)
    logger.debug(f"Rendered {len(document)} page(s) to {len(rtf)} RTF characters")
    return rtf
