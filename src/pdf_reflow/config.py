"""
Configuration and constants for the PDF reflow pipelines.

This module provides:
- Geometric thresholds used by the reading-order and row sequencers
- Word-processor envelope settings
- Spreadsheet presentation settings
- Environment overrides
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Tuple

logger = logging.getLogger("pdf_reflow")


# ============================================================================
# MIME Types
# ============================================================================

WORD_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
SPREADSHEET_MIME_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

UTF8_BOM = "\ufeff"


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class SequencerConfig:
    """Geometric thresholds, in page coordinate units."""
    line_threshold: float = 5.0   # max vertical delta for "same line"
    gap_threshold: float = 5.0    # x-gap above this inserts a space
    tab_threshold: float = 20.0   # x-gap above this inserts a tab


@dataclass
class TextConfig:
    """Word-processor (RTF) envelope configuration."""
    font_name: str = "Times New Roman"
    font_size: int = 24  # half-points


@dataclass
class TabularConfig:
    """Spreadsheet presentation configuration."""
    generator: str = "PDF Reflow"
    format_label: str = "Professional Excel Spreadsheet"
    subject: str = "PDF to Excel Conversion"
    # Header row
    header_fill: str = "366092"
    header_font_color: str = "FFFFFF"
    header_border: str = "000000"
    # Data rows
    data_border: str = "CCCCCC"
    stripe_fill: str = "F8F9FA"
    row_height: int = 20
    # Column widths in characters
    structured_widths: Tuple[int, ...] = (8, 20, 20, 20, 20, 20)
    report_widths: Tuple[int, ...] = (8, 15, 50, 12)


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    sequencer: SequencerConfig = field(default_factory=SequencerConfig)
    text: TextConfig = field(default_factory=TextConfig)
    tabular: TabularConfig = field(default_factory=TabularConfig)

    debug_mode: bool = False


# ============================================================================
# Default Configuration Instance
# ============================================================================

def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    config.sequencer.line_threshold = _env_float(
        "PDF_REFLOW_LINE_THRESHOLD", config.sequencer.line_threshold
    )
    config.sequencer.gap_threshold = _env_float(
        "PDF_REFLOW_GAP_THRESHOLD", config.sequencer.gap_threshold
    )
    config.sequencer.tab_threshold = _env_float(
        "PDF_REFLOW_TAB_THRESHOLD", config.sequencer.tab_threshold
    )

    generator = os.environ.get("PDF_REFLOW_GENERATOR")
    if generator:
        config.tabular.generator = generator

    if os.environ.get("PDF_REFLOW_DEBUG", "").lower() == "true":
        config.debug_mode = True
        logger.debug("Debug mode enabled from environment")

    return config
