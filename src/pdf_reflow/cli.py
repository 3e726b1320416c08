#!/usr/bin/env python
"""
Command-line interface for the PDF reflow pipelines.

Usage:
    pdf-reflow --input <pdf_or_json> --output <output_dir> [options]

Examples:
    # Reading-order text as RTF plus the row/column CSV
    pdf-reflow --input statement.pdf --output ./output --format word excel

    # Everything, with a tighter line tolerance
    pdf-reflow --input statement.pdf --output ./output --format all --line-threshold 3
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from . import __version__

logger = logging.getLogger("pdf_reflow")

ALL_FORMATS = ["word", "docx", "excel", "report", "xlsx"]


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="pdf-reflow",
        description="PDF Reflow - rebuild reading-order text and table rows from positioned PDF text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Export the word-processor and spreadsheet payloads:
    pdf-reflow --input document.pdf --output ./output --format word excel

  Export every format from a JSON fragment dump:
    pdf-reflow --input fragments.json --output ./output --format all

  Process only specific pages:
    pdf-reflow --input document.pdf --output ./output --pages 1-5
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input PDF file or JSON fragment file"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory for generated files"
    )

    # Optional arguments
    parser.add_argument(
        "--format", "-f",
        nargs="+",
        default=["word", "excel"],
        choices=ALL_FORMATS + ["all"],
        help="Output format(s) (default: word excel)"
    )

    parser.add_argument(
        "--pages",
        type=str,
        default=None,
        help="Page range to process, e.g., '1-5' or '1,3,5' (default: all)"
    )

    parser.add_argument(
        "--line-threshold",
        type=float,
        default=None,
        help="Max vertical delta for fragments on one line (default: 5)"
    )

    parser.add_argument(
        "--gap-threshold",
        type=float,
        default=None,
        help="Horizontal gap that inserts a space (default: 5)"
    )

    parser.add_argument(
        "--tab-threshold",
        type=float,
        default=None,
        help="Horizontal gap that inserts a tab (default: 20)"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Re-raise errors with a full traceback"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def parse_page_range(page_str: str, max_pages: Optional[int] = None) -> List[int]:
    """Parse page range string to list of page numbers."""
    pages = []

    for part in page_str.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start, end = part.split("-")
            if int(start) > int(end):
                raise ValueError(f"Invalid page range: {part!r}")
            start = max(int(start), 1)
            end = int(end) if max_pages is None else min(int(end), max_pages)
            pages.extend(range(start, end + 1))
        else:
            page = int(part)
            if page >= 1 and (max_pages is None or page <= max_pages):
                pages.append(page)

    return sorted(set(pages))


def run_pipeline(args) -> int:
    """Run the requested conversions and write the results."""
    from .config import get_config
    from .converter import ConversionError, Converter, convert_to_excel, convert_to_word
    from .utils.export import DocumentExporter
    from .utils.io import PdfFragmentSource, detect_input_type, ensure_dir, load_fragments_json

    start_time = time.time()

    config = get_config()
    if args.line_threshold is not None:
        config.sequencer.line_threshold = args.line_threshold
    if args.gap_threshold is not None:
        config.sequencer.gap_threshold = args.gap_threshold
    if args.tab_threshold is not None:
        config.sequencer.tab_threshold = args.tab_threshold
    if config.debug_mode:
        args.debug = True
        logging.getLogger().setLevel(logging.DEBUG)

    output_dir = ensure_dir(args.output)
    input_path = Path(args.input)
    input_type = detect_input_type(input_path)
    logger.info(f"Input type detected: {input_type}")

    page_filter = parse_page_range(args.pages) if args.pages is not None else None

    if input_type == "pdf":
        source = PdfFragmentSource(input_path, pages=page_filter)
        if page_filter is not None and not source.page_numbers():
            source.close()
            raise ValueError(f"No pages selected by --pages {args.pages!r}")
        load_pages = lambda: source.iter_pages()
    elif input_type == "json":
        all_pages = load_fragments_json(input_path)
        if page_filter is not None:
            all_pages = [all_pages[i - 1] for i in page_filter if i <= len(all_pages)]
            if not all_pages:
                raise ValueError(f"No pages selected by --pages {args.pages!r}")
        load_pages = lambda: iter(all_pages)
    else:
        logger.error(f"Unsupported input type: {input_path}")
        return 1

    formats = args.format
    if "all" in formats:
        formats = list(ALL_FORMATS)

    exporter = DocumentExporter(output_dir, input_path.stem)
    results = {}

    try:
        if "word" in formats:
            results["word"] = exporter.write_payload(convert_to_word(load_pages(), config))
        if "excel" in formats:
            results["excel"] = exporter.write_payload(convert_to_excel(load_pages(), config))

        if any(f in formats for f in ("docx", "report", "xlsx")):
            converter = Converter(config)
            try:
                document = converter.reconstruct(load_pages(), source_file=str(input_path))
            except Exception as e:
                raise ConversionError(f"Word conversion failed: {e}") from e
            if "docx" in formats:
                results["docx"] = exporter.export_docx(document)
            if "report" in formats or "xlsx" in formats:
                worksheet = converter.report_worksheet(document.to_text(), title=input_path.name)
                if "report" in formats:
                    results["report"] = exporter.write_payload(
                        converter.report_payload(worksheet), ".report"
                    )
                if "xlsx" in formats:
                    results["xlsx"] = exporter.export_xlsx(worksheet)
    finally:
        if input_type == "pdf":
            source.close()

    elapsed = time.time() - start_time

    if not args.quiet:
        print("\n" + "=" * 60)
        print("PDF REFLOW COMPLETE")
        print("=" * 60)
        print(f"Source: {input_path}")
        print(f"Output: {output_dir}")
        for fmt, path in results.items():
            print(f"  {fmt}: {path}")
        print(f"Processing time: {elapsed:.2f}s")
        print("=" * 60)

    return 0


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"{e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
