"""
PDF Reflow
==========

Rebuilds reading-order text and table rows from the positioned text runs
of a paginated document, using geometry alone.

Main components:
- Geometric sort and line/row sequencing
- Word-processor (RTF) assembly with page headings
- Spreadsheet assembly: fixed-column rows or a classified line report
- DOCX and styled XLSX export
"""

__version__ = "1.0.0"
__author__ = "PDF Reflow Team"
