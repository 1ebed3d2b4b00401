"""
Utils module for Decision AI
"""

from .csv_loader import (
    CSVLoadError,
    csv_sample,
    preview_frame,
    preview_rows,
    read_csv_text,
    truncate_csv,
)
from .markdown import render_markdown

__all__ = [
    "CSVLoadError",
    "csv_sample",
    "preview_frame",
    "preview_rows",
    "read_csv_text",
    "truncate_csv",
    "render_markdown",
]
