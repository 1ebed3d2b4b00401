"""CSV upload handling: decoding, sampling and truncation for prompts, and a light preview.

Uploaded files are never parsed for well-formedness; the AI collaborator
receives the raw text. Works with Streamlit UploadedFile, FastAPI UploadFile
contents, bytes, BytesIO and file paths.
"""

import io
import logging
import os
from typing import Any, Iterable, List, Optional, Tuple

import pandas as pd

logger = logging.getLogger("csv_loader")

ENCODINGS_TO_TRY = ["utf-8-sig", "utf-8", "latin-1", "cp1252", "iso-8859-1"]

TRUNCATION_NOTE = (
    "Note: The provided CSV data has been truncated due to its size. "
    "Perform the analysis based on this representative sample."
)


class CSVLoadError(Exception):
    """Raised when CSV loading fails with an actionable message."""

    def __init__(self, message: str, cause: str = "", suggestion: str = ""):
        self.cause = cause
        self.suggestion = suggestion
        super().__init__(message)


def _extract_bytes(source: Any) -> bytes:
    """Extract raw bytes from various upload sources.

    Args:
        source: Streamlit UploadedFile, FastAPI UploadFile contents, file path
                string, bytes, or BytesIO object.

    Returns:
        Raw bytes of the file content.
    """
    if isinstance(source, bytes):
        return source

    if isinstance(source, str):
        with open(source, "rb") as f:
            return f.read()

    if isinstance(source, io.BytesIO):
        source.seek(0)
        return source.read()

    if hasattr(source, "getbuffer"):
        return bytes(source.getbuffer())

    if hasattr(source, "read"):
        if hasattr(source, "seek"):
            source.seek(0)
        data = source.read()
        if isinstance(data, str):
            return data.encode("utf-8")
        return data

    raise CSVLoadError(
        "Cannot read the uploaded file.",
        cause="unsupported_source",
        suggestion="Please upload a valid CSV file.",
    )


def _detect_encoding(raw_bytes: bytes) -> str:
    """Detect encoding by trying multiple encodings on a sample."""
    sample = raw_bytes[:8192]

    if sample[:3] == b"\xef\xbb\xbf":
        return "utf-8-sig"

    for enc in ENCODINGS_TO_TRY:
        try:
            sample.decode(enc)
            return enc
        except (UnicodeDecodeError, LookupError):
            continue

    return "latin-1"


def check_file_name(file_name: str, allowed: Optional[Iterable[str]] = None) -> str:
    """Reject anything that is not a CSV by extension.

    Returns:
        The file name, unchanged.

    Raises:
        CSVLoadError: When the extension is not allowed.
    """
    allowed = {e.lower() for e in (allowed or [".csv"])}
    ext = os.path.splitext(file_name or "")[1].lower()
    if ext not in allowed:
        raise CSVLoadError(
            f"Unsupported file type '{ext or file_name}'. Allowed: {', '.join(sorted(allowed))}",
            cause="unsupported_extension",
            suggestion="Please upload a CSV file.",
        )
    return file_name


def read_csv_text(
    source: Any,
    file_name: Optional[str] = None,
    *,
    allowed_extensions: Optional[Iterable[str]] = None,
    max_bytes: Optional[int] = None,
) -> str:
    """Read an uploaded CSV to text.

    Args:
        source: Upload object, bytes or path.
        file_name: Original file name, checked against ``allowed_extensions``.
        allowed_extensions: Extensions accepted (default ``.csv``).
        max_bytes: Reject files larger than this many bytes.

    Raises:
        CSVLoadError: With actionable cause and suggestion.
    """
    if file_name is not None:
        check_file_name(file_name, allowed_extensions)

    try:
        raw_bytes = _extract_bytes(source)
    except CSVLoadError:
        raise
    except OSError as exc:
        raise CSVLoadError(
            f"Failed to read uploaded file: {exc}",
            cause="read_error",
            suggestion="The file may be corrupted. Try re-uploading it.",
        )

    if len(raw_bytes) == 0:
        raise CSVLoadError(
            "The uploaded file is empty.",
            cause="empty_file",
            suggestion="Please upload a CSV file with data.",
        )

    if max_bytes is not None and len(raw_bytes) > max_bytes:
        raise CSVLoadError(
            f"The uploaded file is too large ({len(raw_bytes) / (1024 * 1024):.1f} MB).",
            cause="too_large",
            suggestion=f"Upload a file smaller than {max_bytes // (1024 * 1024)} MB.",
        )

    encoding = _detect_encoding(raw_bytes)
    text = raw_bytes.decode(encoding, errors="replace")
    logger.info("Read %s (%d bytes, encoding=%s)", file_name or "upload", len(raw_bytes), encoding)
    return text


def csv_sample(csv_data: str, max_lines: int = 10, max_chars: int = 2000) -> str:
    """First ``max_lines`` lines of the CSV, cut to ``max_chars`` characters."""
    return "\n".join(csv_data.split("\n")[:max_lines])[:max_chars]


def truncate_csv(csv_data: str, max_chars: int = 100_000) -> Tuple[str, bool]:
    """Cap the CSV at ``max_chars``; the flag tells whether anything was cut."""
    if len(csv_data) > max_chars:
        return csv_data[:max_chars], True
    return csv_data, False


def preview_rows(csv_data: Optional[str], rows: int = 5) -> Tuple[List[str], List[List[str]]]:
    """Split the header and the first ``rows`` data lines on newlines and commas."""
    if not csv_data:
        return [], []
    lines = csv_data.split("\n")
    headers = [h.strip() for h in lines[0].split(",")]
    body = [[cell.strip() for cell in line.split(",")] for line in lines[1:rows + 1]]
    return headers, body


def preview_frame(csv_data: Optional[str], rows: int = 5) -> pd.DataFrame:
    """The light preview as a DataFrame; ragged rows are padded or clipped to the header."""
    headers, body = preview_rows(csv_data, rows)
    if not headers:
        return pd.DataFrame()
    width = len(headers)
    padded = [(row + [""] * width)[:width] for row in body]
    columns = _unique_columns(headers)
    return pd.DataFrame(padded, columns=columns)


def _unique_columns(headers: List[str]) -> List[str]:
    seen: dict = {}
    result = []
    for i, h in enumerate(headers):
        name = h or f"column_{i + 1}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 0
        result.append(name)
    return result
