"""
Text extraction service for uploaded contract PDFs.
"""
import io
import re
import logging
from typing import Any, List

from pdfminer.high_level import extract_pages
from pdfminer.layout import LTTextContainer
from pdfminer.pdfparser import PDFSyntaxError

from analyzer.errors import ExtractionError

logger = logging.getLogger(__name__)

_CONTROL_CHARS = re.compile(r'[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F-\x9F]')


def _coerce_to_bytes(data: Any) -> bytes:
    """
    Accept raw bytes or the {"type": "Buffer", "data": [...]} structured clone
    a serialized cache value round-trips into.

    Raises:
        ExtractionError: If the value is missing or in neither representation.
    """
    if data is None:
        raise ExtractionError("File not found")

    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)

    if isinstance(data, dict) and data.get("type") == "Buffer" and isinstance(data.get("data"), list):
        try:
            return bytes(data["data"])
        except (TypeError, ValueError) as e:
            raise ExtractionError("Invalid file data") from e

    raise ExtractionError("Invalid file data")


def _page_items(page_layout) -> List[str]:
    """Collect the non-empty text lines of one page in layout order."""
    items = []
    for element in page_layout:
        if not isinstance(element, LTTextContainer):
            continue
        for line in element.get_text().splitlines():
            line = _CONTROL_CHARS.sub('', line).strip()
            if line:
                items.append(line)
    return items


def extract_text(data: Any) -> str:
    """
    Extract text from a contract PDF.

    Pages are concatenated in order; the text items of a page are joined by
    single spaces and every page is terminated by a newline.

    Args:
        data: PDF bytes, or a {"type": "Buffer", "data": [...]} mapping.

    Returns:
        Extracted text.

    Raises:
        ExtractionError: If the bytes are missing, not a PDF, or hold no text.
    """
    pdf_bytes = _coerce_to_bytes(data)
    if not pdf_bytes:
        raise ExtractionError("Uploaded file is empty")

    pages = []
    try:
        for page_layout in extract_pages(io.BytesIO(pdf_bytes)):
            pages.append(" ".join(_page_items(page_layout)) + "\n")
    except PDFSyntaxError as e:
        logger.error("PDF file has syntax errors")
        raise ExtractionError("Failed to extract text from PDF. The file may be corrupted.") from e
    except Exception as e:
        logger.error(f"Failed to extract text from PDF: {type(e).__name__}")
        raise ExtractionError(
            "Failed to extract text from PDF. The file may be encrypted, corrupted, or in an unsupported format."
        ) from e

    text = "".join(pages)
    if not text.strip():
        raise ExtractionError("PDF appears to be empty or contains only images")

    logger.info(f"Extracted {len(text)} characters from {len(pages)} PDF page(s)")
    return text
