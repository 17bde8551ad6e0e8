"""
Unit tests for PDF text extraction.
"""
import pytest

from analyzer.errors import ExtractionError
from analyzer.services.text_extractor import extract_text


class TestExtractText:
    """Tests for extract_text."""

    def test_single_page(self, nda_pdf, nda_text):
        """Page text is returned with a trailing newline."""
        assert extract_text(nda_pdf) == nda_text + "\n"

    def test_pages_are_newline_separated_in_order(self, pdf_builder):
        """Each page contributes one line, in page order."""
        data = pdf_builder(["First page text", "Second page text", "Third page text"])

        lines = extract_text(data).split("\n")

        assert lines == ["First page text", "Second page text", "Third page text", ""]

    def test_items_on_a_page_are_joined_by_spaces(self, pdf_builder):
        """Separate text runs on one page end up on one line."""
        data = pdf_builder([["Heading run", "Body run"]])

        text = extract_text(data)

        assert text.count("\n") == 1
        assert "Heading run" in text
        assert "Body run" in text
        assert "Heading run Body run" in text or "Body run Heading run" in text

    def test_length_grows_with_page_count(self, pdf_builder):
        """Adding pages never shortens the output."""
        lengths = [
            len(extract_text(pdf_builder(["Clause text"] * count)))
            for count in range(1, 4)
        ]
        assert lengths == sorted(lengths)
        assert lengths[0] > 0

    def test_accepts_bytearray_and_memoryview(self, nda_pdf, nda_text):
        assert extract_text(bytearray(nda_pdf)) == nda_text + "\n"
        assert extract_text(memoryview(nda_pdf)) == nda_text + "\n"

    def test_accepts_buffer_structured_clone(self, nda_pdf, nda_text):
        """A {"type": "Buffer", "data": [...]} value decodes like raw bytes."""
        clone = {"type": "Buffer", "data": list(nda_pdf)}
        assert extract_text(clone) == nda_text + "\n"


class TestExtractTextFailures:
    """Inputs that must raise ExtractionError."""

    def test_missing_value(self):
        with pytest.raises(ExtractionError, match="File not found"):
            extract_text(None)

    def test_empty_bytes(self):
        with pytest.raises(ExtractionError):
            extract_text(b"")

    def test_corrupt_bytes(self):
        with pytest.raises(ExtractionError):
            extract_text(b"this is definitely not a pdf document")

    def test_unsupported_representation(self):
        with pytest.raises(ExtractionError, match="Invalid file data"):
            extract_text("a plain string")

    def test_dict_without_buffer_tag(self):
        with pytest.raises(ExtractionError, match="Invalid file data"):
            extract_text({"type": "Blob", "data": [1, 2, 3]})

    def test_buffer_clone_with_bad_octets(self):
        with pytest.raises(ExtractionError, match="Invalid file data"):
            extract_text({"type": "Buffer", "data": [256, -1]})

    def test_pdf_without_text(self, pdf_builder):
        """A page with no text runs is treated as unreadable."""
        with pytest.raises(ExtractionError, match="empty"):
            extract_text(pdf_builder([[]]))
