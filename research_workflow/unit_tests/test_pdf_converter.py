"""Unit tests for PdfConverter with pypdfium2 patched out."""

from unittest.mock import MagicMock, patch

import pytest

from research_workflow.errors import ConversionError
from research_workflow.services.pdf_converter import PdfConverter


def fake_document(page_texts):
    pages = []
    for text in page_texts:
        page = MagicMock()
        page.get_textpage.return_value.get_text_range.return_value = text
        pages.append(page)

    doc = MagicMock()
    doc.__len__.return_value = len(pages)
    doc.__getitem__.side_effect = lambda i: pages[i]
    return doc


@pytest.fixture
def pdf_path(tmp_path):
    path = tmp_path / "paper.pdf"
    path.write_bytes(b"%PDF-1.4")
    return path


class TestPdfConverter:
    @pytest.mark.asyncio
    async def test_joins_pages_and_adds_title_heading(self, pdf_path):
        doc = fake_document(["Sparse Attention\nAbstract text", "Second page"])
        with patch("research_workflow.services.pdf_converter.pdfium.PdfDocument", return_value=doc):
            result = await PdfConverter().convert(str(pdf_path))

        assert result.title == "Sparse Attention"
        assert result.text.startswith("# Sparse Attention\n\nSparse Attention\nAbstract text\n\nSecond page")
        assert result.page_count == 2
        assert result.word_count == 6
        doc.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_truncates_to_max_chars(self, pdf_path):
        doc = fake_document(["abcdefghij" * 10])
        with patch("research_workflow.services.pdf_converter.pdfium.PdfDocument", return_value=doc):
            result = await PdfConverter(max_chars=20).convert(str(pdf_path))

        assert result.title == "abcdefghij" * 2
        assert result.text.endswith("\n\n" + "abcdefghij" * 2)

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        with pytest.raises(ConversionError, match="not found"):
            await PdfConverter().convert(str(tmp_path / "absent.pdf"))

    @pytest.mark.asyncio
    async def test_rejects_non_pdf(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(ConversionError, match="must be a PDF"):
            await PdfConverter().convert(str(path))
