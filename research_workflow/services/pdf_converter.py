"""PDF to text converter built on pypdfium2."""

import asyncio
import logging
import time
from pathlib import Path
from typing import List, Optional

import pypdfium2 as pdfium

from research_workflow.errors import ConversionError
from research_workflow.services.interfaces import ConversionResult

logger = logging.getLogger(__name__)


class PdfConverter:
    """
    Extracts page text from a PDF.

    Pages are joined with blank lines. The first non-empty line becomes the
    title and is emitted as a ``#`` heading so downstream stages can find it.
    """

    def __init__(self, max_chars: Optional[int] = None):
        self.max_chars = max_chars

    async def convert(self, input_ref: str) -> ConversionResult:
        path = Path(input_ref)
        if not path.is_file():
            raise ConversionError(f"Input file not found: {input_ref}")
        if path.suffix.lower() != ".pdf":
            raise ConversionError(f"Input file must be a PDF: {input_ref}")

        started = time.monotonic()
        pages = await asyncio.to_thread(self._read_pages, path)
        text = "\n\n".join(pages).strip()
        if self.max_chars:
            text = text[: self.max_chars]

        title = self._guess_title(text)
        markdown = f"# {title}\n\n{text}" if title else text
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.debug(f"Read {len(pages)} pages from {path.name} in {elapsed_ms}ms")

        return ConversionResult(
            text=markdown,
            title=title,
            page_count=len(pages),
            word_count=len(text.split()),
            processing_time_ms=elapsed_ms,
        )

    @staticmethod
    def _read_pages(path: Path) -> List[str]:
        try:
            doc = pdfium.PdfDocument(str(path))
        except pdfium.PdfiumError as e:
            raise ConversionError(f"Could not open PDF {path.name}: {e}") from e

        pages = []
        try:
            for i in range(len(doc)):
                page = doc[i]
                textpage = page.get_textpage()
                pages.append(textpage.get_text_range())
                textpage.close()
                page.close()
        finally:
            doc.close()
        return pages

    @staticmethod
    def _guess_title(text: str) -> Optional[str]:
        for line in text.splitlines():
            line = line.strip()
            if line:
                return line[:200]
        return None
