"""PDF text extraction using PyMuPDF."""

import asyncio

import fitz  # PyMuPDF

from src.core.errors import ExtractionFailed
from src.extraction.base import TextExtractor

PDF_SIGNATURE = b"%PDF-"


def looks_like_pdf(data: bytes) -> bool:
    """Check the magic bytes; PDF readers tolerate a little leading junk."""
    return PDF_SIGNATURE in data[:1024]


class PdfTextExtractor(TextExtractor):
    """Extracts page text in reading order, pages joined by newlines."""

    def __init__(self, max_pages: int | None = None):
        self.max_pages = max_pages

    async def extract(self, data: bytes) -> str:
        return await asyncio.to_thread(self._extract_sync, data)

    def _extract_sync(self, data: bytes) -> str:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except (RuntimeError, ValueError) as e:  # FileDataError subclasses RuntimeError
            raise ExtractionFailed(f"Could not read PDF: {e}") from e

        try:
            if doc.page_count == 0:
                raise ExtractionFailed("PDF has no pages")
            if self.max_pages is not None and doc.page_count > self.max_pages:
                raise ExtractionFailed(f"PDF exceeds maximum allowed pages ({self.max_pages})")

            pages = []
            for page in doc:
                text = page.get_text("text")
                if text:
                    pages.append(text)
        except RuntimeError as e:
            raise ExtractionFailed(f"Could not read PDF: {e}") from e
        finally:
            doc.close()

        return "\n".join(pages)
