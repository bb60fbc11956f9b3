"""
Embedded text extraction for natively digital PDFs
"""

import asyncio
import io
import logging
from typing import List

import pdfplumber

from .errors import MalformedInputError
from ..models.statement import Document, ExtractedText, TextProvenance

logger = logging.getLogger(__name__)

PAGE_BREAK = "\n--- page break ---\n"


class DigitalTextExtractor:
    """
    Pulls the embedded text layer out of a PDF, page by page.

    Scanned documents have no text layer and yield an empty result; that is an
    expected outcome, not an error.
    """

    async def extract(self, document: Document) -> ExtractedText:
        """Extract text without blocking the event loop"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.extract_sync, document)

    def extract_sync(self, document: Document) -> ExtractedText:
        try:
            pages = self.read_pages(document.content)
        except MalformedInputError as e:
            logger.warning(f"Digital extraction skipped for {document.filename}: {e}")
            return ExtractedText(text="", provenance=TextProvenance.DIGITAL)

        text = PAGE_BREAK.join(pages).strip()
        logger.info(f"Digital extraction: {len(pages)} pages, {len(text)} characters")
        return ExtractedText(text=text, provenance=TextProvenance.DIGITAL)

    def read_pages(self, content: bytes) -> List[str]:
        """
        Return the text of each page in order

        Raises:
            MalformedInputError: the bytes are not a readable PDF
        """
        if not content:
            raise MalformedInputError("Document is empty")

        try:
            with pdfplumber.open(io.BytesIO(content)) as pdf:
                pages = []
                for page in pdf.pages:
                    pages.append((page.extract_text() or "").strip())
                return pages
        except Exception as e:
            # pdfminer raises a variety of parser errors for damaged files
            raise MalformedInputError(f"Unreadable PDF: {e}") from e
