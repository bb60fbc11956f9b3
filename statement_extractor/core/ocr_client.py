"""
Document OCR client
Recognises text in scanned statements through a hosted OCR endpoint
"""

import base64
import logging
from typing import Optional, List, Dict, Any

import httpx

from .config import OCRConfig
from .errors import ConfigurationError, TransportError, StageTimeoutError
from ..models.statement import Document, ExtractedText, TextProvenance

logger = logging.getLogger(__name__)

SERVICE_NAME = "ocr"


class OpticalRecognitionClient:
    """
    OCR client for scanned or image-only statements

    Request:  {model, document: {type: "base64", data, name}, pages: [], include_image_base64: false}
    Response: {pages: [{markdown}, ...]}
    """

    def __init__(self, config: OCRConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        if not self.config.is_configured:
            raise ConfigurationError("OCR API key is not configured")

        self._http_client = http_client
        logger.info(f"Initialized OCR client: {self.config.endpoint} ({self.config.model})")

    async def process_document(self, document: Document) -> ExtractedText:
        """
        Submit a document for recognition

        Returns:
            ExtractedText with page texts joined in the order returned

        Raises:
            TransportError: non-success status or unreachable service
            StageTimeoutError: no answer within the configured timeout
        """
        logger.info(f"Submitting {document.filename} to OCR (size: {document.size} bytes)")

        payload = self.build_payload(document)
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.config.endpoint, json=payload, headers=headers, timeout=self.config.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                    response = await client.post(self.config.endpoint, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise StageTimeoutError(f"OCR request timed out after {self.config.timeout}s",
                                    service=SERVICE_NAME) from e
        except httpx.RequestError as e:
            raise TransportError(f"OCR request failed: {e}", service=SERVICE_NAME) from e

        if response.status_code >= 400:
            raise TransportError(
                f"OCR error {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
                service=SERVICE_NAME,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError("OCR response is not JSON",
                                 status_code=response.status_code, service=SERVICE_NAME) from e

        pages = self.page_texts(body)
        text = "\n\n".join(pages).strip()
        logger.info(f"OCR complete. Pages: {len(pages)}, characters: {len(text)}")
        return ExtractedText(text=text, provenance=TextProvenance.OCR)

    def build_payload(self, document: Document) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "document": {
                "type": "base64",
                "data": base64.b64encode(document.content).decode("ascii"),
                "name": document.filename,
            },
            "pages": [],  # empty = all pages
            "include_image_base64": False,
        }

    @staticmethod
    def page_texts(body: Any) -> List[str]:
        """Per-page markdown in the order the service returned it"""
        if not isinstance(body, dict):
            return []

        texts = []
        for page in body.get("pages") or []:
            if isinstance(page, dict):
                texts.append(page.get("markdown") or "")
        return texts
