"""
Pytest configuration and fixtures.
"""
from datetime import date
from types import SimpleNamespace
from typing import Iterable, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from statement_extractor.core import ExtractionOrchestrator, PipelineConfig
from statement_extractor.models import Document, ExtractedText, TextProvenance


TODAY = date(2024, 3, 1)

STATEMENT_TEXT = "\n".join([
    "Acme Bank",
    "Account Holder: Jane Doe",
    "Account Number: ****1234",
    "Opening Balance: $2,000.00",
    "01/05/2024 Grocery Store -$42.50",
    "01/10/2024 Paycheck $1,500.00",
    "01/15/2024 Electric Utility -$120.25",
    "01/20/2024 Coffee Shop -$4.75",
])

# One recognisable row, padded with prose so the structuring gate opens
SPARSE_TEXT = "\n".join([
    "Acme Bank",
    "Account Holder: Jane Doe",
    "01/05/2024 Grocery Store -$42.50",
    "Card purchases and transfers listed below were captured from a scanned",
    "attachment whose table layout could not be read line by line. Please",
    "review the figures carefully before relying on them for any purpose,",
    "and contact your branch if anything looks unfamiliar.",
])


class FakeDigitalExtractor:
    """Stands in for the pdfplumber extractor with canned text."""

    def __init__(self, text: str = "", fail_on: Iterable[str] = ()):
        self.text = text
        self.fail_on = set(fail_on)
        self.calls = 0

    async def extract(self, document: Document) -> ExtractedText:
        self.calls += 1
        if document.filename in self.fail_on:
            raise RuntimeError(f"cannot read {document.filename}")
        return ExtractedText(text=self.text, provenance=TextProvenance.DIGITAL)


def fake_completion(content: Optional[str]) -> SimpleNamespace:
    """Minimal chat-completion response object."""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def fake_openai_client(content: Optional[str] = None, side_effect=None) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        return_value=fake_completion(content), side_effect=side_effect
    )
    return client


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def clock():
    return lambda: TODAY


@pytest.fixture
def statement_text() -> str:
    return STATEMENT_TEXT


@pytest.fixture
def sparse_text() -> str:
    return SPARSE_TEXT


@pytest.fixture
def make_orchestrator(clock):
    """Factory for orchestrators wired with fakes instead of remote services."""

    def _make(text: str = "", **kwargs) -> ExtractionOrchestrator:
        kwargs.setdefault("config", PipelineConfig())
        kwargs.setdefault("digital_extractor", FakeDigitalExtractor(text))
        kwargs.setdefault("clock", clock)
        return ExtractionOrchestrator(**kwargs)

    return _make
