"""
Unit tests for RawByteTextScanner.
"""
import pytest

from statement_extractor.core import RawByteTextScanner
from statement_extractor.core.raw_scanner import MAX_TEXT_CHARS, PLACEHOLDER_TEXT
from statement_extractor.models import Document, TextProvenance


class TestRawByteTextScanner:
    """Tests for RawByteTextScanner class."""

    @pytest.fixture
    def scanner(self) -> RawByteTextScanner:
        return RawByteTextScanner()

    def test_empty_document_returns_placeholder(self, scanner: RawByteTextScanner):
        result = scanner.scan(Document(content=b""))
        assert result.text == PLACEHOLDER_TEXT
        assert result.provenance == TextProvenance.RAW_SCAN

    def test_binary_noise_returns_placeholder(self, scanner: RawByteTextScanner):
        result = scanner.scan(Document(content=bytes(range(0, 32)) * 50))
        assert result.text == PLACEHOLDER_TEXT

    def test_printable_runs_joined(self, scanner: RawByteTextScanner):
        content = b"\x00\x01Hello statement\x02\x03short\x04Deposit 25.00 done\xff"
        result = scanner.scan(Document(content=content, filename="scan.bin"))
        assert result.text == "Hello statement Deposit 25.00 done"
        assert result.provenance == TextProvenance.RAW_SCAN

    def test_short_runs_ignored(self, scanner: RawByteTextScanner):
        result = scanner.scan(Document(content=b"abc\x00def\x00ghi"))
        assert result.text == PLACEHOLDER_TEXT

    def test_output_is_capped(self, scanner: RawByteTextScanner):
        result = scanner.scan(Document(content=b"A" * 20_000))
        assert len(result.text) == MAX_TEXT_CHARS
