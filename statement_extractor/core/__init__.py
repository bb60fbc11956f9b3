"""
Core processing package
"""

from .config import OCRConfig, LLMConfig, PipelineConfig
from .errors import (
    ExtractionError,
    ConfigurationError,
    TransportError,
    StageTimeoutError,
    MalformedInputError,
    SchemaViolation,
    EmptyRequestError,
)
from .digital_text import DigitalTextExtractor
from .ocr_client import OpticalRecognitionClient
from .raw_scanner import RawByteTextScanner
from .statement_parser import StatementParser, ParseResult
from .balance import BalanceReconstructor
from .structuring import StructuringFallback
from .pipeline import ExtractionOrchestrator, PipelineState

__all__ = [
    'OCRConfig',
    'LLMConfig',
    'PipelineConfig',
    'ExtractionError',
    'ConfigurationError',
    'TransportError',
    'StageTimeoutError',
    'MalformedInputError',
    'SchemaViolation',
    'EmptyRequestError',
    'DigitalTextExtractor',
    'OpticalRecognitionClient',
    'RawByteTextScanner',
    'StatementParser',
    'ParseResult',
    'BalanceReconstructor',
    'StructuringFallback',
    'ExtractionOrchestrator',
    'PipelineState',
]
