"""
Data models for statement extraction
"""

from .statement import (
    Document,
    ExtractedText,
    TextProvenance,
    TransactionCandidate,
    Direction,
    AccountInfo,
    DateRange,
    StatementSummary,
    StatementResult,
)
from .quality_report import QualityReport, RuleViolation, StageRecord

__all__ = [
    'Document',
    'ExtractedText',
    'TextProvenance',
    'TransactionCandidate',
    'Direction',
    'AccountInfo',
    'DateRange',
    'StatementSummary',
    'StatementResult',
    'QualityReport',
    'RuleViolation',
    'StageRecord',
]
