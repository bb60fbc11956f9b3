"""
Validators package
"""

from .consistency_validator import ConsistencyValidator
from .confidence_scorer import ConfidenceScorer

__all__ = [
    'ConsistencyValidator',
    'ConfidenceScorer',
]
