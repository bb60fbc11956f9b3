"""
Extraction quality report data models
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


@dataclass
class RuleViolation:
    """Single consistency rule violation"""
    rule: str  # Rule name/ID
    severity: str  # 'LOW', 'MEDIUM', 'HIGH', 'CRITICAL'
    message: str
    row: Optional[int] = None
    expected: Optional[Any] = None
    actual: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            'rule': self.rule,
            'severity': self.severity,
            'message': self.message,
            'row': self.row,
            'expected': str(self.expected) if self.expected is not None else None,
            'actual': str(self.actual) if self.actual is not None else None,
        }


@dataclass
class StageRecord:
    """Outcome of one pipeline stage"""
    stage: str
    outcome: str  # 'success', 'insufficient', 'skipped', 'failed'
    detail: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {'stage': self.stage, 'outcome': self.outcome, 'detail': self.detail}


@dataclass
class QualityReport:
    """Provenance and confidence of one extraction"""
    source: str = ""  # 'digital', 'ocr', 'raw-scan', 'llm'
    text_provenance: str = ""
    text_length: int = 0

    # Parser fabricated sample rows because nothing was recognised
    synthetic: bool = False

    anchor_source: str = "default"  # 'statement', 'default'
    anchor_balance: Optional[float] = None

    structuring_attempted: bool = False
    structuring_applied: bool = False

    stages: List[StageRecord] = field(default_factory=list)
    violations: List[RuleViolation] = field(default_factory=list)

    confidence: float = 0.0
    confidence_label: str = "Low"
    confidence_components: List[Dict[str, Any]] = field(default_factory=list)

    def record(self, stage: str, outcome: str, detail: str = ""):
        """Append a stage outcome"""
        self.stages.append(StageRecord(stage=stage, outcome=outcome, detail=detail))

    def outcome_of(self, stage: str) -> Optional[str]:
        """Most recent outcome recorded for a stage"""
        for record in reversed(self.stages):
            if record.stage == stage:
                return record.outcome
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON export"""
        return {
            'source': self.source,
            'text_provenance': self.text_provenance,
            'text_length': self.text_length,
            'synthetic': self.synthetic,
            'anchor_source': self.anchor_source,
            'anchor_balance': self.anchor_balance,
            'structuring_attempted': self.structuring_attempted,
            'structuring_applied': self.structuring_applied,
            'stages': [s.to_dict() for s in self.stages],
            'violations': [v.to_dict() for v in self.violations],
            'confidence': {
                'score': self.confidence,
                'label': self.confidence_label,
                'components': self.confidence_components,
            },
        }
