"""
Confidence scoring and explainability layer.
"""

from __future__ import annotations

from typing import Dict, Any, List, Optional

from ..models.quality_report import QualityReport

SOURCE_QUALITY = {
    'digital': 1.0,
    'ocr': 0.85,
    'llm': 0.75,
    'raw-scan': 0.3,
}

DEFAULT_WEIGHTS = {
    'source_quality': 0.35,
    'parse_yield': 0.25,
    'rule_consistency': 0.40,
}

SEVERITY_PENALTY = {
    'CRITICAL': 1.0,
    'HIGH': 0.5,
    'MEDIUM': 0.25,
    'LOW': 0.1,
}


class ConfidenceScorer:
    """
    Compute a composite confidence score with explainable components.
    """

    def __init__(self, weights: Optional[Dict[str, float]] = None, target_rows: int = 3):
        self.weights = dict(weights or DEFAULT_WEIGHTS)
        self.target_rows = target_rows

    def assess(self, report: QualityReport, transaction_count: int, total_checks: int) -> Dict[str, Any]:
        components: List[Dict[str, Any]] = []

        source_score = SOURCE_QUALITY.get(report.source, 0.0)
        components.append(self._component(
            key='source_quality',
            label='Extraction source quality',
            score=source_score,
            weight=self.weights.get('source_quality', 0.0),
            details={'source': report.source, 'text_length': report.text_length}
        ))

        yield_score = min(1.0, transaction_count / self.target_rows) if self.target_rows else 1.0
        components.append(self._component(
            key='parse_yield',
            label='Transactions recognised',
            score=yield_score,
            weight=self.weights.get('parse_yield', 0.0),
            details={'transactions': transaction_count}
        ))

        consistency = self._rule_consistency(report, total_checks)
        components.append(self._component(
            key='rule_consistency',
            label='Consistency rules',
            score=consistency,
            weight=self.weights.get('rule_consistency', 0.0),
            details={'total_checks': total_checks, 'violations': len(report.violations)}
        ))

        if report.synthetic:
            # Fabricated rows carry no information about the document
            overall_score = 0.0
        else:
            overall_score = self._weighted_score(components)

        return {
            'score': round(overall_score, 4),
            'label': self._label(overall_score),
            'components': components,
        }

    @staticmethod
    def _rule_consistency(report: QualityReport, total_checks: int) -> float:
        if total_checks <= 0:
            return 0.0
        penalty = sum(SEVERITY_PENALTY.get(v.severity, 0.1) for v in report.violations)
        return max(0.0, 1.0 - penalty / total_checks)

    @staticmethod
    def _component(
        key: str,
        label: str,
        score: Optional[float],
        weight: float,
        details: Dict[str, Any]
    ) -> Dict[str, Any]:
        return {
            'key': key,
            'label': label,
            'score': score,
            'weight': weight,
            'details': details,
            'available': score is not None
        }

    @staticmethod
    def _weighted_score(components: List[Dict[str, Any]]) -> float:
        usable = [c for c in components if c['available'] and c['weight'] > 0]
        total_weight = sum(c['weight'] for c in usable)
        if total_weight <= 0:
            return 0.0
        score = sum(c['score'] * c['weight'] for c in usable) / total_weight
        return max(0.0, min(1.0, score))

    @staticmethod
    def _label(score: float) -> str:
        if score >= 0.85:
            return "High"
        if score >= 0.7:
            return "Medium"
        return "Low"
