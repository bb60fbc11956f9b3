"""
Unit tests for ConsistencyValidator and ConfidenceScorer.
"""
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from statement_extractor.core import BalanceReconstructor
from statement_extractor.models import Direction, QualityReport, RuleViolation, StatementSummary, TransactionCandidate
from statement_extractor.validators import ConfidenceScorer, ConsistencyValidator


def _txn(amount: str, direction: Direction, balance: Optional[str] = None,
         txn_date: str = "2024-01-15") -> TransactionCandidate:
    return TransactionCandidate(
        date=txn_date,
        description="row",
        amount=Decimal(amount),
        direction=direction,
        balance=Decimal(balance) if balance is not None else None,
    )


def _rules(violations):
    return [v.rule for v in violations]


class TestConsistencyValidator:
    """Tests for ConsistencyValidator class."""

    @pytest.fixture
    def validator(self) -> ConsistencyValidator:
        return ConsistencyValidator()

    def test_reconstructed_chain_is_clean(self, validator: ConsistencyValidator, today: date):
        rows = [
            _txn("42.50", Direction.DEBIT),
            _txn("1500.00", Direction.CREDIT),
            _txn("4.75", Direction.DEBIT),
        ]
        BalanceReconstructor().reconstruct(rows)
        summary = StatementSummary.from_transactions(rows)

        assert validator.validate(rows, summary, today=today) == []

    def test_no_rows(self, validator: ConsistencyValidator):
        violations = validator.validate([], StatementSummary.from_transactions([]))
        assert _rules(violations) == ["NO_ROWS"]
        assert violations[0].severity == "CRITICAL"

    def test_printed_newest_first_balances_accepted(self, validator: ConsistencyValidator):
        rows = [
            _txn("10.00", Direction.CREDIT, balance="110.00"),
            _txn("5.00", Direction.DEBIT, balance="100.00"),
        ]
        assert validator.validate_balance_chain(rows) == []

    def test_printed_oldest_first_balances_accepted(self, validator: ConsistencyValidator):
        rows = [
            _txn("5.00", Direction.DEBIT, balance="100.00"),
            _txn("10.00", Direction.CREDIT, balance="110.00"),
        ]
        assert validator.validate_balance_chain(rows) == []

    def test_balance_mismatch(self, validator: ConsistencyValidator):
        rows = [
            _txn("1.00", Direction.DEBIT, balance="500.00"),
            _txn("10.00", Direction.CREDIT, balance="100.00"),
        ]
        violations = validator.validate_balance_chain(rows)
        assert _rules(violations) == ["RUNNING_BALANCE_MISMATCH"]
        assert violations[0].row == 0
        assert violations[0].expected == Decimal("110.00")

    def test_missing_balance(self, validator: ConsistencyValidator):
        rows = [_txn("1.00", Direction.DEBIT, balance="10.00"), _txn("1.00", Direction.DEBIT)]
        violations = validator.validate_balance_chain(rows)
        assert _rules(violations) == ["BALANCE_MISSING"]
        assert violations[0].row == 1

    def test_future_and_unparseable_dates(self, validator: ConsistencyValidator, today: date):
        rows = [
            _txn("1.00", Direction.DEBIT, txn_date="2030-01-01"),
            _txn("1.00", Direction.DEBIT, txn_date="someday"),
        ]
        violations = validator.validate_dates(rows, today)
        assert _rules(violations) == ["DATE_IN_FUTURE", "DATE_UNPARSEABLE"]

    def test_summary_mismatch(self, validator: ConsistencyValidator):
        rows = [_txn("1.00", Direction.DEBIT)]
        wrong = StatementSummary(total_credits=Decimal("0"), total_debits=Decimal("2.00"), transaction_count=1)
        assert _rules(validator.validate_summary(rows, wrong)) == ["SUMMARY_MISMATCH"]

    def test_count_checks(self, validator: ConsistencyValidator):
        rows = [_txn("1.00", Direction.DEBIT)] * 4
        assert validator.count_checks(rows) == 2 * 4 + 3 + 1
        assert validator.count_checks([]) == 1


class TestConfidenceScorer:
    """Tests for ConfidenceScorer class."""

    @pytest.fixture
    def scorer(self) -> ConfidenceScorer:
        return ConfidenceScorer(target_rows=3)

    def test_clean_digital_is_high(self, scorer: ConfidenceScorer):
        report = QualityReport(source="digital")
        assessment = scorer.assess(report, transaction_count=4, total_checks=12)
        assert assessment["score"] == 1.0
        assert assessment["label"] == "High"
        assert [c["key"] for c in assessment["components"]] == [
            "source_quality", "parse_yield", "rule_consistency"
        ]

    def test_raw_scan_is_low(self, scorer: ConfidenceScorer):
        report = QualityReport(source="raw-scan")
        assessment = scorer.assess(report, transaction_count=1, total_checks=3)
        assert assessment["label"] == "Low"

    def test_synthetic_is_zero(self, scorer: ConfidenceScorer):
        report = QualityReport(source="digital", synthetic=True)
        assessment = scorer.assess(report, transaction_count=0, total_checks=15)
        assert assessment["score"] == 0.0
        assert assessment["label"] == "Low"

    def test_violations_lower_score(self, scorer: ConfidenceScorer):
        clean = scorer.assess(QualityReport(source="ocr"), transaction_count=3, total_checks=10)

        report = QualityReport(source="ocr")
        report.violations.append(RuleViolation(rule="RUNNING_BALANCE_MISMATCH", severity="HIGH", message="x"))
        degraded = scorer.assess(report, transaction_count=3, total_checks=10)

        assert degraded["score"] < clean["score"]
