"""
Consistency rules for assembled statements
Deterministic checks whose findings degrade confidence, never the result itself
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence

from ..models.quality_report import RuleViolation
from ..models.statement import StatementSummary, TransactionCandidate
from ..utils.parsing import parse_date

logger = logging.getLogger(__name__)


class ConsistencyValidator:
    """
    4 core rules:
    1. Amounts are non-negative
    2. Dates parse and are not in the future
    3. Running balance chain holds row to row
    4. Summary totals match the transactions
    """

    def __init__(self, tolerance: Decimal = Decimal('0.01')):
        self.tolerance = tolerance

    def validate(self, transactions: Sequence[TransactionCandidate], summary: StatementSummary,
                 today: Optional[date] = None) -> List[RuleViolation]:
        violations = []

        if not transactions:
            violations.append(RuleViolation(
                rule='NO_ROWS',
                severity='CRITICAL',
                message='No transaction rows extracted'
            ))
            return violations

        violations.extend(self.validate_amounts(transactions))
        violations.extend(self.validate_dates(transactions, today or date.today()))
        violations.extend(self.validate_balance_chain(transactions))
        violations.extend(self.validate_summary(transactions, summary))

        logger.info(f"Consistency validation complete: {len(violations)} violations")
        return violations

    def count_checks(self, transactions: Sequence[TransactionCandidate]) -> int:
        """Number of checks executed, for pass-rate reporting"""
        if not transactions:
            return 1
        # amount + date per row, chain per adjacent pair, one summary check
        return 2 * len(transactions) + max(len(transactions) - 1, 0) + 1

    def validate_amounts(self, transactions: Sequence[TransactionCandidate]) -> List[RuleViolation]:
        violations = []
        for idx, txn in enumerate(transactions):
            if txn.amount < 0:
                violations.append(RuleViolation(
                    rule='NEGATIVE_AMOUNT',
                    row=idx,
                    severity='CRITICAL',
                    message=f'Amount {txn.amount} is negative'
                ))
        return violations

    def validate_dates(self, transactions: Sequence[TransactionCandidate], today: date) -> List[RuleViolation]:
        violations = []
        for idx, txn in enumerate(transactions):
            parsed = parse_date(txn.date)
            if parsed is None:
                violations.append(RuleViolation(
                    rule='DATE_UNPARSEABLE',
                    row=idx,
                    severity='MEDIUM',
                    message=f'Date {txn.date!r} could not be parsed'
                ))
            elif parsed > today:
                violations.append(RuleViolation(
                    rule='DATE_IN_FUTURE',
                    row=idx,
                    severity='HIGH',
                    message=f'Date {parsed} is in the future'
                ))
        return violations

    def validate_balance_chain(self, transactions: Sequence[TransactionCandidate]) -> List[RuleViolation]:
        """
        Formula: balance[i] = balance[i + 1] + signed_amount[i + 1]
        """
        violations = []
        for i in range(len(transactions) - 1):
            curr_row = transactions[i]
            next_row = transactions[i + 1]

            if curr_row.balance is None or next_row.balance is None:
                violations.append(RuleViolation(
                    rule='BALANCE_MISSING',
                    row=i if curr_row.balance is None else i + 1,
                    severity='HIGH',
                    message='Running balance is missing'
                ))
                continue

            expected = next_row.balance + next_row.signed_amount
            if abs(expected - curr_row.balance) > self.tolerance and not self._printed_chain_holds(curr_row, next_row):
                violations.append(RuleViolation(
                    rule='RUNNING_BALANCE_MISMATCH',
                    row=i,
                    severity='HIGH',
                    expected=expected,
                    actual=curr_row.balance,
                    message=f'Balance mismatch: expected {expected}, got {curr_row.balance}'
                ))
        return violations

    def _printed_chain_holds(self, curr_row: TransactionCandidate, next_row: TransactionCandidate) -> bool:
        """Post-transaction balances as printed on oldest-first or newest-first statements"""
        oldest_first = curr_row.balance + next_row.signed_amount
        newest_first = next_row.balance + curr_row.signed_amount
        return (abs(oldest_first - next_row.balance) <= self.tolerance
                or abs(newest_first - curr_row.balance) <= self.tolerance)

    def validate_summary(self, transactions: Sequence[TransactionCandidate],
                         summary: StatementSummary) -> List[RuleViolation]:
        recomputed = StatementSummary.from_transactions(transactions)
        if recomputed != summary:
            return [RuleViolation(
                rule='SUMMARY_MISMATCH',
                severity='CRITICAL',
                expected=recomputed,
                actual=summary,
                message='Summary totals do not match the transactions'
            )]
        return []
