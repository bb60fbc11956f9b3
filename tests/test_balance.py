"""
Unit tests for BalanceReconstructor.
"""
from decimal import Decimal

import pytest

from statement_extractor.core import BalanceReconstructor, StatementParser
from statement_extractor.core.balance import find_statement_anchor
from statement_extractor.models import Direction, TransactionCandidate


def _txn(amount: str, direction: Direction) -> TransactionCandidate:
    return TransactionCandidate(date="2024-01-15", description="row", amount=Decimal(amount), direction=direction)


class TestBalanceReconstructor:
    """Tests for BalanceReconstructor class."""

    @pytest.fixture
    def reconstructor(self) -> BalanceReconstructor:
        return BalanceReconstructor(default_anchor=Decimal("5000.00"))

    def test_chain_holds_for_parsed_example(self, reconstructor: BalanceReconstructor, clock):
        parser = StatementParser(clock=clock)
        rows = parser.parse("01/15/2024 Grocery Store -$42.50\n01/16/2024 Paycheck $1500.00").transactions

        reconstructor.reconstruct(rows, Decimal("5000.00"))

        for i in range(len(rows) - 1):
            assert rows[i].balance == rows[i + 1].balance + rows[i + 1].signed_amount

    def test_last_row_receives_anchor(self, reconstructor: BalanceReconstructor):
        rows = [_txn("10.00", Direction.DEBIT), _txn("25.00", Direction.CREDIT)]
        reconstructor.reconstruct(rows, Decimal("100.00"))
        assert rows[-1].balance == Decimal("100.00")
        assert rows[0].balance == Decimal("125.00")

    def test_default_anchor_when_none_given(self, reconstructor: BalanceReconstructor):
        rows = [_txn("1.00", Direction.CREDIT)]
        reconstructor.reconstruct(rows)
        assert rows[0].balance == Decimal("5000.00")

    def test_every_row_gets_a_balance(self, reconstructor: BalanceReconstructor):
        rows = [_txn(str(n), Direction.DEBIT if n % 2 else Direction.CREDIT) for n in range(1, 8)]
        reconstructor.reconstruct(rows)
        assert all(row.balance is not None for row in rows)

    def test_empty_list(self, reconstructor: BalanceReconstructor):
        assert reconstructor.reconstruct([]) == []


class TestAnchorSelection:
    """Tests for statement-derived anchors."""

    def test_opening_balance_found(self, statement_text: str):
        assert find_statement_anchor(statement_text) == Decimal("2000.00")

    @pytest.mark.parametrize("text,expected", [
        ("Previous balance 1,234.56", Decimal("1234.56")),
        ("BEGINNING BALANCE: £99.10", Decimal("99.10")),
        ("Opening balance: -50.00", Decimal("-50.00")),
    ])
    def test_anchor_phrases(self, text: str, expected: Decimal):
        assert find_statement_anchor(text) == expected

    def test_no_anchor(self):
        assert find_statement_anchor("Closing balance 10.00") is None

    def test_choose_prefers_statement(self, statement_text: str):
        reconstructor = BalanceReconstructor()
        assert reconstructor.choose_anchor(statement_text) == (Decimal("2000.00"), "statement")

    def test_choose_default_when_disabled(self, statement_text: str):
        reconstructor = BalanceReconstructor(prefer_statement_anchor=False)
        assert reconstructor.choose_anchor(statement_text) == (Decimal("5000.00"), "default")

    def test_choose_default_when_absent(self):
        reconstructor = BalanceReconstructor(default_anchor=Decimal("10.00"))
        assert reconstructor.choose_anchor("no balances here") == (Decimal("10.00"), "default")
