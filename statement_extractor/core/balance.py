"""
Running balance reconstruction
"""

import logging
import re
from decimal import Decimal
from typing import List, Optional, Tuple

from ..models.statement import TransactionCandidate
from ..utils.parsing import parse_amount

logger = logging.getLogger(__name__)

_OPENING_BALANCE = re.compile(
    r'(?:opening|previous|beginning)\s+balance[:\s]+(-?\s*[$€£]?\s*-?[\d,]+\.\d{2})',
    re.IGNORECASE,
)


def find_statement_anchor(text: str) -> Optional[Decimal]:
    """Opening balance printed on the statement, if any"""
    match = _OPENING_BALANCE.search(text or "")
    if not match:
        return None
    return parse_amount(match.group(1))


class BalanceReconstructor:
    """
    Derives a running balance trail from an anchor and signed amounts.

    Candidates are walked last-to-first. Each one receives the running value
    before its own effect is applied, so for every adjacent pair
    balance[i] == balance[i + 1] + signed_amount[i + 1].
    """

    def __init__(self, default_anchor: Decimal = Decimal('5000.00'), prefer_statement_anchor: bool = True):
        self.default_anchor = default_anchor
        self.prefer_statement_anchor = prefer_statement_anchor

    def choose_anchor(self, text: str) -> Tuple[Decimal, str]:
        """
        Returns:
            (anchor, source) where source is 'statement' or 'default'
        """
        if self.prefer_statement_anchor:
            found = find_statement_anchor(text)
            if found is not None:
                logger.info(f"Using statement opening balance {found} as anchor")
                return found, 'statement'
        return self.default_anchor, 'default'

    def reconstruct(self, transactions: List[TransactionCandidate],
                    anchor: Optional[Decimal] = None) -> List[TransactionCandidate]:
        start = self.default_anchor if anchor is None else anchor
        running = start
        for txn in reversed(transactions):
            txn.balance = running
            running += txn.signed_amount

        logger.info(f"Reconstructed balances for {len(transactions)} transactions from anchor {start}")
        return transactions
